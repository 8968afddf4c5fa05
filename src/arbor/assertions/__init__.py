"""Expectations and matchers used inside test bodies."""

from arbor.assertions.errors import ExpectationError, UnknownMatcherError
from arbor.assertions.expect import Expectation, expect
from arbor.assertions.matchers import MATCHERS, register_matcher

__all__ = [
    "MATCHERS",
    "Expectation",
    "ExpectationError",
    "UnknownMatcherError",
    "expect",
    "register_matcher",
]
