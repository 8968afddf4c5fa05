"""Tests for expect() and the built-in matchers."""

from __future__ import annotations

import pytest

from arbor.assertions import (
    MATCHERS,
    ExpectationError,
    UnknownMatcherError,
    expect,
    register_matcher,
)
from arbor.assertions.matchers import to_be, to_be_defined, to_have_length, to_throw
from arbor.context import running
from arbor.models.blocks import Test


@pytest.fixture
def test_case() -> Test:
    return Test(name="t", body=lambda: None)


# ── Matchers ─────────────────────────────────────────────────────


class TestMatchers:
    def test_to_be(self) -> None:
        to_be(2, 2)
        with pytest.raises(ExpectationError, match="Expected 1 to be 2"):
            to_be(1, 2)

    def test_to_be_compares_by_equality(self) -> None:
        to_be([1, 2], [1, 2])
        to_be(1, 1.0)
        with pytest.raises(ExpectationError):
            to_be([1], [2])

    def test_to_be_defined(self) -> None:
        to_be_defined(0)
        with pytest.raises(ExpectationError, match="Expected None to be defined"):
            to_be_defined(None)

    def test_to_have_length(self) -> None:
        to_have_length("abc", 3)
        with pytest.raises(ExpectationError, match="value to have length 2 but it was 3"):
            to_have_length([1, 2, 3], 2)

    def test_to_throw_passes_when_source_raises(self) -> None:
        def source() -> None:
            raise ValueError("bad")

        to_throw(source)
        to_throw(source, ValueError("bad"))

    def test_to_throw_fails_when_nothing_raised(self) -> None:
        with pytest.raises(ExpectationError, match="to raise an exception but it did not"):
            to_throw(lambda: None)

    def test_to_throw_fails_on_message_mismatch(self) -> None:
        def source() -> None:
            raise ValueError("actual message")

        with pytest.raises(ExpectationError) as exc_info:
            to_throw(source, ValueError("expected message"))

        message = str(exc_info.value)
        assert "'expected message'" in message
        assert "'actual message'" in message

    def test_builtin_matchers_are_registered(self) -> None:
        assert {"to_be", "to_be_defined", "to_throw", "to_have_length"} <= set(MATCHERS)


# ── ExpectationError ─────────────────────────────────────────────


class TestExpectationError:
    def test_placeholders_use_repr(self) -> None:
        error = ExpectationError("<actual> to be <expected>", actual="a", expected=None)

        assert str(error) == "Expected 'a' to be None"
        assert error.values == {"actual": "a", "expected": None}

    def test_unused_placeholders_are_left_alone(self) -> None:
        error = ExpectationError("<actual> to be <expected>", actual=1)

        assert str(error) == "Expected 1 to be <expected>"

    def test_render_bolds_values(self) -> None:
        text = ExpectationError("<actual> to be <expected>", actual=1, expected=2).render()

        assert text.plain == "Expected 1 to be 2"
        bold = [text.plain[span.start : span.end] for span in text.spans if span.style == "bold"]
        assert bold == ["1", "2"]

    def test_is_an_assertion_error(self) -> None:
        assert issubclass(ExpectationError, AssertionError)


# ── expect() ─────────────────────────────────────────────────────


class TestExpect:
    def test_passing_expectation_records_nothing(self, test_case: Test) -> None:
        with running(test_case):
            expect(3).to_be(3)

        assert test_case.errors == []

    def test_failure_is_recorded_on_current_test(self, test_case: Test) -> None:
        with running(test_case):
            expect(1).to_be(2)
            expect(None).to_be_defined()

        assert len(test_case.errors) == 2
        assert str(test_case.errors[0]) == "Expected 1 to be 2"

    def test_explicit_test_takes_precedence(self, test_case: Test) -> None:
        other = Test(name="other", body=lambda: None)

        with running(other):
            expect(1, test=test_case).to_be(2)

        assert len(test_case.errors) == 1
        assert other.errors == []

    def test_failure_outside_a_test_is_raised(self) -> None:
        with pytest.raises(ExpectationError):
            expect(1).to_be(2)

    def test_finished_test_ignores_late_failures(self, test_case: Test) -> None:
        test_case.finished = True

        expect(1, test=test_case).to_be(2)

        assert test_case.errors == []

    def test_non_expectation_errors_propagate(self, test_case: Test) -> None:
        with running(test_case), pytest.raises(TypeError):
            expect(5).to_have_length(1)

        assert test_case.errors == []

    def test_unknown_matcher(self) -> None:
        with pytest.raises(UnknownMatcherError, match="to_equal_exactly") as exc_info:
            expect(1).to_equal_exactly(1)

        assert isinstance(exc_info.value, AttributeError)
        assert exc_info.value.name == "to_equal_exactly"

    def test_custom_matcher(self, test_case: Test) -> None:
        @register_matcher
        def to_be_even(actual: int) -> None:
            if actual % 2:
                raise ExpectationError("<actual> to be even", actual=actual)

        try:
            with running(test_case):
                expect(4).to_be_even()
                expect(3).to_be_even()
        finally:
            MATCHERS.pop("to_be_even")

        assert [str(error) for error in test_case.errors] == ["Expected 3 to be even"]
