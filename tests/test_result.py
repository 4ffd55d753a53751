"""Tests for Result and Option."""

from dataclasses import FrozenInstanceError

import pytest

from pipewise import Option, Result
from pipewise.combinators import result_bind_associativity_holds


def half(x: int) -> Result[int, str]:
    if x % 2:
        return Result.Failure(f"{x} is odd")
    return Result.Success(x // 2)


def dec(x: int) -> Result[int, str]:
    if x <= 0:
        return Result.Failure("not positive")
    return Result.Success(x - 1)


class TestResult:
    def test_success_and_failure_are_exclusive(self):
        ok = Result.Success(1)
        err = Result.Failure("boom")

        assert ok.is_success and not ok.is_failure
        assert err.is_failure and not err.is_success

    def test_empty_error_is_still_failure(self):
        assert Result.Failure("").is_failure

    def test_no_truth_value(self):
        with pytest.raises(TypeError):
            bool(Result.Success(1))
        with pytest.raises(TypeError):
            if Result.Failure("x"):
                pass

    def test_immutable(self):
        ok = Result.Success(1)
        with pytest.raises(FrozenInstanceError):
            ok.kind = "failure"  # type: ignore[misc]

    def test_map_identity(self):
        for r in (Result.Success(3), Result.Failure("e")):
            assert r.map(lambda x: x) == r

    def test_map_skips_failure(self):
        called = []
        Result.Failure("e").map(called.append)
        assert called == []

    def test_map_error(self):
        assert Result.Failure("e").map_error(str.upper) == Result.Failure("E")
        assert Result.Success(1).map_error(str.upper) == Result.Success(1)

    def test_bind_short_circuits(self):
        assert Result.Success(8).bind(half).bind(half) == Result.Success(2)
        assert Result.Success(3).bind(half).bind(half) == Result.Failure("3 is odd")

    @pytest.mark.parametrize("start", [Result.Success(8), Result.Success(2), Result.Success(3), Result.Failure("x")])
    def test_bind_associativity(self, start):
        assert result_bind_associativity_holds(start, half, dec)

    def test_match_and_default(self):
        assert Result.Success(2).match(lambda v: v * 10, len) == 20
        assert Result.Failure("abc").match(lambda v: v * 10, len) == 3
        assert Result.Success(2).get_or_default(0) == 2
        assert Result.Failure("e").get_or_default(0) == 0

    def test_to_option(self):
        assert Result.Success(1).to_option() == Option.Some(1)
        assert Result.Failure("e").to_option() == Option.Nothing()

    def test_repr(self):
        assert repr(Result.Success(1)) == "Success(1)"
        assert repr(Result.Failure("e")) == "Failure('e')"


class TestOption:
    def test_nothing_map_is_nothing(self):
        assert Option.Nothing().map(lambda x: x + 1) == Option.Nothing()

    def test_some_map(self):
        assert Option.Some(1).map(lambda x: x + 1) == Option.Some(2)

    def test_from_nullable(self):
        assert Option.from_nullable(None).is_none
        assert Option.from_nullable(0) == Option.Some(0)

    def test_filter_and_bind(self):
        assert Option.Some(4).filter(lambda x: x > 3) == Option.Some(4)
        assert Option.Some(2).filter(lambda x: x > 3) == Option.Nothing()
        assert Option.Some(2).bind(lambda x: Option.Some(x * 2)) == Option.Some(4)
        assert Option.Nothing().bind(lambda x: Option.Some(x * 2)) == Option.Nothing()

    def test_to_result(self):
        assert Option.Some(1).to_result("missing") == Result.Success(1)
        assert Option.Nothing().to_result("missing") == Result.Failure("missing")

    def test_no_truth_value(self):
        with pytest.raises(TypeError):
            bool(Option.Nothing())

    def test_match(self):
        assert Option.Some("a").match(str.upper, lambda: "none") == "A"
        assert Option.Nothing().match(str.upper, lambda: "none") == "none"
        assert repr(Option.Nothing()) == "Nothing"
