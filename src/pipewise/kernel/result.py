"""Result and Option - explicit success/failure and presence/absence containers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")
R = TypeVar("R")


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """
    Tagged union of a successful value or a failure payload.

    Kinds:
    - success: carries the produced value
    - failure: carries the error payload (an empty-string error is still a failure)

    Exactly one side is populated. There is no truth value: use match(),
    get_or_default() or the is_success / is_failure flags.
    """

    kind: Literal["success", "failure"]
    _value: T | None = None
    _error: E | None = None

    @staticmethod
    def Success(value: T) -> Result[T, Any]:
        return Result(kind="success", _value=value)

    @staticmethod
    def Failure(error: E) -> Result[Any, E]:
        return Result(kind="failure", _error=error)

    @property
    def is_success(self) -> bool:
        return self.kind == "success"

    @property
    def is_failure(self) -> bool:
        return self.kind == "failure"

    def map(self, fn: Callable[[T], U]) -> Result[U, E]:
        if self.kind == "failure":
            return self  # type: ignore[return-value]
        return Result.Success(fn(self._value))  # type: ignore[arg-type]

    def map_error(self, fn: Callable[[E], F]) -> Result[T, F]:
        if self.kind == "success":
            return self  # type: ignore[return-value]
        return Result.Failure(fn(self._error))  # type: ignore[arg-type]

    def bind(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        if self.kind == "failure":
            return self  # type: ignore[return-value]
        return fn(self._value)  # type: ignore[arg-type]

    def match(self, on_success: Callable[[T], R], on_failure: Callable[[E], R]) -> R:
        if self.kind == "success":
            return on_success(self._value)  # type: ignore[arg-type]
        return on_failure(self._error)  # type: ignore[arg-type]

    def get_or_default(self, fallback: T) -> T:
        if self.kind == "success":
            return self._value  # type: ignore[return-value]
        return fallback

    def to_option(self) -> Option[T]:
        if self.kind == "success":
            return Option.Some(self._value)  # type: ignore[arg-type]
        return Option.Nothing()

    def __bool__(self) -> bool:
        raise TypeError("Result has no truth value; use match() or is_success")

    def __repr__(self) -> str:
        if self.kind == "success":
            return f"Success({self._value!r})"
        return f"Failure({self._error!r})"


@dataclass(frozen=True)
class Option(Generic[T]):
    """
    Tagged union of a present value (some) or a legitimate absence (none).

    Absence is not an error: no similar episodes, no matching token.
    """

    kind: Literal["some", "none"]
    _value: T | None = None

    @staticmethod
    def Some(value: T) -> Option[T]:
        return Option(kind="some", _value=value)

    @staticmethod
    def Nothing() -> Option[Any]:
        return Option(kind="none")

    @staticmethod
    def from_nullable(value: T | None) -> Option[T]:
        if value is None:
            return Option.Nothing()
        return Option.Some(value)

    @property
    def is_some(self) -> bool:
        return self.kind == "some"

    @property
    def is_none(self) -> bool:
        return self.kind == "none"

    def map(self, fn: Callable[[T], U]) -> Option[U]:
        if self.kind == "none":
            return self  # type: ignore[return-value]
        return Option.Some(fn(self._value))  # type: ignore[arg-type]

    def bind(self, fn: Callable[[T], Option[U]]) -> Option[U]:
        if self.kind == "none":
            return self  # type: ignore[return-value]
        return fn(self._value)  # type: ignore[arg-type]

    def filter(self, predicate: Callable[[T], bool]) -> Option[T]:
        if self.kind == "some" and predicate(self._value):  # type: ignore[arg-type]
            return self
        return Option.Nothing()

    def match(self, on_some: Callable[[T], R], on_none: Callable[[], R]) -> R:
        if self.kind == "some":
            return on_some(self._value)  # type: ignore[arg-type]
        return on_none()

    def get_or_default(self, fallback: T) -> T:
        if self.kind == "some":
            return self._value  # type: ignore[return-value]
        return fallback

    def to_result(self, error: E) -> Result[T, E]:
        if self.kind == "some":
            return Result.Success(self._value)  # type: ignore[arg-type]
        return Result.Failure(error)

    def __bool__(self) -> bool:
        raise TypeError("Option has no truth value; use match() or is_some")

    def __repr__(self) -> str:
        if self.kind == "some":
            return f"Some({self._value!r})"
        return "Nothing"
