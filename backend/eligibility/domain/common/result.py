"""Result<T> pattern: domain functions return this instead of raising exceptions for normal flow."""
from __future__ import annotations
from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")

# Failure codes the HTTP layer maps to status codes; None means bad input
NOT_FOUND = "not_found"
CONFLICT = "conflict"


class Result(Generic[T]):
    def __init__(
        self,
        is_success: bool,
        value: Optional[T] = None,
        error: Optional[str] = None,
        errors: Optional[List[str]] = None,
        code: Optional[str] = None,
    ):
        self.is_success = is_success
        self.value = value
        self.errors = errors or ([error] if error else [])
        self.error = error if error is not None else ("; ".join(self.errors) or None)
        self.code = code

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(is_success=True, value=value)

    @classmethod
    def fail(cls, error: str, code: Optional[str] = None) -> "Result[T]":
        return cls(is_success=False, error=error, code=code)

    @classmethod
    def fail_many(cls, errors: List[str]) -> "Result[T]":
        """Fail with every collected problem, e.g. all configuration issues of one rule."""
        return cls(is_success=False, errors=list(errors))

    @classmethod
    def not_found(cls, error: str) -> "Result[T]":
        return cls.fail(error, code=NOT_FOUND)

    def __repr__(self) -> str:
        if self.is_success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.error!r})"
