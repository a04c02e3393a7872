"""Common result type for input validators."""

from pydantic import BaseModel


class ValidationResult(BaseModel):
    """Outcome of a validator.

    Single-field validators report one message in ``error``; aggregate
    validators collect every failure in ``errors``.
    """

    is_valid: bool
    error: str | None = None
    errors: list[str] | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        """Aggregate result; ``errors`` is None when there are no failures."""
        return cls(is_valid=not errors, errors=errors or None)

    @property
    def messages(self) -> list[str]:
        """All failure messages regardless of which field carries them."""
        if self.errors:
            return list(self.errors)
        return [self.error] if self.error else []

    def raise_for_errors(self) -> None:
        """Raise ValueError joining every failure message.

        Raises:
            ValueError: If the result is invalid
        """
        if not self.is_valid:
            raise ValueError("; ".join(self.messages) or "Invalid input")
