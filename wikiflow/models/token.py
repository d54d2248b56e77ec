"""Authorization token model."""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from ..core.enums import TokenKind


class Token(BaseModel):
    """Short-lived token owned by the token cache.

    Only the cache flips ``valid``; callers receive the shared instance.
    """

    kind: TokenKind
    value: str = Field(..., min_length=1)
    acquired_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    valid: bool = True

    model_config = ConfigDict(validate_assignment=True)

    def invalidate(self) -> None:
        self.valid = False

    def __repr__(self) -> str:
        return f"Token(kind={self.kind.value}, valid={self.valid}, acquired_at={self.acquired_at.isoformat()})"
