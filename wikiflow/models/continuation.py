"""Pagination session state."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ContinuationState(BaseModel):
    """Where a pagination session stands.

    Immutable: the engine replaces it after every page, so a captured state
    never changes underneath the caller. Serialize with ``model_dump_json``
    and restore with ``model_validate_json`` to resume in another process.

    Attributes:
        descriptor: The last ``continue`` block received (None before page 1)
        page: Number of pages fully processed
        exhausted: True once a page arrived without a continue block
    """

    descriptor: dict[str, str] | None = None
    page: int = Field(default=0, ge=0)
    exhausted: bool = False

    model_config = ConfigDict(frozen=True)

    def advance(self, descriptor: dict[str, str] | None) -> ContinuationState:
        """State after one more page carrying ``descriptor``."""
        if self.exhausted:
            raise ValueError("cannot advance an exhausted continuation state")
        return ContinuationState(
            descriptor=descriptor,
            page=self.page + 1,
            exhausted=descriptor is None,
        )
