"""Page content model."""

from pydantic import BaseModel, ConfigDict, Field


class Page(BaseModel):
    """Latest revision of a page's main slot."""

    id: int = Field(..., gt=0)
    title: str
    namespace: int = 0
    latest_revision: int
    content: str
    content_model: str = "wikitext"

    model_config = ConfigDict(frozen=True)
