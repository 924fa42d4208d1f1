"""Pydantic models shared by the gallery client and the insight proxy.

Split into: collection records, proxy wire format, and view-facing state.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

NO_IMAGE_URL = "https://via.placeholder.com/300?text=No+Image"
NO_IMAGE_URL_LARGE = "https://via.placeholder.com/400?text=No+Image"


# ═══════════════ COLLECTION API ═══════════════

class ArtworkRecord(BaseModel):
    """One museum object, as returned by GET /objects/{id}."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    objectID: int
    title: str | None = None
    artistDisplayName: str | None = None
    objectDate: str | None = None
    medium: str | None = None
    primaryImage: str | None = None
    primaryImageSmall: str | None = None

    @property
    def display_title(self) -> str:
        return self.title or "Untitled"

    @property
    def display_artist(self) -> str:
        return self.artistDisplayName or "Unknown Artist"

    @property
    def thumbnail_url(self) -> str:
        return self.primaryImageSmall or NO_IMAGE_URL

    @property
    def image_url(self) -> str:
        return self.primaryImage or self.primaryImageSmall or NO_IMAGE_URL_LARGE


class SearchResult(BaseModel):
    """GET /search response. objectIDs order is the paging source."""

    model_config = ConfigDict(extra="ignore")

    total: int = 0
    objectIDs: list[int] = Field(default_factory=list)

    @field_validator("objectIDs", mode="before")
    @classmethod
    def _null_ids(cls, value: Any) -> Any:
        # The Met API sends "objectIDs": null when nothing matches
        return value if value is not None else []

    @field_validator("total", mode="before")
    @classmethod
    def _null_total(cls, value: Any) -> Any:
        return value if value is not None else 0


# ═══════════════ INSIGHT PROXY WIRE FORMAT ═══════════════

class InsightRequest(BaseModel):
    """POST /api/gemini body."""

    model_config = ConfigDict(extra="ignore")

    prompt: Any = None
    objectID: int | str | None = None

    @field_validator("objectID", mode="before")
    @classmethod
    def _stringify_object_id(cls, value: Any) -> Any:
        # only used in the cache key, so any JSON value is accepted
        if value is None or isinstance(value, str) or (isinstance(value, int) and not isinstance(value, bool)):
            return value
        return str(value)

    def clean_prompt(self) -> str:
        """Prompt text, or "" when missing, empty or not a string."""
        if not isinstance(self.prompt, str):
            return ""
        return self.prompt if self.prompt.strip() else ""


class InsightResponse(BaseModel):
    text: str
    cached: bool | None = None


class ErrorResponse(BaseModel):
    error: str


# ═══════════════ VIEW-FACING STATE ═══════════════

class PagerInfo(BaseModel):
    """Pager widget state: "Showing {start}-{end} of {total}"."""

    start: int = 0
    end: int = 0
    total: int = 0
    has_prev: bool = False
    has_next: bool = False
    visible: bool = False

    @property
    def label(self) -> str:
        return f"Showing {self.start}-{self.end} of {self.total}"
