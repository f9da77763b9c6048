"""Request schemas for public verification."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FuzzyVerificationRequest(BaseModel):
    """Describe content to match against registered works."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    content: str | None = Field(default=None, max_length=100_000)
    metadata: dict[str, Any] | None = None
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)
