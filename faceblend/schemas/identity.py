"""Schemas for entries of the static identity pool."""
from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """One person who can be an answer or a decoy.

    The pool file uses the TMDB field names (``name``, ``profile_path``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    display_name: str = Field(..., alias="name", min_length=1)
    portrait_ref: str | None = Field(default=None, alias="profile_path")
