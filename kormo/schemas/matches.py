from typing import Literal
from pydantic import BaseModel, Field, field_validator

JOB_LEVELS = ("Entry", "Intermediate", "Senior", "Expert")


class MatchSuggestion(BaseModel):
    """Job search keywords and level suggested by the model for a profile."""
    keywords: list[str] = Field(..., min_length=1)
    level: Literal["Entry", "Intermediate", "Senior", "Expert"]

    @field_validator("keywords", mode="before")
    @classmethod
    def _clean_keywords(cls, value):
        if not isinstance(value, list):
            raise ValueError("keywords must be a list")
        cleaned = [str(k).strip() for k in value if k is not None and str(k).strip()]
        return cleaned[:3]

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value):
        if isinstance(value, str):
            for level in JOB_LEVELS:
                if value.strip().lower() == level.lower():
                    return level
        return value


class FindBestMatchesResponse(BaseModel):
    data: MatchSuggestion
