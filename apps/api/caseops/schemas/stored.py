"""Base model for records read back from the document store or the PII store."""

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class StoredModel(BaseModel):
    """
    Tolerant reader for stored payloads.

    Unknown keys are ignored and explicit nulls fall back to the field
    default, so a nullable column or a half-written document still parses.
    """
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data
