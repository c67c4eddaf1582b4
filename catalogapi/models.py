"""Request schemas for the catalog API."""

from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntryModel(BaseModel):
    """Catalog entry: a required ``uuid`` plus arbitrary asset metadata."""

    model_config = ConfigDict(extra="allow")

    uuid: str = Field(..., min_length=1)


class PatternUploadModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pattern: EntryModel
    pattern_data: str = Field(..., alias="patternData")
    thumb_data: bytes = Field(..., alias="thumbData")

    @field_validator("thumb_data", mode="before")
    @classmethod
    def decode_thumbnail(cls, value):
        if not isinstance(value, str):
            raise ValueError("thumbData must be a base64 string")
        try:
            return base64.b64decode(value, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"thumbData is not valid base64: {exc}") from exc


class AuthRequestModel(BaseModel):
    email: str = ""
    password: str = ""

    @field_validator("email", "password", mode="before")
    @classmethod
    def normalise_blank(cls, value):
        if value is None:
            return ""
        return str(value)
