"""Pydantic schemas for API requests and responses."""

from typing import List

from pydantic import BaseModel, Field, TypeAdapter


class ShortenRequest(BaseModel):
    """Request to shorten a URL."""

    url: str = Field(..., description="The URL to shorten", min_length=1, max_length=2048)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"url": "https://example.com/very/long/path/to/resource"},
            ]
        }
    }


class ShortenResponse(BaseModel):
    """Response after shortening a URL (also used for conflicts)."""

    result: str = Field(..., description="The complete short URL")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"result": "http://127.0.0.1:8080/Ab3dE6gH9"},
            ]
        }
    }


class UserURL(BaseModel):
    """One link of the caller's session."""

    short_url: str
    original_url: str


class BatchRequestItem(BaseModel):
    """One URL of a batch request."""

    correlation_id: str
    original_url: str = Field(..., min_length=1, max_length=2048)


class BatchResponseItem(BaseModel):
    """Short URL created for one batch item."""

    correlation_id: str
    short_url: str


BatchRequest = TypeAdapter(List[BatchRequestItem])
DeleteRequest = TypeAdapter(List[str])
UserURLList = TypeAdapter(List[UserURL])
BatchResponse = TypeAdapter(List[BatchResponseItem])
