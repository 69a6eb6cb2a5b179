"""Pydantic request/response schemas for the web API."""

from typing import Optional

from pydantic import BaseModel, Field


class SweepRequest(BaseModel):
    retain_days: Optional[int] = Field(default=None, ge=0, le=3650)


class SweepResponse(BaseModel):
    deleted: int
    retain_days: int


class SectionsResponse(BaseModel):
    date_key: str
    title: str
    status: str
    sections: dict[str, str]


class ReportSummary(BaseModel):
    date_key: str
    title: str
    status: str
    revision: int
    generated_at: str
    confidence_tier: Optional[str] = None
    source: str
