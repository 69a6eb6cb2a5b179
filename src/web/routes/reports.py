"""Daily report and live consensus routes."""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from forecast.models import Location
from reports.clock import parse_date_key
from reports.errors import GenerationFailure
from reports.sections import parse_sections
from web.deps import get_coordinator
from web.models import ReportSummary, SectionsResponse

router = APIRouter(prefix="/api", tags=["reports"])


def _check_date_key(date_key: str) -> str:
    try:
        parse_date_key(date_key)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date {date_key!r}, expected YYYY-MM-DD")
    return date_key


async def _load(coordinator, date_key: Optional[str]):
    # Runs in a worker thread: a disconnected client abandons only its own wait
    try:
        return await asyncio.to_thread(coordinator.get_or_generate, date_key)
    except GenerationFailure as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/reports", response_model=list[ReportSummary])
async def list_reports(
    days: int = Query(default=7, ge=1, le=365),
    coordinator=Depends(get_coordinator),
):
    """Cached reports from the last ``days`` days, newest first. Never generates."""
    artifacts = await asyncio.to_thread(coordinator.store.list_recent, days)
    return [a.summary() for a in artifacts]


@router.get("/reports/today")
async def get_today(coordinator=Depends(get_coordinator)):
    artifact = await _load(coordinator, None)
    return artifact.to_dict()


@router.get("/reports/{date_key}")
async def get_report(date_key: str, coordinator=Depends(get_coordinator)):
    artifact = await _load(coordinator, _check_date_key(date_key))
    return artifact.to_dict()


@router.get("/reports/{date_key}/sections", response_model=SectionsResponse)
async def get_report_sections(
    date_key: str,
    species: Optional[str] = Query(default=None, description="Comma-separated species"),
    coordinator=Depends(get_coordinator),
):
    artifact = await _load(coordinator, _check_date_key(date_key))
    wanted = [s.strip() for s in species.split(",") if s.strip()] if species else None
    return SectionsResponse(
        date_key=artifact.date_key,
        title=artifact.title,
        status=str(artifact.status),
        sections=parse_sections(artifact.content, wanted),
    )


@router.get("/consensus")
async def get_consensus(
    lat: Optional[float] = Query(default=None, ge=-90, le=90),
    lng: Optional[float] = Query(default=None, ge=-180, le=180),
    date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    coordinator=Depends(get_coordinator),
):
    """Live consensus schedule; nothing is cached."""
    day = parse_date_key(_check_date_key(date)) if date else None
    location = None
    if lat is not None and lng is not None:
        location = Location(latitude=lat, longitude=lng, timezone=coordinator.location.timezone)
    elif lat is not None or lng is not None:
        raise HTTPException(status_code=400, detail="lat and lng must be given together")
    schedule = await asyncio.to_thread(coordinator.build_schedule, location, day)
    return schedule.to_dict()
