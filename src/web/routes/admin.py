"""Report administration routes."""

import asyncio
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from reports.clock import parse_date_key
from reports.errors import GenerationFailure, StoreError
from web.deps import get_scheduler
from web.models import SweepRequest, SweepResponse

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/reports/{date_key}/regenerate")
async def regenerate_report(date_key: str, scheduler=Depends(get_scheduler)):
    try:
        parse_date_key(date_key)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date {date_key!r}, expected YYYY-MM-DD")
    try:
        artifact = await asyncio.to_thread(scheduler.force_regenerate, date_key)
    except GenerationFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return artifact.to_dict()


@router.post("/sweep", response_model=SweepResponse)
async def sweep_reports(
    body: Optional[SweepRequest] = Body(default=None),
    scheduler=Depends(get_scheduler),
):
    retain_days = body.retain_days if body and body.retain_days is not None else scheduler.retain_days
    try:
        deleted = await asyncio.to_thread(scheduler.sweep, retain_days)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return SweepResponse(deleted=deleted, retain_days=retain_days)


@router.get("/status")
async def get_status(scheduler=Depends(get_scheduler)):
    return await asyncio.to_thread(scheduler.get_status)
