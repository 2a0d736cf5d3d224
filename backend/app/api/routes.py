from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.database import get_db
from app.models.saved_vessel import list_saved_vessels
from app.modules.aisstream_client import AISStreamManager
from app.modules.marinesia_client import MarinesiaClient, RemoteServiceError
from app.modules.normalize import from_index_record
from app.modules.vessel_aggregator import VesselSearchAggregator
from app.modules.vessel_index import VesselIndex
from app.modules.vessel_search import search_index
from app.schemas.vessel import (
    AggregatedSearchResult,
    FeedStatus,
    IndexSearchResponse,
    LatestPosition,
    VesselResult,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Dependencies: components built in the application lifespan
# ---------------------------------------------------------------------------

def get_index(request: Request) -> VesselIndex:
    return request.app.state.vessel_index


def get_feed(request: Request) -> AISStreamManager:
    return request.app.state.feed


def get_marinesia(request: Request) -> MarinesiaClient:
    return request.app.state.marinesia


def get_aggregator(request: Request) -> VesselSearchAggregator:
    return request.app.state.aggregator


def _require_query(query: str) -> str:
    trimmed = query.strip()
    if len(trimmed) < settings.SEARCH_MIN_QUERY_LENGTH:
        raise HTTPException(
            status_code=422,
            detail=f"Search query must be at least {settings.SEARCH_MIN_QUERY_LENGTH} characters",
        )
    return trimmed


# ---------------------------------------------------------------------------
# Vessel search
# ---------------------------------------------------------------------------

@router.get("/vessels/search", response_model=AggregatedSearchResult, tags=["vessels"])
async def search_vessels(
    query: str = Query(..., description="MMSI, IMO, or vessel name"),
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    aggregator: VesselSearchAggregator = Depends(get_aggregator),
):
    """Search the live index, Marinesia, the reference fleet and saved vessels at once."""
    trimmed = _require_query(query)

    async def load_saved():
        return await run_in_threadpool(list_saved_vessels, db, x_user_id)

    return await aggregator.search(trimmed, load_local=load_saved)


# ---------------------------------------------------------------------------
# aisstream index
# ---------------------------------------------------------------------------

@router.get("/aisstream/search", response_model=IndexSearchResponse, tags=["aisstream"])
async def search_aisstream(
    query: str = Query(..., description="MMSI, IMO, or vessel name"),
    index: VesselIndex = Depends(get_index),
    feed: AISStreamManager = Depends(get_feed),
):
    trimmed = _require_query(query)
    results = search_index(index, trimmed, limit=settings.SEARCH_RESULT_LIMIT)
    return IndexSearchResponse(
        message=f"Found {len(results)} vessels",
        data=results,
        stats=feed.status(),
    )


@router.get("/aisstream/vessel/{mmsi}", response_model=VesselResult, tags=["aisstream"])
async def get_aisstream_vessel(mmsi: str, index: VesselIndex = Depends(get_index)):
    record = index.get(mmsi.strip())
    if record is None:
        raise HTTPException(status_code=404, detail="Vessel not found in aisstream index")
    return from_index_record(record)


@router.get("/aisstream/status", response_model=FeedStatus, tags=["aisstream"])
async def aisstream_status(feed: AISStreamManager = Depends(get_feed)):
    return feed.status()


# ---------------------------------------------------------------------------
# Marinesia lookups
# ---------------------------------------------------------------------------

def _require_marinesia(client: MarinesiaClient) -> MarinesiaClient:
    if not client.is_configured:
        raise HTTPException(status_code=503, detail="Marinesia API not configured")
    return client


@router.get("/marinesia/vessel/profile", response_model=list[VesselResult], tags=["marinesia"])
async def marinesia_search(
    filters: str = Query(..., description="Marinesia filter expression, e.g. name:EVER GIVEN"),
    limit: int = Query(10, ge=1, le=100),
    client: MarinesiaClient = Depends(get_marinesia),
):
    client = _require_marinesia(client)
    try:
        return await client.search_profiles(filters, limit=limit)
    except RemoteServiceError as exc:
        logger.warning("Marinesia search failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc))


@router.get("/marinesia/vessel/{mmsi}/profile", response_model=VesselResult, tags=["marinesia"])
async def marinesia_profile(mmsi: str, client: MarinesiaClient = Depends(get_marinesia)):
    client = _require_marinesia(client)
    try:
        profile = await client.get_profile(mmsi)
    except RemoteServiceError as exc:
        logger.warning("Marinesia profile lookup failed for %s: %s", mmsi, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    if profile is None:
        raise HTTPException(status_code=404, detail="Vessel not found in Marinesia database")
    return profile


@router.get(
    "/marinesia/vessel/{mmsi}/location/latest",
    response_model=LatestPosition,
    tags=["marinesia"],
)
async def marinesia_latest_location(mmsi: str, client: MarinesiaClient = Depends(get_marinesia)):
    client = _require_marinesia(client)
    try:
        position = await client.get_latest_location(mmsi)
    except RemoteServiceError as exc:
        logger.warning("Marinesia location lookup failed for %s: %s", mmsi, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    if position is None:
        raise HTTPException(status_code=404, detail="No location data available for this vessel")
    return position


# ---------------------------------------------------------------------------
# System / Health
# ---------------------------------------------------------------------------

@router.get("/health", tags=["system"])
def health_check(
    db: Session = Depends(get_db),
    feed: AISStreamManager = Depends(get_feed),
):
    """Health check with DB latency measurement and live feed status."""
    from sqlalchemy import text

    t0 = time.time()
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        db_status = f"error: {e}"
    latency_ms = round((time.time() - t0) * 1000, 1)

    return {
        "status": "ok",
        "version": "0.1.0",
        "database": {"status": db_status, "latency_ms": latency_ms},
        "feed": feed.status().model_dump(mode="json"),
    }
