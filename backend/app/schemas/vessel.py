"""Pydantic schemas for vessel search results: one canonical shape for every source."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, Field


class ResultSource(str, enum.Enum):
    """Which branch of the search fan-out produced a result.

    Declaration order is presentation priority (index first, local last).
    """

    INDEX = "index"
    REMOTE = "remote"
    REFERENCE = "reference"
    LOCAL = "local"


class VesselResult(BaseModel):
    name: str = ""
    mmsi: str = ""
    imo: str = ""
    vessel_type: str = ""
    length: Union[float, str] = ""
    beam: Union[float, str] = ""
    flag: str = ""
    callsign: str = ""
    gross_tonnage: Union[float, str] = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    destination: Optional[str] = None
    last_seen: Optional[datetime] = None
    source: ResultSource


class AggregatedSearchResult(BaseModel):
    index_results: list[VesselResult] = Field(default_factory=list)
    remote_results: list[VesselResult] = Field(default_factory=list)
    reference_results: list[VesselResult] = Field(default_factory=list)
    local_results: list[VesselResult] = Field(default_factory=list)
    total_count: int = 0


class FeedStatus(BaseModel):
    connection_status: str
    total_vessels: int = 0
    message_count: int = 0
    last_update: Optional[datetime] = None
    reconnect_attempts: int = 0


class IndexSearchResponse(BaseModel):
    message: str
    data: list[VesselResult]
    stats: FeedStatus


class LatestPosition(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    speed: Optional[float] = None
    course: Optional[float] = None
    heading: Optional[float] = None
    status: str = "Unknown"
    timestamp: Optional[str] = None
    destination: Optional[str] = None
    eta: Optional[str] = None
