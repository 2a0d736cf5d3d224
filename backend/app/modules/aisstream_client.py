"""aisstream.io WebSocket client: keeps the in-memory vessel index fresh.

Connects to wss://stream.aisstream.io/v0/stream with a global subscription for
ShipStaticData, PositionReport and StaticDataReport messages, and upserts every
parsed message into a ``VesselIndex``.

The manager runs as a single background task for the life of the process.
Disconnections are retried with capped exponential backoff (1s, 2s, 4s ... 30s)
up to a fixed number of consecutive attempts; after that it stays disconnected
until ``start()`` is called again.  Connection problems never propagate to
index readers: the data simply stops getting fresher.

Usage:
    from app.modules.aisstream_client import AISStreamManager
    manager = AISStreamManager(index, api_key=settings.AISSTREAM_API_KEY)
    await manager.start()
    ...
    await manager.stop()
"""
from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import Any, Awaitable, Callable

import websockets

from app.config import settings
from app.modules.vessel_index import (
    CombinedReportUpdate,
    FeedUpdate,
    PositionUpdate,
    StaticDataUpdate,
    VesselIndex,
)
from app.schemas.vessel import FeedStatus

logger = logging.getLogger(__name__)

GLOBAL_BOUNDING_BOXES = [[[-90, -180], [90, 180]]]
SUBSCRIBED_MESSAGE_TYPES = ["ShipStaticData", "PositionReport", "StaticDataReport"]


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    NOT_CONFIGURED = "not_configured"


def reconnect_delay(attempts: int, base: float = 1.0, cap: float = 30.0) -> float:
    """Backoff before reconnect number *attempts* (0-based), in seconds."""
    return min(base * (2 ** attempts), cap)


# ---------------------------------------------------------------------------
# Message projection
# ---------------------------------------------------------------------------


def _clean_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _dimension_sum(dim: dict | None, first: str, second: str) -> float | None:
    """Sum two reference-point offsets; None when no dimension was reported."""
    if not dim:
        return None
    total = (dim.get(first, 0) or 0) + (dim.get(second, 0) or 0)
    return total if total > 0 else None


def _map_static_data(static: dict, meta: dict) -> StaticDataUpdate:
    dim = static.get("Dimension")
    imo = str(static.get("ImoNumber") or "").strip()
    return StaticDataUpdate(
        name=_clean_str(static.get("Name")) or _clean_str(meta.get("ShipName")),
        imo=imo if imo not in ("", "0") else None,
        call_sign=_clean_str(static.get("CallSign")),
        ship_type=static.get("Type") or None,
        destination=_clean_str(static.get("Destination")),
        eta=static.get("Eta"),
        draught=static.get("MaximumStaticDraught"),
        length=_dimension_sum(dim, "A", "B"),
        beam=_dimension_sum(dim, "C", "D"),
    )


def _map_position_report(report: dict) -> PositionUpdate:
    return PositionUpdate(
        latitude=report.get("Latitude"),
        longitude=report.get("Longitude"),
        course_over_ground=report.get("Cog"),
        speed_over_ground=report.get("Sog"),
        heading=report.get("TrueHeading"),
        navigational_status=report.get("NavigationalStatus"),
    )


def _map_static_data_report(report: dict) -> CombinedReportUpdate:
    """Class B static report: part A carries the name, part B the rest."""
    name = None
    call_sign = ship_type = length = beam = None

    part_a = report.get("ReportA") or {}
    if part_a.get("Valid"):
        name = _clean_str(part_a.get("Name"))

    part_b = report.get("ReportB") or {}
    if part_b.get("Valid"):
        call_sign = _clean_str(part_b.get("CallSign"))
        ship_type = part_b.get("ShipType") or None
        dim = part_b.get("Dimension")
        length = _dimension_sum(dim, "A", "B")
        beam = _dimension_sum(dim, "C", "D")

    return CombinedReportUpdate(
        name=name, call_sign=call_sign, ship_type=ship_type, length=length, beam=beam,
    )


def parse_feed_message(msg: Any) -> tuple[str, FeedUpdate] | None:
    """Project an aisstream message onto ``(mmsi, update)``.

    Returns None for anything that is not a usable vessel message.
    """
    try:
        if not isinstance(msg, dict):
            return None
        meta = msg.get("MetaData") or {}
        mmsi = meta.get("MMSI")
        if not mmsi:
            return None
        mmsi = str(mmsi)

        msg_type = msg.get("MessageType")
        body = (msg.get("Message") or {}).get(msg_type) if msg_type else None
        if not body:
            return None

        if msg_type == "ShipStaticData":
            return mmsi, _map_static_data(body, meta)
        if msg_type == "PositionReport":
            return mmsi, _map_position_report(body)
        if msg_type == "StaticDataReport":
            return mmsi, _map_static_data_report(body)
        return None
    except Exception as exc:
        logger.debug("Failed to map aisstream message: %s", exc)
        return None


# ---------------------------------------------------------------------------
# Connection manager
# ---------------------------------------------------------------------------


class AISStreamManager:
    """Owns the single aisstream.io connection and its reconnect policy."""

    def __init__(
        self,
        index: VesselIndex,
        api_key: str | None = None,
        ws_url: str | None = None,
        max_reconnect_attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        log_every: int | None = None,
        connect: Callable[[str], Any] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.index = index
        self._api_key = api_key
        self._ws_url = ws_url or settings.AISSTREAM_WS_URL
        self.max_reconnect_attempts = (
            settings.AISSTREAM_MAX_RECONNECT_ATTEMPTS
            if max_reconnect_attempts is None else max_reconnect_attempts
        )
        self._base_delay = settings.AISSTREAM_BASE_DELAY_SECONDS if base_delay is None else base_delay
        self._max_delay = settings.AISSTREAM_MAX_DELAY_SECONDS if max_delay is None else max_delay
        self._log_every = log_every or settings.AISSTREAM_LOG_EVERY
        self._connect = connect or websockets.connect
        self._sleep = sleep or asyncio.sleep

        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0
        self.connections_opened = 0
        self._task: asyncio.Task | None = None

    @property
    def is_attached(self) -> bool:
        """True when a feed credential is configured, i.e. the index is live."""
        return bool(self._api_key)

    def subscription(self) -> dict:
        return {
            "APIKey": self._api_key,
            "BoundingBoxes": GLOBAL_BOUNDING_BOXES,
            "FilterMessageTypes": SUBSCRIBED_MESSAGE_TYPES,
        }

    def status(self) -> FeedStatus:
        stats = self.index.stats()
        return FeedStatus(
            connection_status=self.state.value,
            total_vessels=stats["total_vessels"],
            message_count=stats["message_count"],
            last_update=stats["last_update"],
            reconnect_attempts=self.reconnect_attempts,
        )

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Start streaming in the background; a no-op without an API key."""
        if not self._api_key:
            logger.warning("AISSTREAM_API_KEY not configured: live vessel index disabled")
            self.state = ConnectionState.NOT_CONFIGURED
            return
        if self._task is not None and not self._task.done():
            return
        self.reconnect_attempts = 0
        self._task = asyncio.create_task(self._run(), name="aisstream-feed")

    async def stop(self) -> None:
        """Cancel the feed task, including any pending reconnect."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self.state is not ConnectionState.NOT_CONFIGURED:
            self.state = ConnectionState.DISCONNECTED

    async def wait(self) -> None:
        """Block until the feed task finishes (retries exhausted or stopped)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _run(self) -> None:
        while True:
            await self._stream_once()

            if self.reconnect_attempts >= self.max_reconnect_attempts:
                logger.error(
                    "aisstream.io connection lost after %d reconnect attempts: giving up",
                    self.reconnect_attempts,
                )
                self.state = ConnectionState.DISCONNECTED
                return

            delay = reconnect_delay(self.reconnect_attempts, self._base_delay, self._max_delay)
            logger.info(
                "Reconnecting to aisstream.io in %.0fs (attempt %d/%d)",
                delay, self.reconnect_attempts + 1, self.max_reconnect_attempts,
            )
            await self._sleep(delay)
            self.reconnect_attempts += 1

    async def _stream_once(self) -> None:
        """Hold one connection open until it closes or fails."""
        self.state = ConnectionState.CONNECTING
        logger.info("Connecting to aisstream.io")
        try:
            async with self._connect(self._ws_url) as ws:
                self.state = ConnectionState.CONNECTED
                self.reconnect_attempts = 0
                self.connections_opened += 1
                await ws.send(json.dumps(self.subscription()))
                logger.info("Subscribed to global AIS feed")

                async for raw_msg in ws:
                    self.handle_raw(raw_msg)

            logger.info("aisstream.io stream closed by server")
            self.state = ConnectionState.DISCONNECTED
        except (websockets.ConnectionClosed, websockets.WebSocketException, OSError) as exc:
            logger.warning("aisstream.io connection error: %s", exc)
            self.state = ConnectionState.ERROR
        except Exception as exc:
            logger.exception("aisstream.io unexpected error: %s", exc)
            self.state = ConnectionState.ERROR

    # -- messages ------------------------------------------------------------

    def handle_raw(self, raw_msg: str | bytes) -> bool:
        """Parse one frame and upsert it; malformed frames are dropped."""
        try:
            msg = json.loads(raw_msg)
        except (TypeError, ValueError):
            return False

        parsed = parse_feed_message(msg)
        if parsed is None:
            return False

        mmsi, update = parsed
        self.index.upsert(mmsi, update)
        if self.index.message_count % self._log_every == 0:
            logger.info("aisstream.io: %d vessels indexed", len(self.index))
        return True
