"""SavedVessel entity: vessels an operator has stored for reuse on job forms."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, DateTime, func
from sqlalchemy.orm import Mapped, Session, mapped_column

from app.models.base import Base


class SavedVessel(Base):
    __tablename__ = "saved_vessels"

    saved_vessel_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    vessel_name: Mapped[str] = mapped_column(String(255), nullable=False)
    imo_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)
    mmsi: Mapped[Optional[str]] = mapped_column(String(9), nullable=True, index=True)
    vessel_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    loa: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    beam: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    flag: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    callsign: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    gross_tonnage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())


def list_saved_vessels(db: Session, user_id: str | None = None) -> list[SavedVessel]:
    """Saved vessels visible to *user_id*; every record when no user is given."""
    query = db.query(SavedVessel)
    if user_id:
        query = query.filter(SavedVessel.user_id == user_id)
    return query.order_by(SavedVessel.vessel_name).all()
