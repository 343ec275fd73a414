from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ceklis.models import Base, User

if TYPE_CHECKING:
    from app.ceklis.modules.teams.models import Team


class DailyCheckin(Base):
    __tablename__ = "daily_checkins"
    __table_args__ = (
        UniqueConstraint("user_id", "team_id", "date", name="uq_daily_checkins_user_team_date"),
        Index("idx_daily_checkins_team_date", "team_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    yesterday_accomplishments: Mapped[str] = mapped_column(Text, nullable=False, default="Not provided")
    today_goals: Mapped[str] = mapped_column(Text, nullable=False)
    blockers: Mapped[str | None] = mapped_column(Text, nullable=True)
    mood: Mapped[str] = mapped_column(String(16), nullable=False)  # EXCELLENT, GOOD, OKAY, STRUGGLING
    energy_level: Mapped[int] = mapped_column(Integer, nullable=False, default=3)  # 1..5
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=dt.datetime.utcnow)

    user: Mapped[User] = relationship(lazy="joined")
    team: Mapped["Team"] = relationship("Team", back_populates="checkins", lazy="joined")
