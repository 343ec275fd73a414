from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ceklis.models import Base, User

if TYPE_CHECKING:
    from app.ceklis.modules.teams.models import Team
    from app.ceklis.modules.tasks.models import Task


class Epic(Base):
    __tablename__ = "epics"
    __table_args__ = (
        Index("idx_epics_team_id", "team_id"),
        Index("idx_epics_organization_id", "organization_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="PLANNING")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    created_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    team: Mapped["Team"] = relationship("Team", back_populates="epics", lazy="joined")
    created_by: Mapped[User | None] = relationship(lazy="joined")
    tasks: Mapped[list["Task"]] = relationship(
        "Task",
        back_populates="epic",
        lazy="selectin",
        order_by="Task.created_at.desc()",
    )

    @property
    def completed_task_count(self) -> int:
        return sum(1 for t in self.tasks if t.status == "DONE")

    @property
    def progress_percentage(self) -> int:
        total = len(self.tasks)
        return round(self.completed_task_count / total * 100) if total else 0

    @property
    def is_overdue(self) -> bool:
        return bool(self.due_date and self.due_date < date.today() and self.status != "COMPLETED")
