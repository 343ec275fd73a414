from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ceklis.models import Base, User
from app.ceklis.modules.labels.models import TaskLabel

if TYPE_CHECKING:
    from app.ceklis.modules.teams.models import Team
    from app.ceklis.modules.epics.models import Epic


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_team_status_position", "team_id", "status", "position"),
        Index("idx_tasks_epic_id", "epic_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="BACKLOG")
    priority: Mapped[str] = mapped_column(String(16), nullable=False, default="MEDIUM")
    estimation: Mapped[int | None] = mapped_column(Integer, nullable=True)  # story points
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    team_id: Mapped[int] = mapped_column(ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    epic_id: Mapped[int | None] = mapped_column(ForeignKey("epics.id", ondelete="SET NULL"), nullable=True)
    assignee_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    team: Mapped["Team"] = relationship("Team", back_populates="tasks", lazy="joined")
    epic: Mapped["Epic | None"] = relationship("Epic", back_populates="tasks")
    assignee: Mapped[User | None] = relationship(foreign_keys=[assignee_id], lazy="joined")
    created_by: Mapped[User | None] = relationship(foreign_keys=[created_by_user_id])
    label_links: Mapped[list[TaskLabel]] = relationship(
        TaskLabel,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def labels(self):
        return [link.label for link in self.label_links]
