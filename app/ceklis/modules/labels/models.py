from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.ceklis.models import Base

if TYPE_CHECKING:
    from app.ceklis.modules.organizations.models import Organization


class Label(Base):
    __tablename__ = "labels"
    __table_args__ = (
        UniqueConstraint("name", "organization_id", name="uq_labels_name_org"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)  # e.g. "#3B82F6"
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    organization: Mapped["Organization"] = relationship("Organization", back_populates="labels")
    task_links: Mapped[list["TaskLabel"]] = relationship(
        back_populates="label",
        cascade="all, delete-orphan",
    )


class TaskLabel(Base):
    __tablename__ = "task_labels"

    task_id: Mapped[int] = mapped_column(ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    label_id: Mapped[int] = mapped_column(ForeignKey("labels.id", ondelete="CASCADE"), primary_key=True)

    label: Mapped[Label] = relationship(back_populates="task_links", lazy="joined")
