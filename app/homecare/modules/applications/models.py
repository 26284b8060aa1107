from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.homecare.constants import CLIENT_STATUS_ACTIVE
from app.homecare.models import Base, new_id


class Client(Base):
    """A patient/client record owned by an agency (company owner)."""

    __tablename__ = "clients"
    __table_args__ = (Index("idx_clients_company_owner", "company_owner_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    company_owner_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=CLIENT_STATUS_ACTIVE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    applications: Mapped[list["Application"]] = relationship(back_populates="client", lazy="selectin")


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        Index("idx_applications_company_owner", "company_owner_id"),
        Index("idx_applications_assigned_expert", "assigned_expert_id"),
        Index("idx_applications_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    client_id: Mapped[str | None] = mapped_column(ForeignKey("clients.id", ondelete="SET NULL"), nullable=True)
    company_owner_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    assigned_expert_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    application_name: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # open -> closed (closing requires progress_percentage == 100)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="open")
    progress_percentage: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0)

    started_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    last_updated_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    client: Mapped["Client"] = relationship(back_populates="applications")
    steps: Mapped[list["ApplicationStep"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationStep.step_order",
        lazy="selectin",
    )
    documents: Mapped[list["ApplicationDocument"]] = relationship(
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ApplicationStep(Base):
    __tablename__ = "application_steps"
    __table_args__ = (Index("idx_application_steps_application", "application_id", "step_order"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    application_id: Mapped[str] = mapped_column(ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)
    step_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    step_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    phase: Mapped[str | None] = mapped_column(String(128), nullable=True)  # expert steps only
    is_expert_step: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    application: Mapped[Application] = relationship(back_populates="steps")


class ApplicationDocument(Base):
    __tablename__ = "application_documents"
    __table_args__ = (Index("idx_application_documents_application", "application_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    application_id: Mapped[str] = mapped_column(ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)
    document_name: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    uploaded_by_user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    application: Mapped[Application] = relationship(back_populates="documents")
