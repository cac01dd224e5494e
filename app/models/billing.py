import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Platform -> company invoices
# ---------------------------------------------------------------------------


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("company_id", "period", name="uq_invoices_company_period"),
        Index("ix_invoices_period", "period"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    period: Mapped[str] = mapped_column(String(40), nullable=False)

    value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    monthly_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    shared_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    download_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    upload_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    documents_shared: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    documents_downloaded: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    documents_uploaded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    other_invoices: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    invoice_submitted: Mapped[bool] = mapped_column(Boolean, default=False)
    invoice_submitted_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __mapper_args__ = {"version_id_col": revision}

    company = relationship("Company")


# ---------------------------------------------------------------------------
# Company -> client invoices
# ---------------------------------------------------------------------------


class ClientInvoice(Base):
    __tablename__ = "client_invoices"
    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "client_email",
            "period",
            name="uq_client_invoices_company_email_period",
        ),
        Index("ix_client_invoices_client_id", "client_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clients.id"), nullable=False
    )
    client_email: Mapped[str] = mapped_column(String(255), nullable=False)
    period: Mapped[str] = mapped_column(String(40), nullable=False)

    value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    monthly_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    shared_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    download_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    upload_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    documents_shared: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    documents_downloaded: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    documents_uploaded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    other_invoices: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    invoice_submitted: Mapped[bool] = mapped_column(Boolean, default=False)
    invoice_submitted_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __mapper_args__ = {"version_id_col": revision}

    client = relationship("Client")


# ---------------------------------------------------------------------------
# Manually composed invoices
# ---------------------------------------------------------------------------


class CustomInvoice(Base):
    __tablename__ = "custom_invoices"
    __table_args__ = (Index("ix_custom_invoices_company_id", "company_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    # Set only for client-directed invoices
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clients.id")
    )
    is_client: Mapped[bool] = mapped_column(Boolean, default=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    period: Mapped[str] = mapped_column(String(40), nullable=False)

    value: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    other_invoices: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    invoice_submitted: Mapped[bool] = mapped_column(Boolean, default=False)
    invoice_submitted_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    revision: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __mapper_args__ = {"version_id_col": revision}
