import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
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


# ---------------------------------------------------------------------------
# Enums & roles
# ---------------------------------------------------------------------------


class CompanyStatus(enum.Enum):
    active = "Active"
    inactive = "Inactive"


class PersonStatus(enum.Enum):
    active = "active"
    inactive = "inactive"


class Role(str, enum.Enum):
    owner = "Owner"
    manager = "Manager"
    scanner = "Scanner"
    indexer = "Indexer"
    qa = "QA"
    admin = "Admin"
    client = "Client"


EMPLOYEE_ROLES = frozenset(r for r in Role if r is not Role.client)


def normalize_role(value: str | None) -> Role | None:
    """Case-insensitive lookup of a role name; None when unknown."""
    if not value:
        return None
    wanted = value.strip().lower()
    for role in Role:
        if role.value.lower() == wanted:
            return role
    return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


class PlanRatesMixin:
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    monthly_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    share_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    share_price_per_thousand: Mapped[float] = mapped_column(
        Float, nullable=False, default=0
    )
    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    download_price_per_thousand: Mapped[float] = mapped_column(
        Float, nullable=False, default=0
    )
    upload_count: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    upload_price_per_ten: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    billing_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    features: Mapped[dict | None] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class Plan(PlanRatesMixin, Base):
    __tablename__ = "plans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    companies = relationship("Company", back_populates="plan")


class ClientPlan(PlanRatesMixin, Base):
    __tablename__ = "client_plans"
    __table_args__ = (Index("ix_client_plans_company_id", "company_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )

    clients = relationship("Client", back_populates="plan")


# ---------------------------------------------------------------------------
# Companies (tenants)
# ---------------------------------------------------------------------------


class Company(Base):
    __tablename__ = "companies"
    __table_args__ = (
        UniqueConstraint("contact_email", name="uq_companies_contact_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(40))
    address: Mapped[str | None] = mapped_column(Text)
    status: Mapped[CompanyStatus] = mapped_column(
        Enum(CompanyStatus), default=CompanyStatus.active
    )
    plan_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("plans.id")
    )

    # Usage since the last settled invoice
    documents_shared: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    documents_downloaded: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    documents_uploaded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_invoice_paid: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    plan = relationship("Plan", back_populates="companies")
    employees = relationship("Employee", back_populates="company")
    clients = relationship("Client", back_populates="company")


# ---------------------------------------------------------------------------
# People: employees and clients live in separate tables
# ---------------------------------------------------------------------------


class Employee(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_company_id", "company_id"),
        Index("ix_users_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40))
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[PersonStatus] = mapped_column(
        Enum(PersonStatus), default=PersonStatus.active
    )
    documents_reviewed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    company = relationship("Company", back_populates="employees")


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (
        Index("ix_clients_company_id", "company_id"),
        Index("ix_clients_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    company_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("companies.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(40))
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[PersonStatus] = mapped_column(
        Enum(PersonStatus), default=PersonStatus.active
    )
    client_plan_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("client_plans.id")
    )

    documents_shared: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    documents_downloaded: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    documents_uploaded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_invoice_paid: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    company = relationship("Company", back_populates="clients")
    plan = relationship("ClientPlan", back_populates="clients")

    @property
    def role(self) -> str:
        return Role.client.value
