from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.tenancy import CompanyStatus, PersonStatus


# ---------------------------------------------------------------------------
# Plans (company plans and client plans share the rate shape)
# ---------------------------------------------------------------------------


class PlanBase(BaseModel):
    name: str = Field(min_length=1, max_length=160)
    description: str | None = None
    monthly_price: float = Field(default=0, ge=0)
    share_count: int = Field(default=1000, ge=0)
    share_price_per_thousand: float = Field(default=0, ge=0)
    download_count: int = Field(default=1000, ge=0)
    download_price_per_thousand: float = Field(default=0, ge=0)
    upload_count: int = Field(default=10, ge=0)
    upload_price_per_ten: float = Field(default=0, ge=0)
    billing_duration: int = Field(default=1, ge=1)
    features: dict[str, Any] | None = None
    is_active: bool = True


class PlanCreate(PlanBase):
    pass


class PlanUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=160)
    description: str | None = None
    monthly_price: float | None = Field(default=None, ge=0)
    share_count: int | None = Field(default=None, ge=0)
    share_price_per_thousand: float | None = Field(default=None, ge=0)
    download_count: int | None = Field(default=None, ge=0)
    download_price_per_thousand: float | None = Field(default=None, ge=0)
    upload_count: int | None = Field(default=None, ge=0)
    upload_price_per_ten: float | None = Field(default=None, ge=0)
    billing_duration: int | None = Field(default=None, ge=1)
    features: dict[str, Any] | None = None
    is_active: bool | None = None


class PlanRead(PlanBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class ClientPlanRead(PlanRead):
    company_id: UUID


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


class CompanySignup(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    contact_email: str = Field(min_length=3, max_length=255)
    contact_phone: str | None = None
    address: str | None = None
    plan_id: UUID
    admin_name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=8)


class CompanyUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    contact_phone: str | None = None
    address: str | None = None
    status: str | None = None
    plan_id: UUID | None = None


class CompanyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    contact_email: str
    contact_phone: str | None = None
    address: str | None = None
    status: CompanyStatus
    plan_id: UUID | None = None
    documents_shared: int
    documents_downloaded: int
    documents_uploaded: int
    last_invoice_paid: datetime | None = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Employees & clients
# ---------------------------------------------------------------------------


class EmployeeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    phone: str | None = None
    role: str
    password: str = Field(min_length=8)


class EmployeeUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    phone: str | None = None
    role: str | None = None
    status: str | None = None
    password: str | None = Field(default=None, min_length=8)


class EmployeeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    name: str
    email: str
    phone: str | None = None
    role: str
    status: PersonStatus
    documents_reviewed: int
    created_at: datetime


class ClientCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    phone: str | None = None
    password: str = Field(min_length=8)
    client_plan_id: UUID | None = None


class ClientUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    phone: str | None = None
    status: str | None = None
    password: str | None = Field(default=None, min_length=8)
    client_plan_id: UUID | None = None


class ClientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    name: str
    email: str
    phone: str | None = None
    status: PersonStatus
    client_plan_id: UUID | None = None
    documents_shared: int
    documents_downloaded: int
    documents_uploaded: int
    last_invoice_paid: datetime | None = None
    created_at: datetime


class AssigneeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: str
