from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LineItem(BaseModel):
    description: str = Field(min_length=1)
    amount: float = Field(allow_inf_nan=False)


class OtherInvoicesUpdate(BaseModel):
    other_invoices: list[LineItem]
    revision: int | None = None


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    period: str
    value: float
    monthly_amount: float
    shared_amount: float
    download_amount: float
    upload_amount: float
    documents_shared: int
    documents_downloaded: int
    documents_uploaded: int
    other_invoices: list[LineItem]
    invoice_submitted: bool
    invoice_submitted_admin: bool
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    due_date: datetime
    revision: int
    created_at: datetime


class ClientInvoiceRead(InvoiceRead):
    client_id: UUID
    client_email: str


class CustomInvoiceCreate(BaseModel):
    company_id: UUID | None = None
    client_id: UUID | None = None
    is_client: bool = False
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    other_invoices: list[LineItem] = Field(min_length=1)


class CustomInvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    company_id: UUID
    client_id: UUID | None = None
    is_client: bool
    title: str
    description: str | None = None
    period: str
    value: float
    other_invoices: list[LineItem]
    invoice_submitted: bool
    invoice_submitted_admin: bool
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    due_date: datetime
    revision: int
    created_at: datetime


class ResolvedInvoiceRead(BaseModel):
    kind: str
    invoice: dict


class GenerationSummary(BaseModel):
    period: str
    created: list[UUID]
    skipped: dict[str, str]


class ReminderResult(BaseModel):
    invoice_id: UUID
    kind: str
    email: str | None = None
    sent: bool
    error: str | None = None
