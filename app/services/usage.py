from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.models.billing import ClientInvoice, Invoice
from app.models.documents import Dispute, Document
from app.models.tenancy import Client, Company, CompanyStatus, Employee
from app.services.auth import Actor
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)


class UsageField(enum.Enum):
    shared = "documents_shared"
    downloaded = "documents_downloaded"
    uploaded = "documents_uploaded"


class UsageCounters:
    """Owns every mutation of the per-tenant and per-client usage counters.

    Increments are single ``UPDATE ... SET col = col + n`` statements so
    concurrent document actions never lose updates. Callers commit.
    """

    @staticmethod
    def _owner(actor: Actor):
        if actor.is_client:
            return Client, actor.person_id
        return Company, actor.company_id

    @staticmethod
    def increment(db: Session, actor: Actor, field: UsageField, amount: int = 1) -> None:
        model, row_id = UsageCounters._owner(actor)
        column = getattr(model, field.value)
        db.execute(
            update(model)
            .where(model.id == coerce_uuid(row_id))
            .values({field.value: column + amount})
        )
        logger.debug(
            "Incremented %s.%s for %s by %d",
            model.__tablename__,
            field.value,
            row_id,
            amount,
        )

    @staticmethod
    def increment_reviewed(db: Session, employee_id) -> None:
        db.execute(
            update(Employee)
            .where(Employee.id == coerce_uuid(employee_id))
            .values(documents_reviewed=Employee.documents_reviewed + 1)
        )

    @staticmethod
    def _reset(db: Session, model, row_id, now: datetime | None) -> None:
        db.execute(
            update(model)
            .where(model.id == coerce_uuid(row_id))
            .values(
                documents_shared=0,
                documents_downloaded=0,
                documents_uploaded=0,
                last_invoice_paid=now or datetime.now(timezone.utc),
            )
        )
        logger.info("Reset usage counters for %s %s", model.__tablename__, row_id)

    @staticmethod
    def reset_company(db: Session, company_id, now: datetime | None = None) -> None:
        UsageCounters._reset(db, Company, company_id, now)

    @staticmethod
    def reset_client(db: Session, client_id, now: datetime | None = None) -> None:
        UsageCounters._reset(db, Client, client_id, now)


# ---------------------------------------------------------------------------
# Dashboard metrics
# ---------------------------------------------------------------------------


def _count(db: Session, stmt) -> int:
    return db.scalar(select(func.count()).select_from(stmt.subquery())) or 0


def dashboard(db: Session, actor: Actor) -> dict:
    company_id = coerce_uuid(actor.company_id)
    documents = select(Document.id).where(Document.company_id == company_id)
    if actor.is_client:
        documents = documents.where(Document.added_by == actor.person_id)

    by_stage = dict(
        db.execute(
            select(Document.progress_number, func.count())
            .where(Document.id.in_(documents))
            .group_by(Document.progress_number)
        ).all()
    )
    counters_row = (
        db.get(Client, actor.person_id)
        if actor.is_client
        else db.get(Company, company_id)
    )
    usage = {
        field.value: getattr(counters_row, field.value, 0) if counters_row else 0
        for field in UsageField
    }
    return {
        "documents_total": _count(db, documents),
        "documents_by_stage": {str(k): v for k, v in sorted(by_stage.items())},
        "documents_published": _count(
            db, documents.where(Document.is_published.is_(True))
        ),
        "pending_for_me": _count(
            db,
            select(Document.id)
            .where(Document.company_id == company_id)
            .where(Document.passed_to == actor.person_id)
            .where(Document.is_published.is_(False)),
        ),
        "users": _count(db, select(Employee.id).where(Employee.company_id == company_id)),
        "clients": _count(db, select(Client.id).where(Client.company_id == company_id)),
        "open_disputes": _count(
            db,
            select(Dispute.id)
            .where(Dispute.company_id == company_id)
            .where(Dispute.resolve.is_(False)),
        ),
        "usage": usage,
    }


def platform_dashboard(db: Session) -> dict:
    unpaid = select(Invoice.id, Invoice.value).where(
        Invoice.invoice_submitted.is_(False)
    )
    outstanding = db.scalar(
        select(func.coalesce(func.sum(Invoice.value), 0)).where(
            Invoice.invoice_submitted.is_(False)
        )
    )
    return {
        "companies_total": _count(db, select(Company.id)),
        "companies_active": _count(
            db, select(Company.id).where(Company.status == CompanyStatus.active)
        ),
        "documents_total": _count(db, select(Document.id)),
        "unpaid_invoices": _count(db, unpaid),
        "outstanding_value": float(outstanding or 0),
        "unpaid_client_invoices": _count(
            db,
            select(ClientInvoice.id).where(ClientInvoice.invoice_submitted.is_(False)),
        ),
    }
