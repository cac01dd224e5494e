from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config import settings
from app.metrics import INVOICE_REMINDERS, INVOICES_GENERATED
from app.models.billing import ClientInvoice, CustomInvoice, Invoice
from app.models.tenancy import (
    Client,
    Company,
    CompanyStatus,
    PersonStatus,
    Role,
)
from app.schemas.billing import CustomInvoiceCreate
from app.services.auth import Actor
from app.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    month_diff,
    period_label,
    round4,
)
from app.services.email import invoice_email, queue_email, reminder_email, send_email
from app.services.response import ListResponseMixin
from app.services.usage import UsageCounters

logger = logging.getLogger(__name__)


class InvoiceKind(enum.Enum):
    company = "invoice"
    client = "client_invoice"
    custom = "custom_invoice"


# Lookup priority when an id is resolved without knowing its kind
_RESOLUTION_ORDER = (
    (InvoiceKind.company, Invoice),
    (InvoiceKind.client, ClientInvoice),
    (InvoiceKind.custom, CustomInvoice),
)


@dataclass(frozen=True)
class ResolvedInvoice:
    kind: InvoiceKind
    row: Invoice | ClientInvoice | CustomInvoice


@dataclass(frozen=True)
class InvoiceAmounts:
    monthly_amount: float
    shared_amount: float
    download_amount: float
    upload_amount: float
    value: float


def _divisor(count) -> float:
    return count if count and count > 0 else 1


def compute_amounts(plan, shared: int, downloaded: int, uploaded: int) -> InvoiceAmounts:
    """Price one billing period from usage counters and plan rates."""
    shared_amount = round4(
        (shared or 0) / _divisor(plan.share_count) * (plan.share_price_per_thousand or 0)
    )
    download_amount = round4(
        (downloaded or 0)
        / _divisor(plan.download_count)
        * (plan.download_price_per_thousand or 0)
    )
    upload_amount = round4(
        (uploaded or 0) / _divisor(plan.upload_count) * (plan.upload_price_per_ten or 0)
    )
    monthly = plan.monthly_price or 0
    return InvoiceAmounts(
        monthly_amount=round4(monthly),
        shared_amount=shared_amount,
        download_amount=download_amount,
        upload_amount=upload_amount,
        value=round4(monthly + shared_amount + download_amount + upload_amount),
    )


def line_items_total(items) -> float:
    return sum(float(item["amount"]) for item in (items or []))


def is_due(plan, last_paid: datetime, now: datetime) -> bool:
    return month_diff(now, last_paid) >= (plan.billing_duration or 1)


def resolve_invoice(db: Session, invoice_id) -> ResolvedInvoice:
    invoice_uuid = coerce_uuid(invoice_id)
    for kind, model in _RESOLUTION_ORDER:
        row = db.get(model, invoice_uuid)
        if row is not None:
            return ResolvedInvoice(kind=kind, row=row)
    raise HTTPException(status_code=404, detail="Invoice not found")


def _commit_versioned(db: Session) -> None:
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        raise HTTPException(
            status_code=409, detail="Invoice was modified concurrently"
        )


def _insert_once(db: Session, invoice) -> bool:
    """Insert unless the (payer, period) unique key already exists."""
    try:
        with db.begin_nested():
            db.add(invoice)
            db.flush()
    except IntegrityError:
        logger.info("Invoice for period %s already exists, skipping", invoice.period)
        return False
    return True


def _line_items(items) -> list[dict]:
    return [
        {"description": item.description, "amount": round4(item.amount)}
        if hasattr(item, "description")
        else {"description": item["description"], "amount": round4(item["amount"])}
        for item in items
    ]


class InvoiceEngine(ListResponseMixin):
    # ------------------------------------------------------------------
    # Periodic generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_company_invoices(db: Session, now: datetime | None = None) -> dict:
        now = now or datetime.now(timezone.utc)
        period = period_label(now)
        created: list[Invoice] = []
        skipped: dict[str, str] = {}

        companies = db.scalars(
            select(Company).where(Company.status == CompanyStatus.active)
        ).all()
        for company in companies:
            key = str(company.id)
            exists = db.scalar(
                select(Invoice.id)
                .where(Invoice.company_id == company.id)
                .where(Invoice.period == period)
            )
            if exists:
                skipped[key] = "already_invoiced"
                continue
            plan = company.plan
            if plan is None:
                skipped[key] = "no_plan"
                continue
            if not is_due(plan, company.last_invoice_paid or company.created_at, now):
                skipped[key] = "not_due"
                continue

            amounts = compute_amounts(
                plan,
                company.documents_shared,
                company.documents_downloaded,
                company.documents_uploaded,
            )
            invoice = Invoice(
                company_id=company.id,
                period=period,
                value=amounts.value,
                monthly_amount=amounts.monthly_amount,
                shared_amount=amounts.shared_amount,
                download_amount=amounts.download_amount,
                upload_amount=amounts.upload_amount,
                documents_shared=company.documents_shared,
                documents_downloaded=company.documents_downloaded,
                documents_uploaded=company.documents_uploaded,
                other_invoices=[],
                invoice_submitted=False,
                invoice_submitted_admin=False,
                due_date=now + timedelta(days=settings.invoice_due_days),
            )
            if not _insert_once(db, invoice):
                skipped[key] = "already_invoiced"
                continue
            created.append(invoice)
        db.commit()

        INVOICES_GENERATED.labels(kind=InvoiceKind.company.value).inc(len(created))
        logger.info(
            "Generated %d company invoices for %s (%d skipped)",
            len(created),
            period,
            len(skipped),
        )
        # Delivery is independent of period closure
        for invoice in created:
            subject, html = invoice_email(invoice.company.name, invoice)
            queue_email(invoice.company.contact_email, subject, html)
        return {"period": period, "created": [i.id for i in created], "skipped": skipped}

    @staticmethod
    def generate_client_invoices(
        db: Session, company_id, now: datetime | None = None
    ) -> dict:
        now = now or datetime.now(timezone.utc)
        period = period_label(now)
        created: list[ClientInvoice] = []
        skipped: dict[str, str] = {}

        company = db.get(Company, coerce_uuid(company_id))
        if not company:
            raise HTTPException(status_code=404, detail="Company not found")

        clients = db.scalars(
            select(Client)
            .where(Client.company_id == company.id)
            .where(Client.status == PersonStatus.active)
        ).all()
        for client in clients:
            key = str(client.id)
            exists = db.scalar(
                select(ClientInvoice.id)
                .where(ClientInvoice.company_id == company.id)
                .where(ClientInvoice.client_email == client.email)
                .where(ClientInvoice.period == period)
            )
            if exists:
                skipped[key] = "already_invoiced"
                continue
            plan = client.plan
            if plan is None:
                skipped[key] = "no_plan"
                continue
            if not is_due(plan, client.last_invoice_paid or client.created_at, now):
                skipped[key] = "not_due"
                continue

            amounts = compute_amounts(
                plan,
                client.documents_shared,
                client.documents_downloaded,
                client.documents_uploaded,
            )
            invoice = ClientInvoice(
                company_id=company.id,
                client_id=client.id,
                client_email=client.email,
                period=period,
                value=amounts.value,
                monthly_amount=amounts.monthly_amount,
                shared_amount=amounts.shared_amount,
                download_amount=amounts.download_amount,
                upload_amount=amounts.upload_amount,
                documents_shared=client.documents_shared,
                documents_downloaded=client.documents_downloaded,
                documents_uploaded=client.documents_uploaded,
                other_invoices=[],
                invoice_submitted=False,
                invoice_submitted_admin=False,
                due_date=now + timedelta(days=settings.invoice_due_days),
            )
            if not _insert_once(db, invoice):
                skipped[key] = "already_invoiced"
                continue
            created.append(invoice)
        db.commit()

        INVOICES_GENERATED.labels(kind=InvoiceKind.client.value).inc(len(created))
        logger.info(
            "Generated %d client invoices for company %s, %s",
            len(created),
            company.id,
            period,
        )
        for invoice in created:
            subject, html = invoice_email(invoice.client.name, invoice)
            queue_email(invoice.client_email, subject, html)
        return {"period": period, "created": [i.id for i in created], "skipped": skipped}

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    @staticmethod
    def _check_can_adjust(resolved: ResolvedInvoice, actor: Actor) -> None:
        row = resolved.row
        client_directed = resolved.kind is InvoiceKind.client or (
            resolved.kind is InvoiceKind.custom and row.is_client
        )
        if client_directed:
            allowed = actor.role in (Role.owner, Role.manager) and (
                row.company_id == actor.company_id
            )
        else:
            allowed = actor.role is Role.admin
        if not allowed:
            raise HTTPException(
                status_code=403, detail="Role not permitted to adjust this invoice"
            )

    @staticmethod
    def apply_other_invoices(
        db: Session,
        invoice_id: str,
        line_items,
        actor: Actor,
        expected_revision: int | None = None,
    ) -> ResolvedInvoice:
        resolved = resolve_invoice(db, invoice_id)
        InvoiceEngine._check_can_adjust(resolved, actor)
        row = resolved.row
        if expected_revision is not None and expected_revision != row.revision:
            raise HTTPException(
                status_code=409, detail="Invoice was modified concurrently"
            )
        if row.invoice_submitted_admin:
            raise HTTPException(status_code=400, detail="Invoice is already approved")

        new_items = _line_items(line_items)
        row.value = round4(
            row.value - line_items_total(row.other_invoices) + line_items_total(new_items)
        )
        row.other_invoices = new_items
        _commit_versioned(db)
        db.refresh(row)
        logger.info(
            "Applied %d line items to %s %s, value now %s",
            len(new_items),
            resolved.kind.value,
            row.id,
            row.value,
        )
        return resolved

    # ------------------------------------------------------------------
    # Submission workflow
    # ------------------------------------------------------------------

    @staticmethod
    def _approve(row, now: datetime) -> None:
        if not row.invoice_submitted:
            raise HTTPException(
                status_code=400, detail="Invoice must be submitted first"
            )
        if not row.invoice_submitted_admin:
            row.invoice_submitted_admin = True
            row.approved_at = now

    @staticmethod
    def _mark_submitted(row, now: datetime) -> bool:
        if row.invoice_submitted:
            return False
        row.invoice_submitted = True
        row.submitted_at = now
        return True

    @staticmethod
    def submit(
        db: Session, invoice_id: str, actor: Actor, now: datetime | None = None
    ) -> ResolvedInvoice:
        now = now or datetime.now(timezone.utc)
        resolved = resolve_invoice(db, invoice_id)
        row = resolved.row
        handler = _SUBMIT_HANDLERS[resolved.kind]
        handler(db, row, actor, now)
        _commit_versioned(db)
        db.refresh(row)
        logger.info(
            "Submit on %s %s by %s: submitted=%s approved=%s",
            resolved.kind.value,
            row.id,
            actor.role.value,
            row.invoice_submitted,
            row.invoice_submitted_admin,
        )
        return resolved

    @staticmethod
    def _submit_company(db: Session, row: Invoice, actor: Actor, now: datetime) -> None:
        if actor.role is Role.admin:
            InvoiceEngine._approve(row, now)
            return
        if actor.is_client:
            raise HTTPException(
                status_code=403, detail="Clients cannot submit company invoices"
            )
        if row.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Invoice not found")
        if InvoiceEngine._mark_submitted(row, now):
            UsageCounters.reset_company(db, row.company_id, now)

    @staticmethod
    def _submit_client(
        db: Session, row: ClientInvoice, actor: Actor, now: datetime
    ) -> None:
        if row.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Invoice not found")
        if actor.role is Role.owner:
            InvoiceEngine._approve(row, now)
        elif actor.role is Role.client:
            if row.client_id != actor.person_id:
                raise HTTPException(status_code=404, detail="Invoice not found")
            if InvoiceEngine._mark_submitted(row, now):
                UsageCounters.reset_client(db, row.client_id, now)
        else:
            raise HTTPException(
                status_code=403, detail="Role not permitted to submit this invoice"
            )

    @staticmethod
    def _submit_custom(
        db: Session, row: CustomInvoice, actor: Actor, now: datetime
    ) -> None:
        if row.is_client:
            if row.company_id != actor.company_id:
                raise HTTPException(status_code=404, detail="Invoice not found")
            if actor.role is Role.owner:
                InvoiceEngine._approve(row, now)
            elif actor.role is Role.client and row.client_id == actor.person_id:
                InvoiceEngine._mark_submitted(row, now)
            else:
                raise HTTPException(
                    status_code=403, detail="Role not permitted to submit this invoice"
                )
            return
        if actor.role is Role.admin:
            InvoiceEngine._approve(row, now)
        elif actor.is_client:
            raise HTTPException(
                status_code=403, detail="Clients cannot submit company invoices"
            )
        elif row.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Invoice not found")
        else:
            InvoiceEngine._mark_submitted(row, now)

    # ------------------------------------------------------------------
    # Custom invoices
    # ------------------------------------------------------------------

    @staticmethod
    def create_custom(
        db: Session,
        payload: CustomInvoiceCreate,
        actor: Actor,
        now: datetime | None = None,
    ) -> CustomInvoice:
        now = now or datetime.now(timezone.utc)
        if payload.is_client:
            if actor.role is not Role.owner:
                raise HTTPException(
                    status_code=403, detail="Only owners can invoice clients"
                )
            client = db.get(Client, coerce_uuid(payload.client_id))
            if not client or client.company_id != actor.company_id:
                raise HTTPException(status_code=404, detail="Client not found")
            company_id, client_id, to = actor.company_id, client.id, client.email
        else:
            if actor.role is not Role.admin:
                raise HTTPException(
                    status_code=403, detail="Only admins can invoice companies"
                )
            company = db.get(Company, coerce_uuid(payload.company_id))
            if not company:
                raise HTTPException(status_code=404, detail="Company not found")
            company_id, client_id, to = company.id, None, company.contact_email

        items = _line_items(payload.other_invoices)
        invoice = CustomInvoice(
            company_id=company_id,
            client_id=client_id,
            is_client=payload.is_client,
            title=payload.title,
            description=payload.description,
            period=period_label(now),
            value=round4(line_items_total(items)),
            other_invoices=items,
            due_date=now + timedelta(days=settings.invoice_due_days),
            created_by=actor.person_id,
        )
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        logger.info("Created custom invoice %s for %s", invoice.id, to)
        return invoice

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    @staticmethod
    def list(
        db: Session,
        actor: Actor,
        period: str | None = None,
        submitted: bool | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[Invoice]:
        if actor.is_client:
            raise HTTPException(
                status_code=403, detail="Clients cannot list company invoices"
            )
        stmt = select(Invoice)
        if actor.role is not Role.admin:
            stmt = stmt.where(Invoice.company_id == actor.company_id)
        if period is not None:
            stmt = stmt.where(Invoice.period == period)
        if submitted is not None:
            stmt = stmt.where(Invoice.invoice_submitted == submitted)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"created_at": Invoice.created_at, "value": Invoice.value},
        )
        return list(db.scalars(apply_pagination(stmt, limit, offset)).all())

    @staticmethod
    def list_client_invoices(
        db: Session,
        actor: Actor,
        period: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ClientInvoice]:
        stmt = select(ClientInvoice).where(ClientInvoice.company_id == actor.company_id)
        if actor.role is Role.client:
            stmt = stmt.where(ClientInvoice.client_id == actor.person_id)
        elif actor.role not in (Role.owner, Role.manager):
            raise HTTPException(
                status_code=403, detail="Role not permitted to list client invoices"
            )
        if period is not None:
            stmt = stmt.where(ClientInvoice.period == period)
        stmt = stmt.order_by(ClientInvoice.created_at.desc())
        return list(db.scalars(apply_pagination(stmt, limit, offset)).all())

    @staticmethod
    def get(db: Session, invoice_id: str, actor: Actor) -> ResolvedInvoice:
        resolved = resolve_invoice(db, invoice_id)
        row = resolved.row
        if actor.role is Role.admin and resolved.kind is not InvoiceKind.client:
            return resolved
        if row.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Invoice not found")
        if actor.is_client and getattr(row, "client_id", None) != actor.person_id:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return resolved

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    @staticmethod
    def _unpaid_recipients(db: Session, period: str):
        company_rows = db.execute(
            select(Invoice, Company)
            .join(Company, Company.id == Invoice.company_id)
            .where(Invoice.period == period)
            .where(Invoice.invoice_submitted.is_(False))
        ).all()
        for invoice, company in company_rows:
            yield InvoiceKind.company, invoice, company.name, company.contact_email

        client_rows = db.execute(
            select(ClientInvoice, Client)
            .join(Client, Client.id == ClientInvoice.client_id)
            .where(ClientInvoice.period == period)
            .where(ClientInvoice.invoice_submitted.is_(False))
        ).all()
        for invoice, client in client_rows:
            yield InvoiceKind.client, invoice, client.name, invoice.client_email

        custom_rows = db.scalars(
            select(CustomInvoice)
            .where(CustomInvoice.period == period)
            .where(CustomInvoice.invoice_submitted.is_(False))
        ).all()
        for invoice in custom_rows:
            if invoice.is_client:
                payer = db.get(Client, invoice.client_id)
                name, email = (payer.name, payer.email) if payer else (None, None)
            else:
                payer = db.get(Company, invoice.company_id)
                name, email = (
                    (payer.name, payer.contact_email) if payer else (None, None)
                )
            yield InvoiceKind.custom, invoice, name, email

    @staticmethod
    def remind_unpaid(
        db: Session,
        now: datetime | None = None,
        sender: Callable[..., tuple[bool, str | None]] = send_email,
    ) -> list[dict]:
        """One reminder per unsubmitted invoice of the current period.

        Each delivery is reported on its own; a failed recipient never aborts
        the rest of the run.
        """
        now = now or datetime.now(timezone.utc)
        period = period_label(now)
        results = []
        for kind, invoice, name, email in InvoiceEngine._unpaid_recipients(db, period):
            result = {
                "invoice_id": invoice.id,
                "kind": kind.value,
                "email": email,
                "sent": False,
                "error": None,
            }
            if not email:
                result["error"] = "No recipient email"
            else:
                subject, html = reminder_email(name or email, invoice)
                try:
                    sent, error = sender(to=email, subject=subject, html_body=html)
                except Exception as e:
                    sent, error = False, str(e)
                result["sent"] = sent
                result["error"] = error
            if result["sent"]:
                INVOICE_REMINDERS.labels(outcome="sent").inc()
            else:
                INVOICE_REMINDERS.labels(outcome="failed").inc()
                logger.warning(
                    "Reminder for %s %s not sent: %s",
                    kind.value,
                    invoice.id,
                    result["error"],
                )
            results.append(result)
        logger.info("Processed %d invoice reminders for %s", len(results), period)
        return results


_SUBMIT_HANDLERS = {
    InvoiceKind.company: InvoiceEngine._submit_company,
    InvoiceKind.client: InvoiceEngine._submit_client,
    InvoiceKind.custom: InvoiceEngine._submit_custom,
}

invoices = InvoiceEngine()
