import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from app.models.billing import ClientInvoice, Invoice
from app.models.tenancy import CompanyStatus, Role
from app.schemas.billing import CustomInvoiceCreate, LineItem
from app.services.billing import (
    InvoiceEngine,
    InvoiceKind,
    _insert_once,
    compute_amounts,
    is_due,
    resolve_invoice,
)
from app.services.common import period_label

NOW = datetime.now(timezone.utc)
PERIOD = period_label(NOW)


def _with_usage(db_session, payer, shared=2000, downloaded=500, uploaded=50):
    payer.documents_shared = shared
    payer.documents_downloaded = downloaded
    payer.documents_uploaded = uploaded
    db_session.commit()
    db_session.refresh(payer)
    return payer


def _generate_one(db_session, company):
    _with_usage(db_session, company)
    InvoiceEngine.generate_company_invoices(db_session, now=NOW)
    return (
        db_session.query(Invoice)
        .filter(Invoice.company_id == company.id, Invoice.period == PERIOD)
        .one()
    )


class TestAmounts:
    def test_reference_example(self, plan):
        amounts = compute_amounts(plan, 2000, 500, 50)
        assert amounts.shared_amount == 10.0
        assert amounts.download_amount == 1.5
        assert amounts.upload_amount == 10.0
        assert amounts.value == 121.5

    def test_zero_counts_do_not_divide_by_zero(self):
        plan = SimpleNamespace(
            monthly_price=10,
            share_count=0,
            share_price_per_thousand=1,
            download_count=None,
            download_price_per_thousand=1,
            upload_count=0,
            upload_price_per_ten=1,
        )
        amounts = compute_amounts(plan, 3, 2, 1)
        assert amounts.value == 16.0

    def test_rounds_to_four_places(self):
        plan = SimpleNamespace(
            monthly_price=0,
            share_count=3,
            share_price_per_thousand=1,
            download_count=1,
            download_price_per_thousand=0,
            upload_count=1,
            upload_price_per_ten=0,
        )
        assert compute_amounts(plan, 1, 0, 0).shared_amount == 0.3333
        assert compute_amounts(plan, 2, 0, 0).shared_amount == 0.6667

    def test_is_due_uses_calendar_months(self):
        plan = SimpleNamespace(billing_duration=2)
        last_paid = datetime(2026, 1, 31, tzinfo=timezone.utc)
        assert is_due(plan, last_paid, datetime(2026, 2, 1, tzinfo=timezone.utc)) is False
        assert is_due(plan, last_paid, datetime(2026, 3, 1, tzinfo=timezone.utc)) is True


class TestCompanyInvoiceGeneration:
    def test_generates_invoice_from_usage(self, db_session, company):
        invoice = _generate_one(db_session, company)
        assert invoice.value == 121.5
        assert invoice.monthly_amount == 100
        assert invoice.documents_shared == 2000
        assert invoice.other_invoices == []
        assert invoice.invoice_submitted is False
        assert invoice.revision == 1
        assert invoice.due_date.date() == (NOW + timedelta(days=15)).date()

    def test_repeated_runs_create_one_invoice(self, db_session, company):
        first = InvoiceEngine.generate_company_invoices(db_session, now=NOW)
        second = InvoiceEngine.generate_company_invoices(db_session, now=NOW)
        InvoiceEngine.generate_company_invoices(db_session, now=NOW)

        assert len(first["created"]) == 1
        assert second["created"] == []
        assert second["skipped"][str(company.id)] == "already_invoiced"
        assert db_session.query(Invoice).filter(Invoice.company_id == company.id).count() == 1

    def test_skip_reasons(self, db_session, company, new_company, platform_company):
        recent = new_company(name="Recent", last_invoice_paid=NOW)
        inactive = new_company(name="Gone", status=CompanyStatus.inactive)

        summary = InvoiceEngine.generate_company_invoices(db_session, now=NOW)

        assert summary["period"] == PERIOD
        assert summary["skipped"][str(recent.id)] == "not_due"
        assert summary["skipped"][str(platform_company.id)] == "no_plan"
        assert str(inactive.id) not in summary["skipped"]
        assert summary["created"] == [
            db_session.query(Invoice.id).filter(Invoice.company_id == company.id).scalar()
        ]

    def test_unique_conflict_is_treated_as_existing(self, db_session, company):
        _generate_one(db_session, company)
        duplicate = Invoice(
            company_id=company.id,
            period=PERIOD,
            value=1,
            other_invoices=[],
            due_date=NOW,
        )
        assert _insert_once(db_session, duplicate) is False
        db_session.commit()
        assert db_session.query(Invoice).count() == 1


class TestClientInvoiceGeneration:
    def test_generates_from_client_plan(self, db_session, company, client_person):
        _with_usage(db_session, client_person, shared=100, downloaded=200, uploaded=10)
        summary = InvoiceEngine.generate_client_invoices(db_session, company.id, now=NOW)

        invoice = db_session.get(ClientInvoice, summary["created"][0])
        assert invoice.client_email == client_person.email
        assert invoice.value == 24.0
        again = InvoiceEngine.generate_client_invoices(db_session, company.id, now=NOW)
        assert again["skipped"][str(client_person.id)] == "already_invoiced"

    def test_client_without_plan_is_skipped(self, db_session, company, new_client):
        planless = new_client(company)
        summary = InvoiceEngine.generate_client_invoices(db_session, company.id, now=NOW)
        assert summary["skipped"][str(planless.id)] == "no_plan"

    def test_unknown_company(self, db_session):
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.generate_client_invoices(db_session, uuid.uuid4(), now=NOW)
        assert exc.value.status_code == 404


class TestAdjustments:
    def test_value_tracks_line_items(self, db_session, company, admin, actor):
        invoice = _generate_one(db_session, company)

        InvoiceEngine.apply_other_invoices(
            db_session,
            invoice.id,
            [LineItem(description="Setup", amount=25.5)],
            actor(admin),
        )
        db_session.refresh(invoice)
        assert invoice.value == 147.0

        InvoiceEngine.apply_other_invoices(
            db_session,
            invoice.id,
            [{"description": "Credit", "amount": -10}, {"description": "Fee", "amount": 0.125}],
            actor(admin),
        )
        db_session.refresh(invoice)
        components = (
            invoice.monthly_amount
            + invoice.shared_amount
            + invoice.download_amount
            + invoice.upload_amount
            + sum(item["amount"] for item in invoice.other_invoices)
        )
        assert invoice.value == pytest.approx(components, abs=1e-4)
        assert invoice.other_invoices[0] == {"description": "Credit", "amount": -10.0}
        assert invoice.revision == 3

    def test_stale_revision_is_conflict(self, db_session, company, admin, actor):
        invoice = _generate_one(db_session, company)
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.apply_other_invoices(
                db_session,
                invoice.id,
                [LineItem(description="Setup", amount=1)],
                actor(admin),
                expected_revision=invoice.revision + 1,
            )
        assert exc.value.status_code == 409

    def test_owner_cannot_adjust_company_invoice(self, db_session, company, owner, actor):
        invoice = _generate_one(db_session, company)
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.apply_other_invoices(
                db_session, invoice.id, [LineItem(description="x", amount=1)], actor(owner)
            )
        assert exc.value.status_code == 403

    def test_approved_invoice_is_locked(self, db_session, company, owner, admin, actor):
        invoice = _generate_one(db_session, company)
        InvoiceEngine.submit(db_session, invoice.id, actor(owner), now=NOW)
        InvoiceEngine.submit(db_session, invoice.id, actor(admin), now=NOW)
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.apply_other_invoices(
                db_session, invoice.id, [LineItem(description="x", amount=1)], actor(admin)
            )
        assert exc.value.status_code == 400


class TestSubmitWorkflow:
    def test_admin_must_wait_for_submission(self, db_session, company, owner, admin, actor):
        invoice = _generate_one(db_session, company)

        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.submit(db_session, invoice.id, actor(admin), now=NOW)
        assert exc.value.status_code == 400
        assert "must be submitted first" in exc.value.detail

        resolved = InvoiceEngine.submit(db_session, invoice.id, actor(owner), now=NOW)
        assert resolved.kind is InvoiceKind.company
        assert resolved.row.invoice_submitted is True

        resolved = InvoiceEngine.submit(db_session, invoice.id, actor(admin), now=NOW)
        assert resolved.row.invoice_submitted_admin is True

    def test_submission_resets_company_usage(self, db_session, company, owner, actor):
        invoice = _generate_one(db_session, company)
        InvoiceEngine.submit(db_session, invoice.id, actor(owner), now=NOW)
        db_session.refresh(company)
        assert company.documents_shared == 0
        assert company.documents_downloaded == 0
        assert company.documents_uploaded == 0
        assert company.last_invoice_paid is not None

    def test_resubmission_does_not_reset_again(self, db_session, company, owner, actor):
        invoice = _generate_one(db_session, company)
        InvoiceEngine.submit(db_session, invoice.id, actor(owner), now=NOW)
        _with_usage(db_session, company, shared=7)
        InvoiceEngine.submit(db_session, invoice.id, actor(owner), now=NOW)
        db_session.refresh(company)
        assert company.documents_shared == 7

    def test_client_cannot_submit_company_invoice(
        self, db_session, company, client_person, actor
    ):
        invoice = _generate_one(db_session, company)
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.submit(db_session, invoice.id, actor(client_person), now=NOW)
        assert exc.value.status_code == 403

    def test_other_tenant_cannot_submit(
        self, db_session, company, other_company, new_employee, actor
    ):
        invoice = _generate_one(db_session, company)
        outsider = new_employee(other_company, Role.owner)
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.submit(db_session, invoice.id, actor(outsider), now=NOW)
        assert exc.value.status_code == 404

    def test_client_invoice_chain(self, db_session, company, owner, client_person, actor):
        _with_usage(db_session, client_person, shared=10)
        summary = InvoiceEngine.generate_client_invoices(db_session, company.id, now=NOW)
        invoice_id = summary["created"][0]

        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.submit(db_session, invoice_id, actor(owner), now=NOW)
        assert exc.value.status_code == 400

        resolved = InvoiceEngine.submit(db_session, invoice_id, actor(client_person), now=NOW)
        assert resolved.kind is InvoiceKind.client
        db_session.refresh(client_person)
        assert client_person.documents_shared == 0

        resolved = InvoiceEngine.submit(db_session, invoice_id, actor(owner), now=NOW)
        assert resolved.row.invoice_submitted_admin is True

    def test_unknown_invoice(self, db_session, owner, actor):
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.submit(db_session, uuid.uuid4(), actor(owner), now=NOW)
        assert exc.value.status_code == 404


class TestCustomInvoices:
    def test_company_directed(self, db_session, company, owner, admin, actor):
        payload = CustomInvoiceCreate(
            company_id=company.id,
            title="Migration services",
            other_invoices=[
                LineItem(description="Data import", amount=150.25),
                LineItem(description="Training", amount=49.75),
            ],
        )
        invoice = InvoiceEngine.create_custom(db_session, payload, actor(admin), now=NOW)
        assert invoice.value == 200.0
        assert invoice.period == PERIOD
        assert invoice.is_client is False

        assert resolve_invoice(db_session, invoice.id).kind is InvoiceKind.custom
        InvoiceEngine.submit(db_session, invoice.id, actor(owner), now=NOW)
        resolved = InvoiceEngine.submit(db_session, invoice.id, actor(admin), now=NOW)
        assert resolved.row.invoice_submitted_admin is True

    def test_client_directed(self, db_session, company, owner, client_person, actor):
        payload = CustomInvoiceCreate(
            client_id=client_person.id,
            is_client=True,
            title="Archive retrieval",
            other_invoices=[LineItem(description="Retrieval", amount=30)],
        )
        invoice = InvoiceEngine.create_custom(db_session, payload, actor(owner), now=NOW)
        assert invoice.company_id == company.id

        InvoiceEngine.submit(db_session, invoice.id, actor(client_person), now=NOW)
        resolved = InvoiceEngine.submit(db_session, invoice.id, actor(owner), now=NOW)
        assert resolved.row.invoice_submitted is True
        assert resolved.row.invoice_submitted_admin is True

    def test_owner_cannot_invoice_companies(self, db_session, company, owner, actor):
        payload = CustomInvoiceCreate(
            company_id=company.id,
            title="Nope",
            other_invoices=[LineItem(description="x", amount=1)],
        )
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.create_custom(db_session, payload, actor(owner), now=NOW)
        assert exc.value.status_code == 403


class TestReminders:
    def test_reports_each_delivery(self, db_session, company, new_company, client_person):
        new_company(name="Bounce Co", contact_email="bounce@fail.test")
        InvoiceEngine.generate_company_invoices(db_session, now=NOW)
        InvoiceEngine.generate_client_invoices(db_session, company.id, now=NOW)

        sent_to = []

        def fake_sender(*, to, subject, html_body):
            if to == "bounce@fail.test":
                raise ConnectionError("mailbox unavailable")
            sent_to.append(to)
            return True, None

        report = InvoiceEngine.remind_unpaid(db_session, now=NOW, sender=fake_sender)

        by_email = {row["email"]: row for row in report}
        assert len(report) == 3
        assert by_email[company.contact_email]["sent"] is True
        assert by_email[client_person.email]["kind"] == "client_invoice"
        assert by_email["bounce@fail.test"]["sent"] is False
        assert "mailbox unavailable" in by_email["bounce@fail.test"]["error"]
        assert sorted(sent_to) == sorted([company.contact_email, client_person.email])

    def test_submitted_invoices_are_not_reminded(self, db_session, company, owner, actor):
        invoice = _generate_one(db_session, company)
        InvoiceEngine.submit(db_session, invoice.id, actor(owner), now=NOW)

        report = InvoiceEngine.remind_unpaid(
            db_session, now=NOW, sender=lambda **kwargs: (True, None)
        )
        assert report == []


class TestListing:
    def test_admin_sees_all_owner_sees_own(
        self, db_session, company, other_company, owner, admin, actor
    ):
        InvoiceEngine.generate_company_invoices(db_session, now=NOW)
        assert len(InvoiceEngine.list(db_session, actor(admin))) == 2
        own = InvoiceEngine.list(db_session, actor(owner))
        assert [i.company_id for i in own] == [company.id]

    def test_client_sees_only_own_client_invoices(
        self, db_session, company, client_person, client_plan, new_client, actor
    ):
        new_client(company, client_plan)
        InvoiceEngine.generate_client_invoices(db_session, company.id, now=NOW)
        mine = InvoiceEngine.list_client_invoices(db_session, actor(client_person))
        assert [i.client_id for i in mine] == [client_person.id]

    def test_get_hides_other_clients_invoices(
        self, db_session, company, client_person, client_plan, new_client, actor
    ):
        other = new_client(company, client_plan)
        InvoiceEngine.generate_client_invoices(db_session, company.id, now=NOW)
        theirs = (
            db_session.query(ClientInvoice).filter(ClientInvoice.client_id == other.id).one()
        )
        with pytest.raises(HTTPException) as exc:
            InvoiceEngine.get(db_session, theirs.id, actor(client_person))
        assert exc.value.status_code == 404