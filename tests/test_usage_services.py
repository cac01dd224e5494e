from datetime import datetime, timezone

from app.models.documents import Dispute
from app.models.tenancy import CompanyStatus
from app.schemas.documents import DocumentCreate
from app.services.billing import InvoiceEngine
from app.services.documents import Documents
from app.services.usage import (
    UsageCounters,
    UsageField,
    dashboard,
    platform_dashboard,
)


def _upload(db_session, actor, tag, title="Scan"):
    payload = DocumentCreate(tag_id=tag.id, url="https://files.test/a.pdf", title=title)
    return Documents.create(db_session, payload, actor)


class TestUsageCounters:
    def test_employee_actions_count_against_company(
        self, db_session, company, owner, actor
    ):
        UsageCounters.increment(db_session, actor(owner), UsageField.shared)
        UsageCounters.increment(db_session, actor(owner), UsageField.shared, amount=4)
        UsageCounters.increment(db_session, actor(owner), UsageField.downloaded)
        db_session.commit()
        db_session.refresh(company)
        assert company.documents_shared == 5
        assert company.documents_downloaded == 1
        assert company.documents_uploaded == 0

    def test_client_actions_count_against_client(
        self, db_session, company, client_person, actor
    ):
        UsageCounters.increment(db_session, actor(client_person), UsageField.downloaded)
        db_session.commit()
        db_session.refresh(client_person)
        db_session.refresh(company)
        assert client_person.documents_downloaded == 1
        assert company.documents_downloaded == 0

    def test_increment_uses_current_row_value(self, db_session, company, owner, actor):
        company.documents_uploaded = 7
        db_session.commit()
        UsageCounters.increment(db_session, actor(owner), UsageField.uploaded)
        db_session.commit()
        db_session.refresh(company)
        assert company.documents_uploaded == 8

    def test_reviewed_counter(self, db_session, qa):
        UsageCounters.increment_reviewed(db_session, qa.id)
        UsageCounters.increment_reviewed(db_session, qa.id)
        db_session.commit()
        db_session.refresh(qa)
        assert qa.documents_reviewed == 2

    def test_reset_company(self, db_session, company):
        company.documents_shared = 10
        company.documents_downloaded = 11
        company.documents_uploaded = 12
        db_session.commit()
        paid_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
        UsageCounters.reset_company(db_session, company.id, now=paid_at)
        db_session.commit()
        db_session.refresh(company)
        assert (
            company.documents_shared,
            company.documents_downloaded,
            company.documents_uploaded,
        ) == (0, 0, 0)
        assert company.last_invoice_paid.replace(tzinfo=timezone.utc) == paid_at

    def test_reset_client_leaves_company(self, db_session, company, client_person):
        client_person.documents_shared = 3
        company.documents_shared = 9
        db_session.commit()
        UsageCounters.reset_client(db_session, client_person.id)
        db_session.commit()
        db_session.refresh(client_person)
        db_session.refresh(company)
        assert client_person.documents_shared == 0
        assert company.documents_shared == 9


class TestDashboard:
    def test_company_view(
        self, db_session, company, owner, scanner, qa, client_person, tag, actor
    ):
        first = _upload(db_session, actor(scanner), tag, "One")
        _upload(db_session, actor(scanner), tag, "Two")
        first.qa_passed_id = qa.id
        db_session.commit()
        Documents.publish(db_session, first.id, actor(qa))
        db_session.add(
            Dispute(
                company_id=company.id,
                document_id=first.id,
                raised_by=owner.id,
                raised_by_role="Owner",
                description="Wrong vendor",
            )
        )
        db_session.commit()

        stats = dashboard(db_session, actor(owner))
        assert stats["documents_total"] == 2
        assert stats["documents_published"] == 1
        assert stats["documents_by_stage"] == {"1": 1, "3": 1}
        assert stats["users"] == 3
        assert stats["clients"] == 1
        assert stats["open_disputes"] == 1
        assert stats["usage"]["documents_uploaded"] == 2

    def test_client_view_is_limited_to_own_documents(
        self, db_session, scanner, client_person, tag, actor
    ):
        _upload(db_session, actor(scanner), tag, "Staff scan")
        _upload(db_session, actor(client_person), tag, "Client scan")

        stats = dashboard(db_session, actor(client_person))
        assert stats["documents_total"] == 1
        assert stats["usage"]["documents_uploaded"] == 1

    def test_pending_for_me(self, db_session, scanner, indexer, tag, actor):
        document = _upload(db_session, actor(scanner), tag)
        Documents.assign(db_session, document.id, indexer.id, actor(scanner))
        assert dashboard(db_session, actor(indexer))["pending_for_me"] == 1
        assert dashboard(db_session, actor(scanner))["pending_for_me"] == 0


class TestPlatformDashboard:
    def test_counts_unpaid_invoices(self, db_session, company, other_company):
        other_company.status = CompanyStatus.inactive
        db_session.commit()
        InvoiceEngine.generate_company_invoices(db_session)

        stats = platform_dashboard(db_session)
        assert stats["companies_total"] == 2
        assert stats["companies_active"] == 1
        assert stats["unpaid_invoices"] == 1
        assert stats["outstanding_value"] == 100.0
        assert stats["unpaid_client_invoices"] == 0
