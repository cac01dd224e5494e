import logging

from app.celery_app import celery_app

logger = logging.getLogger(__name__)


def _jsonable(summary: dict) -> dict:
    return {
        "period": summary["period"],
        "created": [str(invoice_id) for invoice_id in summary["created"]],
        "skipped": summary["skipped"],
    }


@celery_app.task(name="app.tasks.billing.generate_invoices")
def generate_invoices() -> dict | None:
    """Monthly run of company invoice generation for every active tenant."""
    from app.db import SessionLocal
    from app.services.billing import invoices

    db = SessionLocal()
    try:
        return _jsonable(invoices.generate_company_invoices(db))
    except Exception as e:
        db.rollback()
        logger.exception("Failed to generate company invoices: %s", e)
        return None
    finally:
        db.close()


@celery_app.task(name="app.tasks.billing.generate_all_client_invoices")
def generate_all_client_invoices() -> dict:
    """Client invoice generation, tenant by tenant.

    A failing tenant is rolled back and logged; the remaining tenants still run.
    """
    from sqlalchemy import select

    from app.db import SessionLocal
    from app.models.tenancy import Company, CompanyStatus
    from app.services.billing import invoices

    db = SessionLocal()
    results: dict = {}
    try:
        company_ids = db.scalars(
            select(Company.id).where(Company.status == CompanyStatus.active)
        ).all()
        for company_id in company_ids:
            try:
                summary = invoices.generate_client_invoices(db, company_id)
                results[str(company_id)] = _jsonable(summary)
            except Exception as e:
                db.rollback()
                logger.warning(
                    "Failed to generate client invoices for %s: %s", company_id, e
                )
        logger.info("Client invoice generation ran for %d companies", len(results))
    except Exception as e:
        logger.exception("Failed to generate client invoices: %s", e)
    finally:
        db.close()
    return results


@celery_app.task(name="app.tasks.billing.remind_unpaid_invoices")
def remind_unpaid_invoices() -> list:
    """Weekly reminder run; returns the per-invoice delivery report."""
    from app.db import SessionLocal
    from app.services.billing import invoices

    db = SessionLocal()
    try:
        report = invoices.remind_unpaid(db)
        return [{**row, "invoice_id": str(row["invoice_id"])} for row in report]
    except Exception as e:
        logger.exception("Failed to send invoice reminders: %s", e)
        return []
    finally:
        db.close()
