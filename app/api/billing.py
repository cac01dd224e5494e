from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_roles, require_user_auth
from app.models.tenancy import Role
from app.schemas.billing import (
    ClientInvoiceRead,
    CustomInvoiceCreate,
    CustomInvoiceRead,
    GenerationSummary,
    InvoiceRead,
    OtherInvoicesUpdate,
    ReminderResult,
    ResolvedInvoiceRead,
)
from app.schemas.common import ListResponse
from app.services import billing as billing_service
from app.services.auth import Actor
from app.services.billing import InvoiceKind, ResolvedInvoice

router = APIRouter(tags=["billing"])

_READ_SCHEMAS = {
    InvoiceKind.company: InvoiceRead,
    InvoiceKind.client: ClientInvoiceRead,
    InvoiceKind.custom: CustomInvoiceRead,
}


def _resolved_payload(resolved: ResolvedInvoice) -> dict:
    schema = _READ_SCHEMAS[resolved.kind]
    return {
        "kind": resolved.kind.value,
        "invoice": schema.model_validate(resolved.row).model_dump(mode="json"),
    }


@router.post("/generate-invoices", response_model=GenerationSummary)
def generate_invoices(
    actor: Actor = Depends(require_roles(Role.admin)), db: Session = Depends(get_db)
) -> dict:
    return billing_service.invoices.generate_company_invoices(db)


@router.post("/generate-client-invoices", response_model=GenerationSummary)
def generate_client_invoices(
    actor: Actor = Depends(require_roles(Role.owner)), db: Session = Depends(get_db)
) -> dict:
    return billing_service.invoices.generate_client_invoices(db, actor.company_id)


@router.get("/invoices", response_model=ListResponse[InvoiceRead])
def list_invoices(
    period: str | None = None,
    submitted: bool | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    return billing_service.invoices.list_response(
        db,
        actor,
        period,
        submitted,
        order_by,
        order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/client-invoices", response_model=ListResponse[ClientInvoiceRead])
def list_client_invoices(
    period: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    items = billing_service.invoices.list_client_invoices(
        db, actor, period, limit=limit, offset=offset
    )
    return {"items": items, "count": len(items), "limit": limit, "offset": offset}


@router.get("/invoices/{invoice_id}", response_model=ResolvedInvoiceRead)
def get_invoice(
    invoice_id: str,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    return _resolved_payload(billing_service.invoices.get(db, invoice_id, actor))


@router.put("/invoices/{invoice_id}/other-invoices", response_model=ResolvedInvoiceRead)
def apply_other_invoices(
    invoice_id: str,
    payload: OtherInvoicesUpdate,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    resolved = billing_service.invoices.apply_other_invoices(
        db,
        invoice_id,
        payload.other_invoices,
        actor,
        expected_revision=payload.revision,
    )
    return _resolved_payload(resolved)


@router.put("/invoices/{invoice_id}/submit", response_model=ResolvedInvoiceRead)
def submit_invoice(
    invoice_id: str,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    return _resolved_payload(billing_service.invoices.submit(db, invoice_id, actor))


@router.post(
    "/custom-invoices",
    response_model=CustomInvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
def create_custom_invoice(
    payload: CustomInvoiceCreate,
    actor: Actor = Depends(require_roles(Role.admin, Role.owner)),
    db: Session = Depends(get_db),
):
    return billing_service.invoices.create_custom(db, payload, actor)


@router.post("/remind-invoices", response_model=list[ReminderResult])
def remind_invoices(
    actor: Actor = Depends(require_roles(Role.admin)), db: Session = Depends(get_db)
) -> list[dict]:
    return billing_service.invoices.remind_unpaid(db)
