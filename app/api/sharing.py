from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_user_auth
from app.schemas.common import ListResponse
from app.schemas.documents import (
    DisputeCreate,
    DisputeRead,
    SharedDocumentView,
    SharedLinkAccess,
    SharedLinkCreate,
    SharedLinkRead,
)
from app.services import disputes as disputes_service
from app.services import sharing as sharing_service
from app.services.auth import Actor

router = APIRouter(tags=["sharing"])


def _with_url(link) -> dict:
    data = SharedLinkRead.model_validate(link).model_dump()
    data["url"] = sharing_service.share_url(link)
    return data


# ---------------------------------------------------------------------------
# Shared links
# ---------------------------------------------------------------------------


@router.post(
    "/shared-documents",
    response_model=SharedLinkRead,
    status_code=status.HTTP_201_CREATED,
)
def create_shared_link(
    payload: SharedLinkCreate,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    return _with_url(sharing_service.shared_links.create(db, payload, actor))


@router.get("/shared-documents", response_model=ListResponse[SharedLinkRead])
def list_shared_links(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    response = sharing_service.shared_links.list_response(
        db, actor, limit=limit, offset=offset
    )
    response["items"] = [_with_url(link) for link in response["items"]]
    return response


@router.post("/shared-documents/{token}/access", response_model=SharedDocumentView)
def access_shared_document(
    token: str, payload: SharedLinkAccess, db: Session = Depends(get_db)
) -> dict:
    return sharing_service.shared_links.access(db, token, payload.password)


@router.delete("/shared-documents/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_shared_link(
    link_id: str,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> None:
    sharing_service.shared_links.delete(db, link_id, actor)


# ---------------------------------------------------------------------------
# Disputes
# ---------------------------------------------------------------------------


@router.post("/disputes", response_model=DisputeRead, status_code=status.HTTP_201_CREATED)
def create_dispute(
    payload: DisputeCreate,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return disputes_service.disputes.create(db, payload, actor)


@router.get("/disputes", response_model=ListResponse[DisputeRead])
def list_disputes(
    resolved: bool | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    return disputes_service.disputes.list_response(
        db, actor, resolved, limit=limit, offset=offset
    )


@router.put("/disputes/{dispute_id}/resolve", response_model=DisputeRead)
def resolve_dispute(
    dispute_id: str,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return disputes_service.disputes.resolve(db, dispute_id, actor)
