from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_roles, require_user_auth
from app.models.tenancy import Role
from app.schemas.common import ListResponse
from app.schemas.documents import (
    AssigneesResponse,
    AssignRequest,
    CommentCreate,
    DocumentActionRequest,
    DocumentCreate,
    DocumentDetail,
    DocumentRead,
    DocumentTagCreate,
    DocumentTagRead,
    DocumentTagUpdate,
    EditHistoryCreate,
    EditHistoryRead,
    PropertiesUpdate,
)
from app.services import assignment as assignment_service
from app.services import documents as documents_service
from app.services.auth import Actor

router = APIRouter(tags=["documents"])

_tag_admin = require_roles(Role.owner, Role.manager)


# ---------------------------------------------------------------------------
# Document tags
# ---------------------------------------------------------------------------


@router.get("/document-tags", response_model=ListResponse[DocumentTagRead])
def list_document_tags(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    return documents_service.document_tags.list_response(
        db, actor, limit=limit, offset=offset
    )


@router.get("/document-tags/{tag_id}", response_model=DocumentTagRead)
def get_document_tag(
    tag_id: str, actor: Actor = Depends(require_user_auth), db: Session = Depends(get_db)
):
    return documents_service.document_tags.get(db, tag_id, actor)


@router.post(
    "/document-tags", response_model=DocumentTagRead, status_code=status.HTTP_201_CREATED
)
def create_document_tag(
    payload: DocumentTagCreate,
    actor: Actor = Depends(_tag_admin),
    db: Session = Depends(get_db),
):
    properties = [prop.model_dump() for prop in payload.properties]
    return documents_service.document_tags.create(db, payload.title, properties, actor)


@router.patch("/document-tags/{tag_id}", response_model=DocumentTagRead)
def update_document_tag(
    tag_id: str,
    payload: DocumentTagUpdate,
    actor: Actor = Depends(_tag_admin),
    db: Session = Depends(get_db),
):
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    return documents_service.document_tags.update(db, tag_id, data, actor)


@router.delete("/document-tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document_tag(
    tag_id: str, actor: Actor = Depends(_tag_admin), db: Session = Depends(get_db)
) -> None:
    documents_service.document_tags.delete(db, tag_id, actor)


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.post("/documents", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
def create_document(
    payload: DocumentCreate,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return documents_service.documents.create(db, payload, actor)


@router.get("/documents", response_model=ListResponse[DocumentDetail])
def list_documents(
    tag_id: str | None = None,
    is_published: bool | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    return documents_service.documents.list_response(
        db,
        actor,
        tag_id,
        is_published,
        order_by,
        order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/documents/{document_id}", response_model=DocumentDetail)
def get_document(
    document_id: str,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    return documents_service.documents.get_detail(db, document_id, actor)


@router.put("/documents/{document_id}/add-comment", response_model=DocumentRead)
def add_comment(
    document_id: str,
    payload: CommentCreate,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return documents_service.documents.add_comment(db, document_id, payload.text, actor)


@router.get("/documents/{document_id}/assignees", response_model=AssigneesResponse)
def list_assignees(
    document_id: str,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
) -> dict:
    documents_service.documents.get(db, document_id, actor)
    next_role, assignees = assignment_service.assignees_for(
        db, actor.company_id, actor.role
    )
    return {
        "next_role": next_role.value if next_role else None,
        "assignees": assignees,
    }


@router.put("/documents/{document_id}/properties", response_model=DocumentRead)
def update_properties(
    document_id: str,
    payload: PropertiesUpdate,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    properties = [item.model_dump() for item in payload.properties]
    return documents_service.documents.update_properties(
        db, document_id, properties, actor
    )


@router.get("/documents/{document_id}/history", response_model=list[EditHistoryRead])
def list_history(
    document_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return documents_service.documents.list_history(
        db, document_id, actor, limit, offset
    )


@router.post("/documents/{document_id}/download", response_model=DocumentRead)
def record_download(
    document_id: str,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return documents_service.documents.record_download(db, document_id, actor)


@router.post(
    "/document-history",
    response_model=EditHistoryRead,
    status_code=status.HTTP_201_CREATED,
)
def add_history(
    payload: EditHistoryCreate,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return documents_service.documents.add_history(db, payload, actor)


# ---------------------------------------------------------------------------
# Pipeline transitions
# ---------------------------------------------------------------------------


@router.post("/post-assignee", response_model=DocumentRead)
def assign_document(
    payload: AssignRequest,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return documents_service.documents.assign(
        db, payload.document_id, payload.assignee_id, actor
    )


@router.post("/save-draft", response_model=DocumentRead)
def save_draft(
    payload: DocumentActionRequest,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return documents_service.documents.save_draft(db, payload.document_id, actor)


@router.post("/publish", response_model=DocumentRead)
def publish_document(
    payload: DocumentActionRequest,
    actor: Actor = Depends(require_user_auth),
    db: Session = Depends(get_db),
):
    return documents_service.documents.publish(db, payload.document_id, actor)
