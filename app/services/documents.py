from __future__ import annotations

import logging

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.metrics import DOCUMENT_TRANSITIONS
from app.models.documents import (
    STAGE_CREATED,
    STAGE_INDEXED,
    STAGE_QA,
    Document,
    DocumentComment,
    DocumentEditHistory,
    DocumentProgress,
    DocumentTag,
)
from app.models.tenancy import Client, Employee, Role, normalize_role
from app.schemas.documents import DocumentCreate, EditHistoryCreate
from app.services.assignment import get_next_role
from app.services.auth import Actor
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.response import ListResponseMixin
from app.services.usage import UsageCounters, UsageField

logger = logging.getLogger(__name__)

CREATOR_ROLES = frozenset({Role.owner, Role.manager, Role.scanner, Role.client})
SUPERVISOR_ROLES = frozenset({Role.owner, Role.manager})
PROPERTY_EDITOR_ROLES = frozenset({Role.owner, Role.manager, Role.indexer, Role.qa})


def _visibility_clause(actor: Actor):
    """Row filter for the documents an actor may see within their tenant."""
    if actor.role in SUPERVISOR_ROLES:
        return None
    if actor.role in (Role.scanner, Role.client):
        return Document.added_by == actor.person_id
    if actor.role is Role.indexer:
        return Document.indexer_passed_id == actor.person_id
    if actor.role is Role.qa:
        return Document.qa_passed_id == actor.person_id
    raise HTTPException(status_code=403, detail="Role not permitted to access documents")


def _get_scoped(db: Session, document_id, actor: Actor) -> Document:
    stmt = select(Document).where(
        Document.id == coerce_uuid(document_id),
        Document.company_id == actor.company_id,
    )
    clause = _visibility_clause(actor)
    if clause is not None:
        stmt = stmt.where(clause)
    document = db.scalars(stmt).first()
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")
    return document


def _record_history(db: Session, document: Document, actor: Actor, description: str):
    entry = DocumentEditHistory(
        document_id=document.id,
        company_id=document.company_id,
        edited_by=actor.person_id,
        role=actor.role.value,
        edit_description=description,
    )
    db.add(entry)
    return entry


def compute_show_more(document: Document, actor: Actor) -> bool:
    """Whether the caller still has follow-up actions on the document.

    Advisory UI metadata only; authorization is enforced per operation.
    """
    if document.added_by == actor.person_id or actor.role in SUPERVISOR_ROLES:
        return document.passed_to is None
    for handler_id in (document.indexer_passed_id, document.qa_passed_id):
        if handler_id is not None and handler_id == actor.person_id:
            return document.passed_to == handler_id and not document.is_published
    return False


# ---------------------------------------------------------------------------
# Person resolution for enriched responses
# ---------------------------------------------------------------------------


class _PeopleIndex:
    """Batch-resolves person ids from both person tables."""

    def __init__(self, db: Session, documents: list[Document]):
        ids = set()
        for doc in documents:
            ids.update(
                i for i in (doc.added_by, doc.indexer_passed_id, doc.qa_passed_id) if i
            )
        self._people: dict = {}
        if not ids:
            return
        for employee in db.scalars(select(Employee).where(Employee.id.in_(ids))):
            self._people[employee.id] = {
                "id": employee.id,
                "name": employee.name,
                "role": employee.role,
            }
        for client in db.scalars(select(Client).where(Client.id.in_(ids))):
            self._people.setdefault(
                client.id,
                {"id": client.id, "name": client.name, "role": Role.client.value},
            )

    def get(self, person_id):
        if person_id is None:
            return None
        return self._people.get(person_id)


def _serialize(document: Document, actor: Actor, people: _PeopleIndex) -> dict:
    added_by = people.get(document.added_by)
    requested_by = added_by
    if actor.role is Role.qa and document.indexer_passed_id is not None:
        requested_by = people.get(document.indexer_passed_id) or added_by
    return {
        "id": document.id,
        "company_id": document.company_id,
        "tag_id": document.tag_id,
        "tag_name": document.tag_name,
        "title": document.title,
        "url": document.url,
        "file_id": document.file_id,
        "properties": list(document.properties or []),
        "progress": document.progress,
        "progress_number": document.progress_number,
        "is_published": document.is_published,
        "added_by": document.added_by,
        "added_by_role": document.added_by_role,
        "indexer_passed_id": document.indexer_passed_id,
        "qa_passed_id": document.qa_passed_id,
        "passed_to": document.passed_to,
        "comments": list(document.comments),
        "created_at": document.created_at,
        "updated_at": document.updated_at,
        "added_by_person": added_by,
        "requested_by": requested_by,
        "show_more": compute_show_more(document, actor),
    }


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class Documents(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: DocumentCreate, actor: Actor) -> Document:
        if actor.role not in CREATOR_ROLES:
            raise HTTPException(
                status_code=403, detail="Role not permitted to add documents"
            )
        tag = db.get(DocumentTag, coerce_uuid(payload.tag_id))
        if not tag or tag.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Document tag not found")

        document = Document(
            company_id=actor.company_id,
            tag_id=tag.id,
            tag_name=tag.title,
            title=payload.title,
            url=payload.url,
            file_id=payload.file_id,
            properties=[{"key": prop["key"], "value": ""} for prop in tag.properties],
            progress=DocumentProgress.incomplete,
            progress_number=STAGE_CREATED,
            is_published=False,
            added_by=actor.person_id,
            added_by_role=actor.role.value,
        )
        db.add(document)
        db.flush()
        # Same transaction as the insert
        UsageCounters.increment(db, actor, UsageField.uploaded)
        db.commit()
        db.refresh(document)
        DOCUMENT_TRANSITIONS.labels(transition="create").inc()
        logger.info("Created document %s by %s", document.id, actor.person_id)
        return document

    @staticmethod
    def get(db: Session, document_id: str, actor: Actor) -> Document:
        return _get_scoped(db, document_id, actor)

    @staticmethod
    def get_detail(db: Session, document_id: str, actor: Actor) -> dict:
        document = _get_scoped(db, document_id, actor)
        return _serialize(document, actor, _PeopleIndex(db, [document]))

    @staticmethod
    def list(
        db: Session,
        actor: Actor,
        tag_id: str | None = None,
        is_published: bool | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ) -> list[dict]:
        stmt = (
            select(Document)
            .options(selectinload(Document.comments))
            .where(Document.company_id == actor.company_id)
        )
        clause = _visibility_clause(actor)
        if clause is not None:
            stmt = stmt.where(clause)
        if tag_id is not None:
            stmt = stmt.where(Document.tag_id == coerce_uuid(tag_id))
        if is_published is not None:
            stmt = stmt.where(Document.is_published == is_published)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "created_at": Document.created_at,
                "updated_at": Document.updated_at,
                "title": Document.title,
                "progress_number": Document.progress_number,
            },
        )
        documents = list(db.scalars(apply_pagination(stmt, limit, offset)).all())
        people = _PeopleIndex(db, documents)
        return [_serialize(doc, actor, people) for doc in documents]

    # ------------------------------------------------------------------
    # Pipeline transitions
    # ------------------------------------------------------------------

    @staticmethod
    def assign(db: Session, document_id: str, assignee_id: str, actor: Actor) -> Document:
        next_role = get_next_role(actor.role)
        if next_role is None:
            raise HTTPException(
                status_code=403, detail="Role not permitted to assign documents"
            )
        document = _get_scoped(db, document_id, actor)
        if document.is_published:
            raise HTTPException(status_code=400, detail="Document is already published")

        assignee = db.get(Employee, coerce_uuid(assignee_id))
        if not assignee or assignee.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Assignee not found")
        if normalize_role(assignee.role) is not next_role:
            raise HTTPException(
                status_code=400,
                detail=f"Assignee must have role {next_role.value}",
            )

        if next_role is Role.indexer:
            document.indexer_passed_id = assignee.id
            document.passed_to = assignee.id
        else:
            document.qa_passed_id = assignee.id
            document.passed_to = assignee.id
            document.progress_number = max(document.progress_number, STAGE_INDEXED)
            UsageCounters.increment_reviewed(db, actor.person_id)

        _record_history(
            db, document, actor, f"Assigned to {assignee.name} ({next_role.value})"
        )
        db.commit()
        db.refresh(document)
        DOCUMENT_TRANSITIONS.labels(transition=f"assign_{next_role.value.lower()}").inc()
        logger.info(
            "Document %s passed to %s %s by %s",
            document.id,
            next_role.value,
            assignee.id,
            actor.person_id,
        )
        return document

    @staticmethod
    def save_draft(db: Session, document_id: str, actor: Actor) -> Document:
        if actor.role is not Role.qa:
            raise HTTPException(status_code=403, detail="Only QA can save drafts")
        document = _get_scoped(db, document_id, actor)
        if document.progress_number < STAGE_QA:
            document.progress_number = STAGE_QA
            UsageCounters.increment_reviewed(db, actor.person_id)
            _record_history(db, document, actor, "Saved QA draft")
            db.commit()
            db.refresh(document)
            DOCUMENT_TRANSITIONS.labels(transition="save_draft").inc()
            logger.info("Document %s saved as QA draft", document.id)
        return document

    @staticmethod
    def publish(db: Session, document_id: str, actor: Actor) -> Document:
        if actor.role is not Role.qa:
            raise HTTPException(status_code=403, detail="Only QA can publish documents")
        document = _get_scoped(db, document_id, actor)
        if document.is_published:
            return document
        if document.progress_number < STAGE_QA:
            UsageCounters.increment_reviewed(db, actor.person_id)
        document.progress_number = STAGE_QA
        document.is_published = True
        document.progress = DocumentProgress.complete
        _record_history(db, document, actor, "Published")
        db.commit()
        db.refresh(document)
        DOCUMENT_TRANSITIONS.labels(transition="publish").inc()
        logger.info("Published document %s", document.id)
        return document

    # ------------------------------------------------------------------
    # Comments, properties, history
    # ------------------------------------------------------------------

    @staticmethod
    def add_comment(db: Session, document_id: str, text: str, actor: Actor) -> Document:
        document = _get_scoped(db, document_id, actor)
        model = Client if actor.is_client else Employee
        author = db.get(model, actor.person_id)
        if not author or author.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Author not found")
        # Appending a row avoids rewriting the whole comment list
        db.add(
            DocumentComment(
                document_id=document.id,
                text=text,
                author_id=actor.person_id,
                role=actor.role.value,
                name=author.name,
            )
        )
        db.commit()
        db.refresh(document)
        logger.info("Comment added to document %s by %s", document.id, author.id)
        return document

    @staticmethod
    def update_properties(
        db: Session, document_id: str, properties: list[dict], actor: Actor
    ) -> Document:
        if actor.role not in PROPERTY_EDITOR_ROLES:
            raise HTTPException(
                status_code=403, detail="Role not permitted to edit properties"
            )
        document = _get_scoped(db, document_id, actor)
        if document.is_published:
            raise HTTPException(status_code=400, detail="Document is already published")
        document.properties = [
            {"key": item["key"], "value": item.get("value", "")} for item in properties
        ]
        _record_history(db, document, actor, "Updated properties")
        db.commit()
        db.refresh(document)
        logger.info("Updated properties of document %s", document.id)
        return document

    @staticmethod
    def record_download(db: Session, document_id: str, actor: Actor) -> Document:
        document = _get_scoped(db, document_id, actor)
        UsageCounters.increment(db, actor, UsageField.downloaded)
        db.commit()
        logger.info("Download of document %s by %s", document.id, actor.person_id)
        return document

    @staticmethod
    def add_history(
        db: Session, payload: EditHistoryCreate, actor: Actor
    ) -> DocumentEditHistory:
        document = _get_scoped(db, payload.document_id, actor)
        entry = _record_history(db, document, actor, payload.edit_description)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def list_history(
        db: Session, document_id: str, actor: Actor, limit: int, offset: int
    ) -> list[DocumentEditHistory]:
        document = _get_scoped(db, document_id, actor)
        stmt = (
            select(DocumentEditHistory)
            .where(DocumentEditHistory.document_id == document.id)
            .order_by(DocumentEditHistory.created_at.asc())
        )
        return list(db.scalars(apply_pagination(stmt, limit, offset)).all())


# ---------------------------------------------------------------------------
# Document tags
# ---------------------------------------------------------------------------


class DocumentTags(ListResponseMixin):
    @staticmethod
    def _scoped(db: Session, tag_id: str, actor: Actor) -> DocumentTag:
        tag = db.get(DocumentTag, coerce_uuid(tag_id))
        if not tag or tag.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Document tag not found")
        return tag

    @staticmethod
    def create(db: Session, title: str, properties: list[dict], actor: Actor) -> DocumentTag:
        tag = DocumentTag(
            company_id=actor.company_id, title=title, properties=list(properties)
        )
        db.add(tag)
        db.commit()
        db.refresh(tag)
        logger.info("Created document tag %s", tag.id)
        return tag

    @staticmethod
    def get(db: Session, tag_id: str, actor: Actor) -> DocumentTag:
        return DocumentTags._scoped(db, tag_id, actor)

    @staticmethod
    def list(db: Session, actor: Actor, limit: int, offset: int) -> list[DocumentTag]:
        stmt = (
            select(DocumentTag)
            .where(DocumentTag.company_id == actor.company_id)
            .order_by(DocumentTag.title.asc())
        )
        return list(db.scalars(apply_pagination(stmt, limit, offset)).all())

    @staticmethod
    def update(db: Session, tag_id: str, data: dict, actor: Actor) -> DocumentTag:
        tag = DocumentTags._scoped(db, tag_id, actor)
        for key, value in data.items():
            setattr(tag, key, value)
        db.commit()
        db.refresh(tag)
        logger.info("Updated document tag %s", tag.id)
        return tag

    @staticmethod
    def delete(db: Session, tag_id: str, actor: Actor) -> None:
        tag = DocumentTags._scoped(db, tag_id, actor)
        in_use = db.scalar(
            select(func.count()).select_from(Document).where(Document.tag_id == tag.id)
        )
        if in_use:
            raise HTTPException(
                status_code=400,
                detail={
                    "code": "dependency_in_use",
                    "message": "Document tag is used by existing documents",
                    "details": {"documents": in_use},
                },
            )
        db.delete(tag)
        db.commit()
        logger.info("Deleted document tag %s", tag_id)


documents = Documents()
document_tags = DocumentTags()
