from __future__ import annotations

import logging
import secrets

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.models.documents import SharedDocumentLink
from app.models.tenancy import Role
from app.schemas.documents import SharedLinkCreate
from app.services.auth import Actor, hash_password, verify_password
from app.services.common import apply_pagination, coerce_uuid
from app.services.documents import _get_scoped
from app.services.response import ListResponseMixin
from app.services.usage import UsageCounters, UsageField

logger = logging.getLogger(__name__)


def share_url(link: SharedDocumentLink) -> str:
    return f"{settings.share_link_base_url.rstrip('/')}/{link.link}"


class SharedLinks(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: SharedLinkCreate, actor: Actor) -> SharedDocumentLink:
        document = _get_scoped(db, payload.document_id, actor)
        link = SharedDocumentLink(
            company_id=actor.company_id,
            document_id=document.id,
            owner_id=actor.person_id,
            owner_role=actor.role.value,
            link=secrets.token_urlsafe(24),
            password_hash=hash_password(payload.password),
            is_active=True,
        )
        db.add(link)
        db.flush()
        UsageCounters.increment(db, actor, UsageField.shared)
        db.commit()
        db.refresh(link)
        logger.info("Shared document %s via link %s", document.id, link.id)
        return link

    @staticmethod
    def list(db: Session, actor: Actor, limit: int, offset: int) -> list[SharedDocumentLink]:
        stmt = select(SharedDocumentLink).where(
            SharedDocumentLink.company_id == actor.company_id
        )
        if actor.role not in (Role.owner, Role.manager):
            stmt = stmt.where(SharedDocumentLink.owner_id == actor.person_id)
        stmt = stmt.order_by(SharedDocumentLink.created_at.desc())
        return list(db.scalars(apply_pagination(stmt, limit, offset)).all())

    @staticmethod
    def access(db: Session, token: str, password: str) -> dict:
        """Anonymous access to a shared document when the password matches."""
        link = db.scalars(
            select(SharedDocumentLink).where(SharedDocumentLink.link == token)
        ).first()
        if not link or not link.is_active:
            raise HTTPException(status_code=404, detail="Shared link not found")
        if not verify_password(password, link.password_hash):
            logger.info("Wrong password for shared link %s", link.id)
            raise HTTPException(status_code=401, detail="Invalid password")
        document = link.document
        return {
            "document_id": document.id,
            "title": document.title,
            "url": document.url,
            "properties": list(document.properties or []),
        }

    @staticmethod
    def delete(db: Session, link_id: str, actor: Actor) -> None:
        link = db.get(SharedDocumentLink, coerce_uuid(link_id))
        if not link or link.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Shared link not found")
        if link.owner_id != actor.person_id and actor.role not in (
            Role.owner,
            Role.manager,
        ):
            raise HTTPException(
                status_code=403, detail="Only the link owner can revoke it"
            )
        link.is_active = False
        db.commit()
        logger.info("Revoked shared link %s", link_id)


shared_links = SharedLinks()
