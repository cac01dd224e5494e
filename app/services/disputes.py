from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.documents import Dispute
from app.models.tenancy import Role
from app.schemas.documents import DisputeCreate
from app.services.auth import Actor
from app.services.common import apply_pagination, coerce_uuid
from app.services.documents import _get_scoped
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

RESOLVER_ROLES = frozenset({Role.owner, Role.manager, Role.qa})


class Disputes(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: DisputeCreate, actor: Actor) -> Dispute:
        document = _get_scoped(db, payload.document_id, actor)
        dispute = Dispute(
            company_id=actor.company_id,
            document_id=document.id,
            raised_by=actor.person_id,
            raised_by_role=actor.role.value,
            description=payload.description,
            resolve=False,
        )
        db.add(dispute)
        db.commit()
        db.refresh(dispute)
        logger.info("Dispute %s raised on document %s", dispute.id, document.id)
        return dispute

    @staticmethod
    def list(
        db: Session,
        actor: Actor,
        resolved: bool | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Dispute]:
        stmt = select(Dispute).where(Dispute.company_id == actor.company_id)
        if actor.is_client:
            stmt = stmt.where(Dispute.raised_by == actor.person_id)
        if resolved is not None:
            stmt = stmt.where(Dispute.resolve.is_(resolved))
        stmt = stmt.order_by(Dispute.created_at.desc())
        return list(db.scalars(apply_pagination(stmt, limit, offset)).all())

    @staticmethod
    def resolve(db: Session, dispute_id: str, actor: Actor) -> Dispute:
        if actor.role not in RESOLVER_ROLES:
            raise HTTPException(
                status_code=403, detail="Role not permitted to resolve disputes"
            )
        dispute = db.get(Dispute, coerce_uuid(dispute_id))
        if not dispute or dispute.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Dispute not found")
        if not dispute.resolve:
            dispute.resolve = True
            dispute.resolved_by = actor.person_id
            dispute.resolved_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(dispute)
            logger.info("Dispute %s resolved by %s", dispute.id, actor.person_id)
        return dispute


disputes = Disputes()
