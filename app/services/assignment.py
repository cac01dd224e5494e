import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.tenancy import Employee, Role, normalize_role
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)

# Who hands a document to whom
_NEXT_ROLE = {
    Role.owner: Role.indexer,
    Role.manager: Role.indexer,
    Role.scanner: Role.indexer,
    Role.client: Role.indexer,
    Role.indexer: Role.qa,
}


def get_next_role(actor_role: Role | str | None) -> Role | None:
    if not isinstance(actor_role, Role):
        actor_role = normalize_role(actor_role)
    return _NEXT_ROLE.get(actor_role)


def list_assignees(
    db: Session, company_id, next_role: Role | str | None
) -> list[Employee]:
    if next_role is None:
        return []
    role_name = next_role.value if isinstance(next_role, Role) else str(next_role)
    stmt = (
        select(Employee)
        .where(Employee.company_id == coerce_uuid(company_id))
        .where(func.lower(Employee.role) == role_name.strip().lower())
        .order_by(Employee.name.asc())
    )
    return list(db.scalars(stmt).all())


def assignees_for(db: Session, company_id, actor_role) -> tuple[Role | None, list[Employee]]:
    next_role = get_next_role(actor_role)
    assignees = list_assignees(db, company_id, next_role)
    logger.debug(
        "Next role for %s is %s (%d candidates)",
        actor_role,
        next_role.value if next_role else None,
        len(assignees),
    )
    return next_role, assignees
