from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_roles, require_user_auth
from app.models.tenancy import Role
from app.services import usage as usage_service
from app.services.auth import Actor

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("")
def tenant_stats(
    actor: Actor = Depends(require_user_auth), db: Session = Depends(get_db)
) -> dict:
    return usage_service.dashboard(db, actor)


@router.get("/platform")
def platform_stats(
    actor: Actor = Depends(require_roles(Role.admin)), db: Session = Depends(get_db)
) -> dict:
    return usage_service.platform_dashboard(db)
