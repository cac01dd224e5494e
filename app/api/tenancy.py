from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_roles, require_user_auth
from app.models.tenancy import Role
from app.schemas.common import ListResponse
from app.schemas.tenancy import (
    ClientCreate,
    ClientPlanRead,
    ClientRead,
    ClientUpdate,
    CompanyRead,
    CompanySignup,
    CompanyUpdate,
    EmployeeCreate,
    EmployeeRead,
    EmployeeUpdate,
    PlanCreate,
    PlanRead,
    PlanUpdate,
)
from app.services import tenancy as tenancy_service
from app.services.auth import Actor

router = APIRouter(tags=["tenancy"])

_admin = require_roles(Role.admin)
_supervisor = require_roles(Role.owner, Role.manager)
_staff_admin = require_roles(Role.owner, Role.manager, Role.admin)


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


@router.get("/plans", response_model=ListResponse[PlanRead])
def list_plans(
    is_active: bool | None = None,
    order_by: str = Query(default="name"),
    order_dir: str = Query(default="asc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> dict:
    return tenancy_service.plans.list_response(
        db, is_active, order_by, order_dir, limit=limit, offset=offset
    )


@router.get("/plans/{plan_id}", response_model=PlanRead)
def get_plan(plan_id: str, db: Session = Depends(get_db)):
    return tenancy_service.plans.get(db, plan_id)


@router.post("/plans", response_model=PlanRead, status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: PlanCreate,
    actor: Actor = Depends(_admin),
    db: Session = Depends(get_db),
):
    return tenancy_service.plans.create(db, payload)


@router.patch("/plans/{plan_id}", response_model=PlanRead)
def update_plan(
    plan_id: str,
    payload: PlanUpdate,
    actor: Actor = Depends(_admin),
    db: Session = Depends(get_db),
):
    return tenancy_service.plans.update(db, plan_id, payload)


@router.delete("/plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(
    plan_id: str, actor: Actor = Depends(_admin), db: Session = Depends(get_db)
) -> None:
    tenancy_service.plans.delete(db, plan_id)


# ---------------------------------------------------------------------------
# Client plans
# ---------------------------------------------------------------------------


@router.get("/client-plans", response_model=ListResponse[ClientPlanRead])
def list_client_plans(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(_supervisor),
    db: Session = Depends(get_db),
) -> dict:
    return tenancy_service.client_plans.list_response(
        db, actor, limit=limit, offset=offset
    )


@router.get("/client-plans/{plan_id}", response_model=ClientPlanRead)
def get_client_plan(
    plan_id: str, actor: Actor = Depends(_supervisor), db: Session = Depends(get_db)
):
    return tenancy_service.client_plans.get(db, plan_id, actor)


@router.post(
    "/client-plans", response_model=ClientPlanRead, status_code=status.HTTP_201_CREATED
)
def create_client_plan(
    payload: PlanCreate,
    actor: Actor = Depends(_supervisor),
    db: Session = Depends(get_db),
):
    return tenancy_service.client_plans.create(db, payload, actor)


@router.patch("/client-plans/{plan_id}", response_model=ClientPlanRead)
def update_client_plan(
    plan_id: str,
    payload: PlanUpdate,
    actor: Actor = Depends(_supervisor),
    db: Session = Depends(get_db),
):
    return tenancy_service.client_plans.update(db, plan_id, payload, actor)


@router.delete("/client-plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client_plan(
    plan_id: str, actor: Actor = Depends(_supervisor), db: Session = Depends(get_db)
) -> None:
    tenancy_service.client_plans.delete(db, plan_id, actor)


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


@router.post(
    "/companies", response_model=CompanyRead, status_code=status.HTTP_201_CREATED
)
def signup_company(payload: CompanySignup, db: Session = Depends(get_db)):
    return tenancy_service.companies.signup(db, payload)


@router.get("/companies", response_model=ListResponse[CompanyRead])
def list_companies(
    company_status: str | None = Query(default=None, alias="status"),
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(_admin),
    db: Session = Depends(get_db),
) -> dict:
    return tenancy_service.companies.list_response(
        db, company_status, order_by, order_dir, limit=limit, offset=offset
    )


@router.get("/companies/me", response_model=CompanyRead)
def get_my_company(
    actor: Actor = Depends(require_user_auth), db: Session = Depends(get_db)
):
    return tenancy_service.companies.get(db, actor.company_id)


@router.get("/companies/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: str, actor: Actor = Depends(_admin), db: Session = Depends(get_db)
):
    return tenancy_service.companies.get(db, company_id)


@router.patch("/companies/{company_id}", response_model=CompanyRead)
def update_company(
    company_id: str,
    payload: CompanyUpdate,
    actor: Actor = Depends(_admin),
    db: Session = Depends(get_db),
):
    return tenancy_service.companies.update(db, company_id, payload)


@router.delete("/companies/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_company(
    company_id: str, actor: Actor = Depends(_admin), db: Session = Depends(get_db)
) -> None:
    tenancy_service.companies.deactivate(db, company_id)


# ---------------------------------------------------------------------------
# Users (employees)
# ---------------------------------------------------------------------------


@router.get("/users", response_model=ListResponse[EmployeeRead])
def list_users(
    role: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(_staff_admin),
    db: Session = Depends(get_db),
) -> dict:
    return tenancy_service.employees.list_response(
        db, actor, role, limit=limit, offset=offset
    )


@router.post("/users", response_model=EmployeeRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: EmployeeCreate,
    actor: Actor = Depends(_staff_admin),
    db: Session = Depends(get_db),
):
    return tenancy_service.employees.create(db, payload, actor)


@router.patch("/users/{user_id}", response_model=EmployeeRead)
def update_user(
    user_id: str,
    payload: EmployeeUpdate,
    actor: Actor = Depends(_staff_admin),
    db: Session = Depends(get_db),
):
    return tenancy_service.employees.update(db, user_id, payload, actor)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str, actor: Actor = Depends(_staff_admin), db: Session = Depends(get_db)
) -> None:
    tenancy_service.employees.delete(db, user_id, actor)


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


@router.get("/clients", response_model=ListResponse[ClientRead])
def list_clients(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(_supervisor),
    db: Session = Depends(get_db),
) -> dict:
    return tenancy_service.clients.list_response(db, actor, limit=limit, offset=offset)


@router.get("/clients/{client_id}", response_model=ClientRead)
def get_client(
    client_id: str, actor: Actor = Depends(_supervisor), db: Session = Depends(get_db)
):
    return tenancy_service.clients.get(db, client_id, actor)


@router.post("/clients", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    actor: Actor = Depends(_supervisor),
    db: Session = Depends(get_db),
):
    return tenancy_service.clients.create(db, payload, actor)


@router.patch("/clients/{client_id}", response_model=ClientRead)
def update_client(
    client_id: str,
    payload: ClientUpdate,
    actor: Actor = Depends(_supervisor),
    db: Session = Depends(get_db),
):
    return tenancy_service.clients.update(db, client_id, payload, actor)


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_client(
    client_id: str, actor: Actor = Depends(_supervisor), db: Session = Depends(get_db)
) -> None:
    tenancy_service.clients.delete(db, client_id, actor)
