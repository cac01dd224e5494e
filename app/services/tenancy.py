from __future__ import annotations

import logging

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.tenancy import (
    EMPLOYEE_ROLES,
    Client,
    ClientPlan,
    Company,
    CompanyStatus,
    Employee,
    PersonStatus,
    Plan,
    Role,
    normalize_role,
)
from app.schemas.tenancy import (
    ClientCreate,
    ClientUpdate,
    CompanySignup,
    CompanyUpdate,
    EmployeeCreate,
    EmployeeUpdate,
    PlanCreate,
    PlanUpdate,
)
from app.services.auth import Actor, hash_password
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.email import queue_email, welcome_email
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def _dependency_in_use(message: str, **referencing) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={
            "code": "dependency_in_use",
            "message": message,
            "details": {
                key: [{"id": str(row.id), "name": row.name} for row in rows]
                for key, rows in referencing.items()
            },
        },
    )


def _validate_person_status(status: str) -> PersonStatus:
    try:
        return PersonStatus(status.lower())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")


def _warn_shared_email(db: Session, email: str, other_model) -> None:
    # Login tries employees before clients, so a shared address is ambiguous
    clash = db.scalar(
        select(other_model.id).where(
            func.lower(other_model.email) == email.strip().lower()
        )
    )
    if clash:
        logger.warning(
            "Email %s already exists in %s; login will resolve to the employee",
            email,
            other_model.__tablename__,
        )


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


class Plans(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: PlanCreate) -> Plan:
        plan = Plan(**payload.model_dump())
        db.add(plan)
        db.commit()
        db.refresh(plan)
        logger.info("Created plan %s", plan.id)
        return plan

    @staticmethod
    def get(db: Session, plan_id: str) -> Plan:
        plan = db.get(Plan, coerce_uuid(plan_id))
        if not plan:
            raise HTTPException(status_code=404, detail="Plan not found")
        return plan

    @staticmethod
    def list(
        db: Session,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Plan]:
        query = db.query(Plan)
        if is_active is not None:
            query = query.filter(Plan.is_active == is_active)
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "name": Plan.name,
                "monthly_price": Plan.monthly_price,
                "created_at": Plan.created_at,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, plan_id: str, payload: PlanUpdate) -> Plan:
        plan = Plans.get(db, plan_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(plan, key, value)
        db.commit()
        db.refresh(plan)
        logger.info("Updated plan %s", plan.id)
        return plan

    @staticmethod
    def delete(db: Session, plan_id: str) -> None:
        plan = Plans.get(db, plan_id)
        companies = (
            db.query(Company).filter(Company.plan_id == plan.id).order_by(Company.name).all()
        )
        if companies:
            raise _dependency_in_use(
                "Plan is assigned to existing companies", companies=companies
            )
        db.delete(plan)
        db.commit()
        logger.info("Deleted plan %s", plan_id)


class ClientPlans(ListResponseMixin):
    @staticmethod
    def _scoped(db: Session, plan_id: str, actor: Actor) -> ClientPlan:
        plan = db.get(ClientPlan, coerce_uuid(plan_id))
        if not plan or plan.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Client plan not found")
        return plan

    @staticmethod
    def create(db: Session, payload: PlanCreate, actor: Actor) -> ClientPlan:
        plan = ClientPlan(company_id=actor.company_id, **payload.model_dump())
        db.add(plan)
        db.commit()
        db.refresh(plan)
        logger.info("Created client plan %s for company %s", plan.id, actor.company_id)
        return plan

    @staticmethod
    def get(db: Session, plan_id: str, actor: Actor) -> ClientPlan:
        return ClientPlans._scoped(db, plan_id, actor)

    @staticmethod
    def list(db: Session, actor: Actor, limit: int, offset: int) -> list[ClientPlan]:
        query = (
            db.query(ClientPlan)
            .filter(ClientPlan.company_id == actor.company_id)
            .order_by(ClientPlan.name.asc())
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(
        db: Session, plan_id: str, payload: PlanUpdate, actor: Actor
    ) -> ClientPlan:
        plan = ClientPlans._scoped(db, plan_id, actor)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(plan, key, value)
        db.commit()
        db.refresh(plan)
        logger.info("Updated client plan %s", plan.id)
        return plan

    @staticmethod
    def delete(db: Session, plan_id: str, actor: Actor) -> None:
        plan = ClientPlans._scoped(db, plan_id, actor)
        clients = (
            db.query(Client)
            .filter(Client.client_plan_id == plan.id)
            .order_by(Client.name)
            .all()
        )
        if clients:
            raise _dependency_in_use(
                "Client plan is assigned to existing clients", clients=clients
            )
        db.delete(plan)
        db.commit()
        logger.info("Deleted client plan %s", plan_id)


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


class Companies(ListResponseMixin):
    @staticmethod
    def signup(db: Session, payload: CompanySignup) -> Company:
        """Create a tenant together with its Owner account."""
        email = payload.contact_email.strip().lower()
        existing = db.scalar(
            select(Company.id).where(func.lower(Company.contact_email) == email)
        )
        if existing:
            raise HTTPException(
                status_code=409, detail="Company already exists with this email."
            )
        if not db.get(Plan, coerce_uuid(payload.plan_id)):
            raise HTTPException(status_code=404, detail="Plan not found")

        company = Company(
            name=payload.name,
            contact_email=email,
            contact_phone=payload.contact_phone,
            address=payload.address,
            plan_id=payload.plan_id,
            status=CompanyStatus.active,
        )
        db.add(company)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise HTTPException(
                status_code=409, detail="Company already exists with this email."
            )
        _warn_shared_email(db, email, Client)
        owner = Employee(
            company_id=company.id,
            name=payload.admin_name,
            email=email,
            phone=payload.contact_phone,
            role=Role.owner.value,
            password_hash=hash_password(payload.password),
            status=PersonStatus.active,
        )
        db.add(owner)
        db.commit()
        db.refresh(company)
        logger.info("Company %s signed up with owner %s", company.id, owner.id)

        subject, html = welcome_email(company.name, email)
        queue_email(email, subject, html)
        return company

    @staticmethod
    def get(db: Session, company_id: str) -> Company:
        company = db.get(Company, coerce_uuid(company_id))
        if not company:
            raise HTTPException(status_code=404, detail="Company not found")
        return company

    @staticmethod
    def list(
        db: Session,
        status: str | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Company]:
        query = db.query(Company)
        if status is not None:
            query = query.filter(Company.status == _company_status(status))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"name": Company.name, "created_at": Company.created_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, company_id: str, payload: CompanyUpdate) -> Company:
        company = Companies.get(db, company_id)
        data = payload.model_dump(exclude_unset=True)
        if "status" in data and data["status"] is not None:
            data["status"] = _company_status(data["status"])
        if data.get("plan_id") is not None and not db.get(Plan, data["plan_id"]):
            raise HTTPException(status_code=404, detail="Plan not found")
        for key, value in data.items():
            setattr(company, key, value)
        db.commit()
        db.refresh(company)
        logger.info("Updated company %s", company.id)
        return company

    @staticmethod
    def deactivate(db: Session, company_id: str) -> None:
        company = Companies.get(db, company_id)
        company.status = CompanyStatus.inactive
        db.commit()
        logger.info("Deactivated company %s", company_id)


def _company_status(value: str) -> CompanyStatus:
    for status in CompanyStatus:
        if status.value.lower() == value.strip().lower():
            return status
    raise HTTPException(status_code=400, detail=f"Invalid status: {value}")


# ---------------------------------------------------------------------------
# Employees
# ---------------------------------------------------------------------------


class Employees(ListResponseMixin):
    @staticmethod
    def _scoped(db: Session, employee_id: str, actor: Actor) -> Employee:
        employee = db.get(Employee, coerce_uuid(employee_id))
        if not employee or employee.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="User not found")
        return employee

    @staticmethod
    def _validate_role(value: str, actor: Actor) -> Role:
        role = normalize_role(value)
        if role is None or role not in EMPLOYEE_ROLES:
            raise HTTPException(status_code=400, detail=f"Invalid role: {value}")
        if role is Role.admin and actor.role is not Role.admin:
            raise HTTPException(status_code=403, detail="Only admins can grant Admin")
        return role

    @staticmethod
    def create(db: Session, payload: EmployeeCreate, actor: Actor) -> Employee:
        role = Employees._validate_role(payload.role, actor)
        _warn_shared_email(db, payload.email, Client)
        employee = Employee(
            company_id=actor.company_id,
            name=payload.name,
            email=payload.email.strip().lower(),
            phone=payload.phone,
            role=role.value,
            password_hash=hash_password(payload.password),
            status=PersonStatus.active,
        )
        db.add(employee)
        db.commit()
        db.refresh(employee)
        logger.info("Created %s user %s", role.value, employee.id)
        return employee

    @staticmethod
    def list(
        db: Session, actor: Actor, role: str | None, limit: int, offset: int
    ) -> list[Employee]:
        query = db.query(Employee).filter(Employee.company_id == actor.company_id)
        if role is not None:
            query = query.filter(func.lower(Employee.role) == role.strip().lower())
        query = query.order_by(Employee.name.asc())
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(
        db: Session, employee_id: str, payload: EmployeeUpdate, actor: Actor
    ) -> Employee:
        employee = Employees._scoped(db, employee_id, actor)
        data = payload.model_dump(exclude_unset=True)
        if data.get("role") is not None:
            data["role"] = Employees._validate_role(data["role"], actor).value
        if data.get("status") is not None:
            data["status"] = _validate_person_status(data["status"])
        if data.get("password") is not None:
            data["password_hash"] = hash_password(data.pop("password"))
        for key, value in data.items():
            setattr(employee, key, value)
        db.commit()
        db.refresh(employee)
        logger.info("Updated user %s", employee.id)
        return employee

    @staticmethod
    def delete(db: Session, employee_id: str, actor: Actor) -> None:
        employee = Employees._scoped(db, employee_id, actor)
        if employee.id == actor.person_id:
            raise HTTPException(status_code=400, detail="Cannot delete yourself")
        db.delete(employee)
        db.commit()
        logger.info("Deleted user %s", employee_id)


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


class Clients(ListResponseMixin):
    @staticmethod
    def _scoped(db: Session, client_id: str, actor: Actor) -> Client:
        client = db.get(Client, coerce_uuid(client_id))
        if not client or client.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    @staticmethod
    def _check_plan(db: Session, plan_id, actor: Actor) -> None:
        if plan_id is None:
            return
        plan = db.get(ClientPlan, coerce_uuid(plan_id))
        if not plan or plan.company_id != actor.company_id:
            raise HTTPException(status_code=404, detail="Client plan not found")

    @staticmethod
    def create(db: Session, payload: ClientCreate, actor: Actor) -> Client:
        Clients._check_plan(db, payload.client_plan_id, actor)
        _warn_shared_email(db, payload.email, Employee)
        client = Client(
            company_id=actor.company_id,
            name=payload.name,
            email=payload.email.strip().lower(),
            phone=payload.phone,
            password_hash=hash_password(payload.password),
            client_plan_id=payload.client_plan_id,
            status=PersonStatus.active,
        )
        db.add(client)
        db.commit()
        db.refresh(client)
        logger.info("Created client %s", client.id)
        return client

    @staticmethod
    def get(db: Session, client_id: str, actor: Actor) -> Client:
        return Clients._scoped(db, client_id, actor)

    @staticmethod
    def list(db: Session, actor: Actor, limit: int, offset: int) -> list[Client]:
        query = (
            db.query(Client)
            .filter(Client.company_id == actor.company_id)
            .order_by(Client.name.asc())
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(
        db: Session, client_id: str, payload: ClientUpdate, actor: Actor
    ) -> Client:
        client = Clients._scoped(db, client_id, actor)
        data = payload.model_dump(exclude_unset=True)
        if "client_plan_id" in data:
            Clients._check_plan(db, data["client_plan_id"], actor)
        if data.get("status") is not None:
            data["status"] = _validate_person_status(data["status"])
        if data.get("password") is not None:
            data["password_hash"] = hash_password(data.pop("password"))
        for key, value in data.items():
            setattr(client, key, value)
        db.commit()
        db.refresh(client)
        logger.info("Updated client %s", client.id)
        return client

    @staticmethod
    def delete(db: Session, client_id: str, actor: Actor) -> None:
        client = Clients._scoped(db, client_id, actor)
        client.status = PersonStatus.inactive
        db.commit()
        logger.info("Deactivated client %s", client_id)


plans = Plans()
client_plans = ClientPlans()
companies = Companies()
employees = Employees()
clients = Clients()
