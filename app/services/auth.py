from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException
from jose import JWTError, jwt
from passlib.hash import pbkdf2_sha256 as hasher
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.config import settings
from app.models.tenancy import (
    Client,
    Company,
    CompanyStatus,
    Employee,
    PersonStatus,
    Role,
    normalize_role,
)
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)

KIND_EMPLOYEE = "employee"
KIND_CLIENT = "client"


def hash_password(password: str) -> str:
    return hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return hasher.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


@dataclass(frozen=True)
class Actor:
    """The authenticated caller, resolved once from either person table."""

    person_id: uuid.UUID
    company_id: uuid.UUID
    role: Role
    name: str
    kind: str = KIND_EMPLOYEE

    @property
    def is_client(self) -> bool:
        return self.kind == KIND_CLIENT

    @classmethod
    def from_employee(cls, employee: Employee) -> "Actor":
        role = normalize_role(employee.role)
        if role is None or role is Role.client:
            raise HTTPException(status_code=403, detail="Unknown employee role")
        return cls(
            person_id=employee.id,
            company_id=employee.company_id,
            role=role,
            name=employee.name,
            kind=KIND_EMPLOYEE,
        )

    @classmethod
    def from_client(cls, client: Client) -> "Actor":
        return cls(
            person_id=client.id,
            company_id=client.company_id,
            role=Role.client,
            name=client.name,
            kind=KIND_CLIENT,
        )


def issue_token(actor: Actor, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    claims = {
        "sub": str(actor.person_id),
        "company_id": str(actor.company_id),
        "role": actor.role.value,
        "name": actor.name,
        "kind": actor.kind,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> Actor:
    try:
        claims = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        role = normalize_role(claims.get("role"))
        if role is None:
            raise JWTError("unknown role")
        return Actor(
            person_id=uuid.UUID(claims["sub"]),
            company_id=uuid.UUID(claims["company_id"]),
            role=role,
            name=claims.get("name") or "",
            kind=claims.get("kind") or KIND_EMPLOYEE,
        )
    except (JWTError, KeyError, ValueError):
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _find_by_email(db: Session, model, email: str):
    stmt = select(model).where(func.lower(model.email) == email.strip().lower())
    return db.scalars(stmt).first()


def authenticate(db: Session, email: str, password: str) -> Actor:
    """Employees are tried first, then clients; role Client is implicit."""
    actor = None
    person_active = True
    employee = _find_by_email(db, Employee, email)
    if employee and verify_password(password, employee.password_hash):
        actor = Actor.from_employee(employee)
        person_active = employee.status == PersonStatus.active
    else:
        client = _find_by_email(db, Client, email)
        if client and verify_password(password, client.password_hash):
            actor = Actor.from_client(client)
            person_active = client.status == PersonStatus.active

    if actor is None:
        logger.info("Failed login for %s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password.")

    company = db.get(Company, coerce_uuid(actor.company_id))
    if not company or company.status != CompanyStatus.active:
        raise HTTPException(status_code=403, detail="Company account is not active.")
    if not person_active:
        raise HTTPException(status_code=403, detail="Account is not active.")
    return actor


def login(db: Session, email: str, password: str) -> dict:
    actor = authenticate(db, email, password)
    logger.info("Login for %s %s (%s)", actor.kind, actor.person_id, actor.role.value)
    return {
        "token": issue_token(actor),
        "role": actor.role.value,
        "person_id": actor.person_id,
        "company_id": actor.company_id,
        "name": actor.name,
    }
