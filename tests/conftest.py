import os
import uuid
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SMTP_HOST", "")

import pytest
from fastapi.testclient import TestClient

from app.db import Base, SessionLocal, engine, get_db
from app.main import app
from app.models.documents import DocumentTag
from app.models.tenancy import (
    Client,
    ClientPlan,
    Company,
    CompanyStatus,
    Employee,
    PersonStatus,
    Plan,
    Role,
)
from app.services.auth import Actor, hash_password, issue_token

PASSWORD = "s3cret-pass"


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------


@pytest.fixture()
def plan(db_session):
    plan = Plan(
        name="Standard",
        monthly_price=100,
        share_count=1000,
        share_price_per_thousand=5,
        download_count=1000,
        download_price_per_thousand=3,
        upload_count=10,
        upload_price_per_ten=2,
        billing_duration=1,
    )
    db_session.add(plan)
    db_session.commit()
    db_session.refresh(plan)
    return plan


def make_company(db_session, plan, name="Acme Records", **kwargs):
    company = Company(
        name=name,
        contact_email=kwargs.pop("contact_email", f"{uuid.uuid4().hex[:8]}@acme.test"),
        plan_id=plan.id if plan else None,
        status=kwargs.pop("status", CompanyStatus.active),
        last_invoice_paid=kwargs.pop(
            "last_invoice_paid", datetime.now(timezone.utc) - timedelta(days=62)
        ),
        **kwargs,
    )
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


def make_employee(db_session, company, role: Role, name=None, **kwargs):
    employee = Employee(
        company_id=company.id,
        name=name or f"{role.value} {uuid.uuid4().hex[:4]}",
        email=kwargs.pop("email", f"{role.value.lower()}-{uuid.uuid4().hex[:8]}@acme.test"),
        password_hash=hash_password(PASSWORD),
        role=role.value,
        status=kwargs.pop("status", PersonStatus.active),
        **kwargs,
    )
    db_session.add(employee)
    db_session.commit()
    db_session.refresh(employee)
    return employee


def make_client(db_session, company, client_plan=None, **kwargs):
    person = Client(
        company_id=company.id,
        name=kwargs.pop("name", f"Client {uuid.uuid4().hex[:4]}"),
        email=kwargs.pop("email", f"client-{uuid.uuid4().hex[:8]}@example.test"),
        password_hash=hash_password(PASSWORD),
        client_plan_id=client_plan.id if client_plan else None,
        status=kwargs.pop("status", PersonStatus.active),
        last_invoice_paid=kwargs.pop(
            "last_invoice_paid", datetime.now(timezone.utc) - timedelta(days=62)
        ),
        **kwargs,
    )
    db_session.add(person)
    db_session.commit()
    db_session.refresh(person)
    return person


def actor_for(person) -> Actor:
    if isinstance(person, Client):
        return Actor.from_client(person)
    return Actor.from_employee(person)


def headers_for(person) -> dict:
    return {"Authorization": f"Bearer {issue_token(actor_for(person))}"}


@pytest.fixture()
def company(db_session, plan):
    return make_company(db_session, plan)


@pytest.fixture()
def other_company(db_session, plan):
    return make_company(db_session, plan, name="Other Co")


@pytest.fixture()
def platform_company(db_session):
    return make_company(db_session, None, name="Platform")


@pytest.fixture()
def owner(db_session, company):
    return make_employee(db_session, company, Role.owner, name="Olivia Owner")


@pytest.fixture()
def manager(db_session, company):
    return make_employee(db_session, company, Role.manager, name="Mark Manager")


@pytest.fixture()
def scanner(db_session, company):
    return make_employee(db_session, company, Role.scanner, name="Sam Scanner")


@pytest.fixture()
def indexer(db_session, company):
    return make_employee(db_session, company, Role.indexer, name="Ivy Indexer")


@pytest.fixture()
def qa(db_session, company):
    return make_employee(db_session, company, Role.qa, name="Quinn QA")


@pytest.fixture()
def admin(db_session, platform_company):
    return make_employee(db_session, platform_company, Role.admin, name="Ada Admin")


@pytest.fixture()
def client_plan(db_session, company):
    plan = ClientPlan(
        company_id=company.id,
        name="Client Basic",
        monthly_price=20,
        share_count=100,
        share_price_per_thousand=1,
        download_count=100,
        download_price_per_thousand=1,
        upload_count=10,
        upload_price_per_ten=1,
        billing_duration=1,
    )
    db_session.add(plan)
    db_session.commit()
    db_session.refresh(plan)
    return plan


@pytest.fixture()
def client_person(db_session, company, client_plan):
    return make_client(db_session, company, client_plan, name="Cora Client")


@pytest.fixture()
def tag(db_session, company):
    tag = DocumentTag(
        company_id=company.id,
        title="Invoices",
        properties=[
            {"key": "vendor", "type": "text"},
            {"key": "amount", "type": "number"},
            {"key": "date", "type": "date"},
        ],
    )
    db_session.add(tag)
    db_session.commit()
    db_session.refresh(tag)
    return tag


@pytest.fixture()
def auth_headers(owner):
    return headers_for(owner)


# Factories for tests that need more than one person per role


@pytest.fixture()
def new_company(db_session, plan):
    def _factory(**kwargs):
        return make_company(db_session, kwargs.pop("plan", plan), **kwargs)

    return _factory


@pytest.fixture()
def new_employee(db_session):
    def _factory(company, role: Role, **kwargs):
        return make_employee(db_session, company, role, **kwargs)

    return _factory


@pytest.fixture()
def new_client(db_session):
    def _factory(company, client_plan=None, **kwargs):
        return make_client(db_session, company, client_plan, **kwargs)

    return _factory


@pytest.fixture()
def headers():
    return headers_for


@pytest.fixture()
def actor():
    return actor_for
