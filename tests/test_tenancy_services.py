import uuid
from unittest.mock import patch

import pytest
from fastapi import HTTPException

from app.models.tenancy import (
    ClientPlan,
    CompanyStatus,
    Employee,
    PersonStatus,
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
from app.services.auth import verify_password
from app.services.tenancy import ClientPlans, Clients, Companies, Employees, Plans


def _signup(plan, email="hello@newco.test"):
    return CompanySignup(
        name="NewCo",
        contact_email=email,
        plan_id=plan.id,
        admin_name="Nora Owner",
        password="correct-horse",
    )


class TestRoles:
    def test_normalize_role(self):
        assert normalize_role("qa") is Role.qa
        assert normalize_role(" OWNER ") is Role.owner
        assert normalize_role("nobody") is None
        assert normalize_role(None) is None


class TestPlans:
    def test_create_update(self, db_session):
        plan = Plans.create(db_session, PlanCreate(name="Pro", monthly_price=250))
        assert plan.share_count == 1000
        assert plan.upload_count == 10
        updated = Plans.update(db_session, plan.id, PlanUpdate(billing_duration=3))
        assert updated.billing_duration == 3
        assert updated.monthly_price == 250

    def test_delete_blocked_by_companies(self, db_session, plan, company):
        with pytest.raises(HTTPException) as exc:
            Plans.delete(db_session, plan.id)
        assert exc.value.status_code == 400
        detail = exc.value.detail
        assert detail["code"] == "dependency_in_use"
        assert detail["details"]["companies"] == [
            {"id": str(company.id), "name": company.name}
        ]

    def test_delete_unused(self, db_session):
        plan = Plans.create(db_session, PlanCreate(name="Trial"))
        Plans.delete(db_session, plan.id)
        with pytest.raises(HTTPException) as exc:
            Plans.get(db_session, plan.id)
        assert exc.value.status_code == 404

    def test_list_filters_active(self, db_session, plan):
        Plans.create(db_session, PlanCreate(name="Legacy", is_active=False))
        names = [p.name for p in Plans.list(db_session, True, "name", "asc", 50, 0)]
        assert names == ["Standard"]


class TestClientPlans:
    def test_scoped_to_tenant(
        self, db_session, owner, client_plan, other_company, new_employee, actor
    ):
        outsider = new_employee(other_company, Role.owner)
        with pytest.raises(HTTPException) as exc:
            ClientPlans.get(db_session, client_plan.id, actor(outsider))
        assert exc.value.status_code == 404
        assert ClientPlans.get(db_session, client_plan.id, actor(owner)).id == client_plan.id

    def test_delete_blocked_by_clients(self, db_session, owner, client_plan, client_person, actor):
        with pytest.raises(HTTPException) as exc:
            ClientPlans.delete(db_session, client_plan.id, actor(owner))
        assert exc.value.detail["details"]["clients"][0]["id"] == str(client_person.id)

    def test_create(self, db_session, owner, actor):
        plan = ClientPlans.create(db_session, PlanCreate(name="Gold"), actor(owner))
        assert plan.company_id == owner.company_id
        assert db_session.query(ClientPlan).count() == 1


class TestCompanySignup:
    def test_creates_company_and_owner(self, db_session, plan):
        with patch("app.services.tenancy.queue_email") as queued:
            company = Companies.signup(db_session, _signup(plan, "Hello@NewCo.test"))

        assert company.status == CompanyStatus.active
        assert company.contact_email == "hello@newco.test"
        owner = db_session.query(Employee).filter(Employee.company_id == company.id).one()
        assert owner.role == "Owner"
        assert owner.name == "Nora Owner"
        assert owner.password_hash != "correct-horse"
        assert verify_password("correct-horse", owner.password_hash)
        queued.assert_called_once()
        assert queued.call_args.args[0] == "hello@newco.test"

    def test_duplicate_email_conflicts(self, db_session, plan):
        with patch("app.services.tenancy.queue_email"):
            Companies.signup(db_session, _signup(plan))
            with pytest.raises(HTTPException) as exc:
                Companies.signup(db_session, _signup(plan, "HELLO@newco.test"))
        assert exc.value.status_code == 409
        assert exc.value.detail == "Company already exists with this email."

    def test_unknown_plan(self, db_session):
        payload = CompanySignup(
            name="X",
            contact_email="x@x.test",
            plan_id=uuid.uuid4(),
            admin_name="X",
            password="long-enough",
        )
        with pytest.raises(HTTPException) as exc:
            Companies.signup(db_session, payload)
        assert exc.value.status_code == 404

    def test_welcome_email_failure_is_not_fatal(self, db_session, plan):
        with patch(
            "app.tasks.email.send_email_task.delay", side_effect=RuntimeError("broker down")
        ):
            company = Companies.signup(db_session, _signup(plan))
        assert company.id is not None

    def test_update_and_deactivate(self, db_session, company):
        updated = Companies.update(db_session, company.id, CompanyUpdate(status="inactive"))
        assert updated.status == CompanyStatus.inactive
        with pytest.raises(HTTPException) as exc:
            Companies.update(db_session, company.id, CompanyUpdate(status="paused"))
        assert exc.value.status_code == 400
        Companies.deactivate(db_session, company.id)
        assert Companies.get(db_session, company.id).status == CompanyStatus.inactive


class TestEmployees:
    def test_create_normalizes_role(self, db_session, owner, actor):
        payload = EmployeeCreate(
            name="Ian", email="Ian@Acme.test", role="indexer", password="password123"
        )
        employee = Employees.create(db_session, payload, actor(owner))
        assert employee.role == "Indexer"
        assert employee.email == "ian@acme.test"
        assert employee.company_id == owner.company_id

    def test_rejects_unknown_and_client_roles(self, db_session, owner, actor):
        for role in ("Janitor", "Client"):
            payload = EmployeeCreate(
                name="X", email=f"{role}@acme.test", role=role, password="password123"
            )
            with pytest.raises(HTTPException) as exc:
                Employees.create(db_session, payload, actor(owner))
            assert exc.value.status_code == 400

    def test_only_admin_grants_admin(self, db_session, owner, actor):
        payload = EmployeeCreate(
            name="X", email="x@acme.test", role="Admin", password="password123"
        )
        with pytest.raises(HTTPException) as exc:
            Employees.create(db_session, payload, actor(owner))
        assert exc.value.status_code == 403

    def test_update_password_and_status(self, db_session, owner, scanner, actor):
        updated = Employees.update(
            db_session,
            scanner.id,
            EmployeeUpdate(password="new-password", status="INACTIVE"),
            actor(owner),
        )
        assert verify_password("new-password", updated.password_hash)
        assert updated.status == PersonStatus.inactive

    def test_list_by_role(self, db_session, owner, scanner, indexer, actor):
        found = Employees.list(db_session, actor(owner), "INDEXER", 50, 0)
        assert [e.id for e in found] == [indexer.id]

    def test_cannot_delete_self(self, db_session, owner, actor):
        with pytest.raises(HTTPException) as exc:
            Employees.delete(db_session, owner.id, actor(owner))
        assert exc.value.status_code == 400


class TestClients:
    def test_create_with_tenant_plan(self, db_session, owner, client_plan, actor):
        payload = ClientCreate(
            name="Carl", email="carl@example.test", password="password123",
            client_plan_id=client_plan.id,
        )
        created = Clients.create(db_session, payload, actor(owner))
        assert created.client_plan_id == client_plan.id
        assert created.role == "Client"

    def test_plan_of_other_tenant_is_rejected(
        self, db_session, client_plan, other_company, new_employee, actor
    ):
        outsider = new_employee(other_company, Role.owner)
        payload = ClientCreate(
            name="Carl", email="carl@example.test", password="password123",
            client_plan_id=client_plan.id,
        )
        with pytest.raises(HTTPException) as exc:
            Clients.create(db_session, payload, actor(outsider))
        assert exc.value.status_code == 404

    def test_shared_email_is_logged(self, db_session, owner, actor, caplog):
        payload = ClientCreate(name="Twin", email=owner.email, password="password123")
        with caplog.at_level("WARNING", logger="app.services.tenancy"):
            Clients.create(db_session, payload, actor(owner))
        assert "already exists in users" in caplog.text

    def test_delete_deactivates(self, db_session, owner, client_person, actor):
        Clients.delete(db_session, client_person.id, actor(owner))
        db_session.refresh(client_person)
        assert client_person.status == PersonStatus.inactive

    def test_update(self, db_session, owner, client_person, actor):
        updated = Clients.update(
            db_session, client_person.id, ClientUpdate(name="Cora C."), actor(owner)
        )
        assert updated.name == "Cora C."
