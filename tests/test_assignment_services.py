from app.models.tenancy import Role
from app.services.assignment import assignees_for, get_next_role, list_assignees


class TestNextRole:
    def test_creators_hand_to_indexer(self):
        for role in ("Owner", "Manager", "Scanner", "Client"):
            assert get_next_role(role) is Role.indexer

    def test_indexer_hands_to_qa(self):
        assert get_next_role(Role.indexer) is Role.qa

    def test_qa_has_no_next_role(self):
        assert get_next_role("QA") is None

    def test_case_insensitive(self):
        assert get_next_role("sCaNnEr") is Role.indexer
        assert get_next_role("indexer") is Role.qa

    def test_unknown_role(self):
        assert get_next_role("Janitor") is None
        assert get_next_role(None) is None


class TestListAssignees:
    def test_matches_role_within_tenant(
        self, db_session, company, other_company, indexer, qa, new_employee
    ):
        new_employee(other_company, Role.indexer)
        assignees = list_assignees(db_session, company.id, Role.indexer)
        assert [a.id for a in assignees] == [indexer.id]

    def test_role_match_ignores_case(self, db_session, company, new_employee):
        lower = new_employee(company, Role.qa)
        lower.role = "qa"
        db_session.commit()
        assert [a.id for a in list_assignees(db_session, company.id, "QA")] == [lower.id]

    def test_no_next_role_gives_empty_pool(self, db_session, company, qa):
        next_role, assignees = assignees_for(db_session, company.id, Role.qa)
        assert next_role is None
        assert assignees == []

    def test_scanner_pool(self, db_session, company, scanner, indexer):
        next_role, assignees = assignees_for(db_session, company.id, "Scanner")
        assert next_role is Role.indexer
        assert [a.name for a in assignees] == ["Ivy Indexer"]
