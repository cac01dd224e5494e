import pytest

from app.schemas.documents import DocumentCreate
from app.services.documents import Documents


@pytest.fixture()
def document(db_session, scanner, tag, actor):
    payload = DocumentCreate(tag_id=tag.id, url="https://files.test/deed.pdf", title="Deed")
    return Documents.create(db_session, payload, actor(scanner))


@pytest.fixture()
def client_document(db_session, client_person, tag, actor):
    payload = DocumentCreate(tag_id=tag.id, url="https://files.test/claim.pdf", title="Claim")
    return Documents.create(db_session, payload, actor(client_person))


class TestSharedDocumentEndpoints:
    def test_share_access_revoke(self, client, auth_headers, document):
        resp = client.post(
            "/shared-documents",
            json={"document_id": str(document.id), "password": "letmein"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        link = resp.json()
        assert link["url"].endswith(link["link"])

        denied = client.post(
            f"/shared-documents/{link['link']}/access", json={"password": "nope"}
        )
        assert denied.status_code == 401

        opened = client.post(
            f"/shared-documents/{link['link']}/access", json={"password": "letmein"}
        )
        assert opened.status_code == 200
        assert opened.json()["title"] == "Deed"

        listed = client.get("/shared-documents", headers=auth_headers).json()
        assert listed["count"] == 1
        assert listed["items"][0]["url"] == link["url"]

        assert (
            client.delete(f"/shared-documents/{link['id']}", headers=auth_headers).status_code
            == 204
        )
        gone = client.post(
            f"/shared-documents/{link['link']}/access", json={"password": "letmein"}
        )
        assert gone.status_code == 404


class TestDisputeEndpoints:
    def test_raise_and_resolve(self, client, client_person, qa, client_document, headers):
        resp = client.post(
            "/disputes",
            json={"document_id": str(client_document.id), "description": "Wrong date"},
            headers=headers(client_person),
        )
        assert resp.status_code == 201
        dispute_id = resp.json()["id"]

        forbidden = client.put(
            f"/disputes/{dispute_id}/resolve", headers=headers(client_person)
        )
        assert forbidden.status_code == 403

        resp = client.put(f"/disputes/{dispute_id}/resolve", headers=headers(qa))
        assert resp.status_code == 200
        assert resp.json()["resolve"] is True

        open_ones = client.get("/disputes?resolved=false", headers=headers(qa)).json()
        assert open_ones["count"] == 0


class TestClientIsolation:
    def test_other_client_cannot_read_or_share(
        self, client, company, client_document, new_client, headers
    ):
        other = headers(new_client(company))
        doc_id = str(client_document.id)

        assert client.get("/documents", headers=other).json()["count"] == 0
        assert client.get(f"/documents/{doc_id}", headers=other).status_code == 404
        assert (
            client.put(
                f"/documents/{doc_id}/add-comment", json={"text": "peek"}, headers=other
            ).status_code
            == 404
        )
        assert client.post(f"/documents/{doc_id}/download", headers=other).status_code == 404
        resp = client.post(
            "/shared-documents",
            json={"document_id": doc_id, "password": "letmein"},
            headers=other,
        )
        assert resp.status_code == 404
