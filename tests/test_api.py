import hashlib

import pytest
from fastapi.testclient import TestClient

from govdoc.api.main import create_app
from govdoc.core.entities.document import DocType
from govdoc.core.use_cases.decide_disposition import decide

from tests.fakes import make_report

CITIZEN = {"x-user-id": "citizen-1", "x-user-role": "CITIZEN"}
MAKER = {"x-user-id": "maker-1", "x-user-role": "MAKER"}
JPEG = ("id.jpg", b"\xff\xd8\xff\xe0scan", "image/jpeg")


@pytest.fixture
def client(container):
    return TestClient(create_app(container))


@pytest.fixture
def review_doc(repository, make_document):
    doc = make_document()
    report = make_report(doc.id, score=76)
    repository.save_report(report, decide(report))
    return doc


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"]["reachable"] is True
        assert data["cache"]["size"] == 0
        assert data["analyzer"]["configured"] is True


class TestAuditQueue:

    def test_requires_identity(self, client):
        response = client.get("/api/v1/forensic/audit-queue")
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_citizen_is_forbidden(self, client):
        response = client.get("/api/v1/forensic/audit-queue", headers=CITIZEN)
        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_lists_review_documents(self, client, review_doc):
        response = client.get("/api/v1/forensic/audit-queue?skip=0&take=10", headers=MAKER)
        assert response.status_code == 200
        data = response.json()
        assert data["meta"] == {"total": 1, "count": 1, "hasMore": False}
        item = data["queue"][0]
        assert item["documentId"] == review_doc.id
        assert item["uploader"]["name"] == "Amina Otieno"
        assert item["forensic"]["overallScore"] == 76
        assert item["forensic"]["breakdown"]["integrityScore"] == 76

    def test_take_out_of_range(self, client):
        response = client.get("/api/v1/forensic/audit-queue?take=500", headers=MAKER)
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_non_integer_skip(self, client):
        response = client.get("/api/v1/forensic/audit-queue?skip=abc", headers=MAKER)
        assert response.status_code == 400


class TestAuditBatch:

    def test_batch_partial_failure_is_200(self, client, review_doc):
        response = client.post(
            "/api/v1/forensic/audit-batch",
            headers=MAKER,
            json={
                "actions": [
                    {"documentId": review_doc.id, "action": "REJECT", "comments": "blurry"},
                    {"documentId": "unknown-doc", "action": "APPROVE"},
                ]
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["summary"] == {"total": 2, "processed": 2, "succeeded": 1, "failed": 1}
        assert data["results"][0]["status"] == "REJECTED"
        assert data["results"][1]["errorCode"] == "not_found"

    def test_malformed_batch_is_400(self, client, review_doc, repository):
        response = client.post(
            "/api/v1/forensic/audit-batch",
            headers=MAKER,
            json={"actions": [{"documentId": review_doc.id, "action": "APPROVE"}, {"action": "REJECT"}]},
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["loc"] == ["actions", 1, "documentId"]
        assert repository.get(review_doc.id).status.value == "PENDING"

    def test_missing_actions_is_400(self, client):
        response = client.post("/api/v1/forensic/audit-batch", headers=MAKER, json={})
        assert response.status_code == 400

    def test_non_maker_is_403(self, client, review_doc):
        response = client.post(
            "/api/v1/forensic/audit-batch",
            headers=CITIZEN,
            json={"actions": [{"documentId": review_doc.id, "action": "APPROVE"}]},
        )
        assert response.status_code == 403


class TestUploadFlow:

    def test_create_and_analyse(self, client, citizen, issuer):
        created = client.post(
            "/api/v1/documents", headers=CITIZEN, data={"type": "NATIONAL_ID", "title": "My ID"}
        )
        assert created.status_code == 201
        document_id = created.json()["id"]
        assert created.json()["status"] == "PENDING"
        assert created.json()["blockchainType"] == "SAS_ATTESTATION"

        response = client.post(
            f"/api/v1/documents/{document_id}/forensic", headers=CITIZEN, files={"file": JPEG}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["decision"] == "APPROVED"
        assert data["blockchainStatus"] == "ISSUED"
        assert data["document"]["status"] == "VERIFIED"
        assert len(issuer.requests) == 1

        status = client.get(f"/api/v1/forensic/status/{document_id}", headers=CITIZEN).json()
        assert status["decision"] == "APPROVED"
        assert status["overallScore"] == 90
        assert status["blockchainStatus"] == "ISSUED"
        assert set(status) >= {"userMessage", "breakdown", "tamperingDetected"}

        log = client.get(f"/api/v1/documents/{document_id}/audit-log", headers=CITIZEN).json()
        assert [e["action"] for e in log] == ["AUTO_VERIFIED"]

    def test_upload_records_content_hash(self, client, citizen, issuer):
        created = client.post("/api/v1/documents", headers=CITIZEN, data={"type": "NATIONAL_ID"})
        document_id = created.json()["id"]
        assert created.json()["fileHash"] is None

        response = client.post(
            f"/api/v1/documents/{document_id}/forensic", headers=CITIZEN, files={"file": JPEG}
        )

        expected = hashlib.sha256(JPEG[1]).hexdigest()
        assert response.json()["document"]["fileHash"] == expected
        assert issuer.requests[0].document_hash == expected

    def test_second_upload_is_409(self, client, make_document):
        doc = make_document()
        first = client.post(f"/api/v1/documents/{doc.id}/forensic", headers=CITIZEN, files={"file": JPEG})
        assert first.status_code == 200
        again = client.post(f"/api/v1/documents/{doc.id}/forensic", headers=CITIZEN, files={"file": JPEG})
        assert again.status_code == 409
        assert again.json()["error"] == "invalid_transition"

    def test_unknown_document_type(self, client):
        response = client.post("/api/v1/documents", headers=CITIZEN, data={"type": "LIBRARY_CARD"})
        assert response.status_code == 400

    def test_non_image_upload(self, client, make_document):
        doc = make_document()
        response = client.post(
            f"/api/v1/documents/{doc.id}/forensic",
            headers=CITIZEN,
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400

    def test_status_of_someone_elses_document(self, client, make_document, other_citizen):
        doc = make_document()
        response = client.get(
            f"/api/v1/forensic/status/{doc.id}", headers={"x-user-id": other_citizen.id}
        )
        assert response.status_code == 403

    def test_status_before_analysis(self, client, make_document):
        doc = make_document()
        data = client.get(f"/api/v1/forensic/status/{doc.id}", headers=CITIZEN).json()
        assert data["status"] == "PENDING"

    def test_status_of_unknown_document(self, client):
        response = client.get("/api/v1/forensic/status/nope", headers=MAKER)
        assert response.status_code == 404


class TestBiometricDuplicate:

    def test_duplicate_returns_409_with_contact(self, client, container, citizen, other_citizen):
        container.biometric_gate.store_biometric_data(citizen.id, {}, "f" * 64)

        response = client.post(
            "/api/v1/verify/biometric-duplicate",
            headers={"x-user-id": other_citizen.id},
            json={"biometricHash": "f" * 64, "userId": other_citizen.id},
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "duplicate_identity"
        assert data["details"][0]["existingAccountPhone"] == citizen.phone_number

    def test_unique_hash_passes(self, client, citizen):
        response = client.post(
            "/api/v1/verify/biometric-duplicate",
            headers=CITIZEN,
            json={"biometricHash": "e" * 64, "userId": citizen.id},
        )
        assert response.status_code == 200
        assert response.json()["isDuplicate"] is False

    def test_cannot_attach_someone_elses_document(self, client, container, repository, make_document, other_citizen):
        doc = make_document(DocType.PASSPORT)
        report = make_report(doc.id, score=90, face=True)
        repository.save_report(report, decide(report))

        response = client.post(
            "/api/v1/verify/biometric-duplicate",
            headers={"x-user-id": other_citizen.id},
            json={"biometricHash": "d" * 64, "userId": other_citizen.id, "documentId": doc.id},
        )

        assert response.status_code == 403
        assert container.biometric_gate.get_biometric_data(other_citizen.id) is None

    def test_staff_cannot_cross_document_and_user(self, client, container, repository, make_document, other_citizen):
        doc = make_document(DocType.PASSPORT)
        response = client.post(
            "/api/v1/verify/biometric-duplicate",
            headers=MAKER,
            json={"biometricHash": "c" * 64, "userId": other_citizen.id, "documentId": doc.id},
        )
        assert response.status_code == 403
        assert container.biometric_gate.get_biometric_data(other_citizen.id) is None

    def test_own_document_stores_identity(self, client, container, repository, make_document, citizen):
        doc = make_document(DocType.PASSPORT)
        report = make_report(doc.id, score=90, face=True)
        repository.save_report(report, decide(report))

        response = client.post(
            "/api/v1/verify/biometric-duplicate",
            headers=CITIZEN,
            json={"biometricHash": "b" * 64, "userId": citizen.id, "documentId": doc.id},
        )

        assert response.status_code == 200
        identity = container.biometric_gate.get_biometric_data(citizen.id)
        assert identity.biometric_data["documentId"] == doc.id


class TestAdmin:

    def test_reconcile_and_expire_require_staff(self, client):
        assert client.post("/api/v1/admin/expire-sweep", headers=CITIZEN).status_code == 403
        assert client.post("/api/v1/admin/issuances/reconcile", headers=CITIZEN).status_code == 403

    def test_reconcile_issues_pending(self, client, container, issuer, make_document):
        doc = make_document()
        issuer.fail = True
        client.post(
            "/api/v1/forensic/audit-batch",
            headers=MAKER,
            json={"actions": [{"documentId": doc.id, "action": "APPROVE"}]},
        )
        pending = client.get("/api/v1/admin/issuances/pending", headers=MAKER).json()
        assert [p["documentId"] for p in pending] == [doc.id]

        issuer.fail = False
        result = client.post("/api/v1/admin/issuances/reconcile", headers=MAKER).json()
        assert result["issued"] == [doc.id]
        assert client.get("/api/v1/admin/issuances/pending", headers=MAKER).json() == []

    def test_cache_admin(self, client):
        stats = client.get("/api/v1/forensic/cache/stats", headers=MAKER).json()
        assert stats["enabled"] is True
        assert client.post("/api/v1/forensic/cache/purge", headers=MAKER).json() == {"removed": 0}
        assert client.post("/api/v1/forensic/cache/stats/reset", headers=MAKER).json() == {"reset": True}
