"""Step API tests against in-memory repositories"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from stepgate.api.deps import get_step_service, get_file_reference_service
from stepgate.main import app

TICKET = "TKT-1"
BASE = f"/api/v1/tickets/{TICKET}/steps"


def _auth(user_id: str, role: str):
    token = jwt.encode(
        {"sub": user_id, "role": role, "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "integration-secret-0123456789-abcdefgh",
        algorithm="HS256"
    )
    return {"Authorization": f"Bearer {token}"}


EO = _auth("user-eo", "EO")
DO = _auth("user-do", "DO")


@pytest.fixture
def client(step_service, file_reference_service):
    app.dependency_overrides[get_step_service] = lambda: step_service
    app.dependency_overrides[get_file_reference_service] = lambda: file_reference_service
    # No context manager: the lifespan would try to reach MongoDB
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create(client, title, headers=EO, **body):
    response = client.post(BASE, json={"title": title, **body}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_requires_token(client):
    response = client.get(BASE)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"


def test_create_and_list(client):
    root = _create(client, "Survey")
    child = _create(client, "Measure", parent_step_id=root["step_id"])

    response = client.get(BASE, headers=DO)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [s["level_1"] for s in body["items"]] == [1, 1]
    assert body["items"][1]["step_id"] == child["step_id"]
    assert body["items"][1]["level_2"] == 1
    assert response.headers["X-Correlation-Id"]


def test_dependency_gated_completion(client):
    a = _create(client, "A")
    b = _create(client, "B", is_parallel=False, depends_on_step_ids=[a["step_id"]])
    assert b["is_dependency_locked"] is True

    blocked = client.post(f"{BASE}/{b['step_id']}/complete", json={}, headers=EO)
    assert blocked.status_code == 409
    error = blocked.json()["error"]
    assert error["code"] == "COMPLETION_BLOCKED"
    assert error["details"]["reasons"][0]["code"] == "INCOMPLETE_DEPENDENCIES"

    preview = client.get(f"{BASE}/{b['step_id']}/completion-check", headers=EO).json()
    assert preview["can_complete"] is False

    assert client.post(f"{BASE}/{a['step_id']}/complete", json={}, headers=EO).status_code == 200
    done = client.post(f"{BASE}/{b['step_id']}/complete", json={"remarks": "ok"}, headers=EO)

    assert done.status_code == 200
    assert done.json()["status"] == "COMPLETED"
    assert done.json()["progress"] == 100


def test_patch_to_completed_is_gated(client):
    a = _create(client, "A")
    b = _create(client, "B", is_parallel=False, depends_on_step_ids=[a["step_id"]])

    response = client.patch(f"{BASE}/{b['step_id']}", json={"status": "COMPLETED"}, headers=EO)

    assert response.status_code == 409


def test_dependencies_require_top_admin(client):
    a = _create(client, "A")
    response = client.post(BASE, json={"title": "B", "depends_on_step_ids": [a["step_id"]]}, headers=DO)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"


def test_dependency_views(client):
    a = _create(client, "A")
    b = _create(client, "B", is_parallel=False, depends_on_step_ids=[a["step_id"]])

    deps = client.get(f"{BASE}/{b['step_id']}/dependencies", headers=EO).json()
    assert [d["depends_on_step_id"] for d in deps["dependencies"]] == [a["step_id"]]
    assert deps["dependency_status"] == "0/1 dependencies completed"

    dependents = client.get(f"{BASE}/{a['step_id']}/dependents", headers=EO).json()
    assert dependents["dependent_step_ids"] == [b["step_id"]]

    targets = client.get(f"{BASE}/dependency-targets", params={"step_id": b["step_id"]}, headers=EO).json()
    assert [s["step_id"] for s in targets["items"]] == [a["step_id"]]


def test_bulk_create(client):
    root = _create(client, "Root")

    response = client.post(
        f"{BASE}/bulk",
        json={"parent_step_id": root["step_id"], "steps": [{"title": "X"}, {"title": ""}, {"title": "Z"}]},
        headers=EO
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success_count"] == 2
    assert body["errors"][0]["index"] == 1


def test_bulk_with_unknown_parent(client):
    response = client.post(f"{BASE}/bulk", json={"parent_step_id": "nope", "steps": [{"title": "X"}]}, headers=EO)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PARENT_NOT_FOUND"


def test_unknown_step(client):
    response = client.get(f"{BASE}/STEP-missing", headers=EO)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "STEP_NOT_FOUND"


def test_unknown_fields_rejected(client):
    response = client.post(BASE, json={"title": "A", "level_1": 7}, headers=EO)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_file_reference_upload_flow(client, document_repo):
    document_repo.add_template("TPL-1", ["Invoice"], [True])
    step = _create(client, "A", file_reference_template_id="TPL-1")

    listing = client.get(f"{BASE}/{step['step_id']}/file-references", headers=EO).json()
    assert listing["incomplete_mandatory"] == ["Invoice"]
    reference_id = listing["items"][0]["file_reference_id"]

    blocked = client.post(f"{BASE}/{step['step_id']}/complete", json={}, headers=EO)
    assert blocked.json()["error"]["details"]["reasons"][0]["code"] == "MISSING_FILE_REFERENCES"

    attach_url = f"/api/v1/file-references/{reference_id}/document"
    assert client.post(attach_url, json={"document_id": "DOC-1"}, headers=EO).status_code == 200
    again = client.post(attach_url, json={"document_id": "DOC-2"}, headers=EO)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "DOCUMENT_ALREADY_ATTACHED"

    assert client.post(f"{BASE}/{step['step_id']}/complete", json={}, headers=EO).status_code == 200


def test_parallel_step_with_dependencies_rejected(client):
    a = _create(client, "A")

    response = client.post(BASE, json={"title": "B", "depends_on_step_ids": [a["step_id"]]}, headers=EO)

    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "depends_on_step_ids"
    assert client.get(BASE, headers=EO).json()["total"] == 1
