import pytest

from claims_portal.core.dependencies import get_claim_service
from claims_portal.core.exceptions import ClaimsServiceError
from claims_portal.main import app

from conftest import JSON, login


def bearer(token):
    return {"Authorization": f"Bearer {token}", **JSON}


CONTRACTOR_TASK = {
    "id": "CTR-1",
    "name": "Acme Roofing",
    "custom_fields": [
        {
            "id": "f-claims",
            "name": "Claim",
            "type": "tasks",
            "value": [
                {"id": "CLM-1", "name": "Smith residence", "status": "open", "color": "#00ff00"},
                {"id": "CLM-2", "name": "Hidden claim", "status": "open", "access": False},
                {"id": "CLM-3", "name": "Jones residence", "status": "closed"},
                {"id": "CLM-4", "name": "Brown residence", "status": "open"},
            ],
        }
    ],
}

CLAIM_TASK = {
    "id": "CLM-1",
    "name": "Smith residence",
    "status": {"status": "open", "color": "#00ff00"},
    "description": "Hail damage",
    "custom_fields": [
        {"id": "f1", "name": "Policy Holder", "type": "users", "value": [{"name": "Jane Doe"}]},
        {"id": "f2", "name": "RCV", "type": "currency", "value": "$1,234.56"},
        {"id": "f3", "name": "Record New Settlement Amount", "type": "currency", "value": 10},
    ],
    "attachments": [{"id": "a1", "title": "photo.jpg"}],
}


@pytest.fixture
def access_token(client, make_user):
    make_user()
    token = login(client).json()["tokens"]["accessToken"]
    client.cookies.clear()
    return token


def test_dashboard_lists_visible_claims(client, claims_client, access_token):
    claims_client.tasks["CTR-1"] = CONTRACTOR_TASK

    resp = client.get("/dashboard", headers=bearer(access_token))

    assert resp.status_code == 200
    body = resp.json()
    assert [c["id"] for c in body["claims"]] == ["CLM-1", "CLM-3", "CLM-4"]
    assert body["claims"][0]["claimId"] == "CLM-1"
    assert body["claims"][0]["status"] == {"status": "open", "color": "#00ff00"}
    assert body["claims"][1]["status"]["color"] == "#999999"
    assert body["statuses"] == ["open", "closed"]


def test_dashboard_for_contractor_without_claims(client, claims_client, access_token):
    claims_client.tasks["CTR-1"] = {"id": "CTR-1", "custom_fields": []}

    resp = client.get("/dashboard", headers=bearer(access_token))

    assert resp.json() == {"claims": [], "statuses": []}


def test_claim_detail_is_normalized(client, claims_client, access_token):
    claims_client.tasks["CLM-1"] = CLAIM_TASK
    claims_client.comments["CLM-1"] = [{"id": str(i), "comment_text": f"c{i}"} for i in range(8)]

    resp = client.get("/claims/CLM-1", headers=bearer(access_token))

    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Smith residence"
    assert body["description"] == "Hail damage"
    assert body["custom_fields"] == [
        {"name": "Policy Holder", "value": "Jane Doe", "type": "users"},
        {"name": "RCV", "value": 1234.56, "type": "currency"},
    ]
    assert len(body["attachments"]) == 1
    assert [c["id"] for c in body["comments"]] == ["0", "1", "2", "3", "4"]


def test_unknown_claim_is_404(client, access_token):
    resp = client.get("/claims/nope", headers=bearer(access_token))

    assert resp.status_code == 404
    assert resp.json() == {"error": "Claim not found"}


def test_upstream_failure_is_502(client, claims_client, access_token):
    def broken(task_id):
        raise ClaimsServiceError("ClickUp request failed: timeout")

    claims_client.get_task = broken

    resp = client.get("/claims/CLM-1", headers=bearer(access_token))

    assert resp.status_code == 502


def test_claims_require_auth(client):
    assert client.get("/claims/CLM-1", headers=JSON).status_code == 401


def test_claims_without_clickup_configuration_is_503(client, access_token):
    app.dependency_overrides.pop(get_claim_service)

    resp = client.get("/dashboard", headers=bearer(access_token))

    assert resp.status_code == 503
    assert resp.json() == {"error": "Claims service is not configured"}
