import base64

import pytest
from fastapi.testclient import TestClient

from api import endpoints
from core.agent_registry import AgentRegistry
from core.deal_engine import DealEngine
from core.document_custody import DocumentCustody
from main import app


@pytest.fixture
def client(cipher, dispatcher):
    registry = AgentRegistry()
    engine = DealEngine(cipher=cipher, invite_base_url="https://deals.example.com")
    custody = DocumentCustody(engine=engine, dispatcher=dispatcher)
    endpoints.initialize_services(registry, engine, custody)
    yield TestClient(app)
    endpoints.reset_services()


def _deal_body(participants, **overrides):
    body = {
        "title": "Silver lot",
        "commodity": "silver",
        "exclusivity": "premier",
        "quantity_kg": 500,
        "price_per_kg": 0.9,
        "location": "Antwerp",
        "details": "Vault receipt 88-A",
        "participants": participants,
        "created_by": "user-1",
    }
    body.update(overrides)
    return body


def test_agent_endpoints(client):
    resp = client.post("/agents", json={"name": "Seller"})
    assert resp.status_code == 201
    seller = resp.json()

    resp = client.post("/agents", json={"name": "Broker", "parent_agent_id": seller["id"]})
    assert resp.json()["parent_agent_id"] == seller["id"]

    assert [a["name"] for a in client.get("/agents").json()] == ["Seller", "Broker"]
    assert client.get(f"/agents/{seller['id']}").json() == seller
    assert client.get("/agents/missing").status_code == 404


def test_deal_flow(client):
    seller = client.post("/agents", json={"name": "Seller"}).json()
    buyer = client.post("/agents", json={"name": "Buyer"}).json()

    resp = client.post("/deals", json=_deal_body([seller["id"]]))
    assert resp.status_code == 201
    deal = resp.json()
    assert deal["status"] == "initiated"
    assert deal["details"]["iv_b64"]
    assert "Vault receipt" not in resp.text

    assert client.get(f"/deals/{deal['id']}/details").json()["details"] == "Vault receipt 88-A"

    resp = client.patch(f"/deals/{deal['id']}/status", json={"status": "kyc"})
    assert resp.status_code == 200
    assert [h["status"] for h in resp.json()["history"]] == ["initiated", "kyc"]

    token = deal["invite_token"]
    assert client.get(f"/deals/invite/{token}").json()["id"] == deal["id"]
    resp = client.post("/deals/join", json={"invite_code": token, "agent_id": buyer["id"]})
    assert resp.json()["chain"] == [seller["id"], buyer["id"]]

    assert [d["id"] for d in client.get("/deals").json()] == [deal["id"]]


def test_deal_creation_rejects_unknown_participant(client):
    resp = client.post("/deals", json=_deal_body(["ghost"]))
    assert resp.status_code == 404
    assert client.get("/deals").json() == []


@pytest.mark.parametrize("field,value", [("commodity", "copper"), ("exclusivity", "vip"), ("quantity_kg", -1)])
def test_deal_creation_validates_input(client, field, value):
    resp = client.post("/deals", json=_deal_body([], **{field: value}))
    assert resp.status_code == 422


def test_invalid_status_value(client):
    deal = client.post("/deals", json=_deal_body([])).json()
    assert client.patch(f"/deals/{deal['id']}/status", json={"status": "kYC"}).status_code == 422
    assert client.patch("/deals/missing/status", json={"status": "kyc"}).status_code == 404


def test_document_upload(client):
    deal = client.post("/deals", json=_deal_body([])).json()
    body = {
        "name": "mandate.pdf",
        "type": "application/pdf",
        "category": "mandate",
        "content": base64.b64encode(b"Mandate for John Smith").decode(),
        "uploaded_by": "user-1",
    }
    resp = client.post(f"/deals/{deal['id']}/documents", json=body)
    assert resp.status_code == 201
    document = resp.json()["documents"][0]
    assert document["verification_status"] == "pending"
    assert document["media_type"] == "application/pdf"
    assert "John Smith" not in resp.text

    body["content"] = "***not base64***"
    assert client.post(f"/deals/{deal['id']}/documents", json=body).status_code == 400
    assert client.post("/deals/missing/documents", json={**body, "content": "aGk="}).status_code == 404


def test_join_with_unknown_code_or_agent(client):
    agent = client.post("/agents", json={"name": "A"}).json()
    deal = client.post("/deals", json=_deal_body([])).json()

    resp = client.post("/deals/join", json={"invite_code": "nope", "agent_id": agent["id"]})
    assert resp.status_code == 404
    resp = client.post("/deals/join", json={"invite_code": deal["invite_token"], "agent_id": "ghost"})
    assert resp.status_code == 404
    assert client.get("/deals/invite/nope").status_code == 404
