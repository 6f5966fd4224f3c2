import pytest

from app import create_app
from finflow.default_catalog import sample_finance_data
from finflow.io import to_dict
from finflow.storage import LocalStore


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "finance.json")


@pytest.fixture
def client(store, monkeypatch):
    monkeypatch.delenv("FINFLOW_STORAGE", raising=False)
    app = create_app(store=store)
    app.config["TESTING"] = True
    return app.test_client()


def test_get_finance_falls_back_to_sample(client):
    r = client.get("/api/finance")
    assert r.status_code == 200
    assert r.get_json() == to_dict(sample_finance_data())


def test_post_finance_saves(client, store):
    doc = to_dict(sample_finance_data())
    doc["incomeSources"][0]["amount"] = 4000
    r = client.post("/api/finance", json=doc)
    assert r.status_code == 200
    assert r.get_json() == {"success": True, "saved": True}
    assert store.load().income_sources[0].amount == 4000
    assert client.get("/api/finance").get_json()["incomeSources"][0]["amount"] == 4000


def test_post_without_json(client):
    r = client.post("/api/finance", data="hello", content_type="text/plain")
    assert r.status_code == 400
    assert r.get_json() == {"error": "No data received"}


def test_post_invalid_document(client, store):
    r = client.post("/api/finance", json={"incomeSources": 3, "spendingCategories": []})
    assert r.status_code == 400
    assert "error" in r.get_json()
    assert store.load() is None


def test_plan_endpoint(client):
    body = client.get("/api/plan").get_json()
    assert body["totalIncome"] == 5000
    assert [t["tier"] for t in body["tiers"]] == ["75%", "15%", "10%"]
    assert body["tiers"][0]["capacity"] == 3750
    assert body["tiers"][0]["label"] == "Under by $3,750.00"


def test_sankey_endpoint(client):
    body = client.get("/api/sankey").get_json()
    assert len(body["nodes"]) == 20
    assert len(body["links"]) == 19


def test_home_page(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"Personal Finance Visualizer" in r.data
    assert b"Financial Plan" in r.data
