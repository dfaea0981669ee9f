"""
HTTP tests: routes wired to a Store on the in-memory test database, and the
mapping from ledger errors to status codes.
"""

import pytest
from fastapi.testclient import TestClient

import app.routes_settings as routes_settings
from app.deps import get_store, get_theme_service
from app.errors import StorageFailure
from app.services.theme_service import ThemeService
from main import app


@pytest.fixture
def client(store, kv):
    store.initialize()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_theme_service] = lambda: ThemeService(kv)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/").status_code == 200
    status = client.get("/status").json()
    assert status["legacy_migration_completed"] is True


class TestLegacyStoreRoutes:
    def test_cash_in_out_and_delete(self, client):
        assert client.post("/store/cash-in", json={"amount": 100, "reason": "salary"}).json()["balance"] == 100

        data = client.post("/store/cash-out", json={"amount": 40, "reason": "groceries"}).json()
        assert data["balance"] == 60
        cash_out_id = data["transactions"][0]["id"]

        assert client.delete(f"/store/transactions/{cash_out_id}").json()["balance"] == 100
        assert client.get("/store").json()["balance"] == 100
        assert client.get("/store/last-amounts").json() == {"lastCashIn": 100, "lastCashOut": 0}

    def test_insufficient_balance_is_409(self, client):
        client.post("/store/cash-in", json={"amount": 50})
        resp = client.post("/store/cash-out", json={"amount": 75})
        assert resp.status_code == 409
        assert resp.json()["error"] == "InsufficientBalanceError"
        assert client.get("/store").json()["balance"] == 50

    def test_non_positive_amount_is_422(self, client):
        resp = client.post("/store/cash-in", json={"amount": 0})
        assert resp.status_code == 422
        assert resp.json()["error"] == "ValidationError"

    def test_clear(self, client):
        client.post("/store/cash-in", json={"amount": 5})
        assert client.post("/store/clear").json() == {"removed": 1}


class TestAccountRoutes:
    def test_lifecycle(self, client):
        created = client.post("/accounts", json={"name": " Travel "})
        assert created.status_code == 201
        account_id = created.json()["id"]
        assert created.json()["name"] == "Travel"

        assert client.post("/accounts", json={"name": "Travel"}).status_code == 409

        tx = client.post(
            f"/accounts/{account_id}/transactions",
            json={"type": "cash_in", "amount": 100, "reason": "budget"},
        )
        assert tx.status_code == 201

        refused = client.post(
            f"/accounts/{account_id}/transactions",
            json={"type": "cash_out", "amount": 150},
        )
        assert refused.status_code == 409

        data = client.get(f"/accounts/{account_id}/transactions").json()
        assert data["balance"] == 100
        assert data["last_transaction_amounts"] == {"last_cash_in": 100, "last_cash_out": 0}

        renamed = client.patch(f"/accounts/{account_id}", json={"name": "Holiday"})
        assert renamed.json()["name"] == "Holiday"

        listed = client.get("/accounts").json()
        assert [a["account"]["name"] for a in listed] == ["Holiday", "Main Account"]
        assert listed[0]["balance"] == 100

        deleted = client.delete(f"/accounts/{account_id}").json()
        assert deleted["transactions_removed"] == 1
        assert client.get(f"/accounts/{account_id}").status_code == 404

    def test_unknown_account_is_404(self, client):
        assert client.get("/accounts/nope").status_code == 404
        assert client.patch("/accounts/nope", json={"name": "x"}).status_code == 404
        assert client.delete("/accounts/nope").status_code == 404


class TestTransactionRoutes:
    def test_history_edit_and_stats(self, client):
        client.post("/store/cash-in", json={"amount": 100})
        client.post("/store/cash-out", json={"amount": 20})

        history = client.get("/transactions", params={"filter": "debit"}).json()
        assert history["debit"] == 20
        assert history["credit"] == 0
        [row] = history["transactions"]
        assert row["account_name"] == "Main Account"

        edited = client.patch(
            f"/transactions/{row['id']}",
            json={"type": "cash_out", "amount": 30, "reason": "fixed"},
        ).json()
        assert edited["amount"] == 30
        assert edited["timestamp"] == row["timestamp"]

        stats = client.get("/stats").json()
        assert stats["globalBalance"] == 70
        assert stats["last_transaction_amounts"] == {"last_cash_in": 100, "last_cash_out": 30}

        assert client.delete(f"/transactions/{row['id']}").status_code == 200
        assert client.get(f"/transactions/{row['id']}").status_code == 404
        assert client.delete(f"/transactions/{row['id']}").status_code == 404

    def test_bad_filter_is_rejected(self, client):
        assert client.get("/transactions", params={"filter": "refunds"}).status_code == 422


class TestSettingsRoutes:
    def test_theme(self, client):
        assert client.get("/settings/theme").json() == {"theme": "light"}
        assert client.put("/settings/theme", json={"theme": "dark"}).json() == {"theme": "dark"}
        assert client.post("/settings/theme/toggle").json() == {"theme": "light"}
        assert client.put("/settings/theme", json={"theme": "blue"}).status_code == 422

    def test_force_migration_disabled_by_default(self, client, monkeypatch):
        monkeypatch.setattr(routes_settings, "ALLOW_FORCE_MIGRATION", False)
        assert client.post("/maintenance/force-migration").status_code == 403

    def test_force_migration_when_enabled(self, client, monkeypatch):
        monkeypatch.setattr(routes_settings, "ALLOW_FORCE_MIGRATION", True)
        client.post("/store/cash-in", json={"amount": 5})

        resp = client.post("/maintenance/force-migration")
        assert resp.status_code == 200
        assert client.get("/store").json() == {"balance": 0, "transactions": []}


def test_storage_failure_is_503(client, store, monkeypatch):
    def broken():
        raise StorageFailure("disk unavailable")

    monkeypatch.setattr(store.transactions, "get_all_transactions", broken)
    resp = client.get("/stats")
    assert resp.status_code == 503
    assert resp.json()["error"] == "StorageFailure"
