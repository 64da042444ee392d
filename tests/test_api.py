import os
from datetime import date

os.environ.setdefault("LEDGER_STORE", "memory")
os.environ.setdefault("LEDGER_DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from main import app, get_store, get_today  # noqa: E402
from store import MemoryStore  # noqa: E402


@pytest.fixture()
def client():
    store = MemoryStore()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_today] = lambda: date(2024, 3, 20)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def seed(client: TestClient) -> dict[str, int]:
    account = client.post(
        "/api/accounts",
        json={"name": "Checking", "type": "bank", "balance_cents": 10_000},
    )
    assert account.status_code == 201
    salary = client.post("/api/income-categories", json={"name": "Salary"})
    food = client.post("/api/expense-categories", json={"name": "Food"})
    assert salary.status_code == food.status_code == 201
    return {
        "account": account.json()["id"],
        "salary": salary.json()["id"],
        "food": food.json()["id"],
    }


def test_transaction_lifecycle_updates_balance(client) -> None:
    ids = seed(client)

    created = client.post(
        "/api/transactions",
        json={
            "amount_cents": 5_000,
            "description": "Paycheck",
            "date": "2024-03-01",
            "account_id": ids["account"],
            "type": "income",
            "category_id": ids["salary"],
        },
    )
    assert created.status_code == 201
    txn_id = created.json()["id"]
    assert client.get("/api/summary/balance").json() == {"total_balance": 15_000}

    patched = client.patch(f"/api/transactions/{txn_id}", json={"amount_cents": 3_000})
    assert patched.status_code == 200
    assert client.get(f"/api/accounts/{ids['account']}").json()["balance_cents"] == 13_000

    detail = client.get(f"/api/transactions/{txn_id}").json()
    assert detail["category_name"] == "Salary"
    assert detail["account_name"] == "Checking"

    income = client.post("/api/summary/income", json={"period": "this-month"})
    assert income.json() == {"income_sum": 3_000}

    assert client.delete(f"/api/transactions/{txn_id}").status_code == 204
    assert client.get("/api/summary/balance").json() == {"total_balance": 10_000}


def test_error_kinds_map_to_status_codes(client) -> None:
    ids = seed(client)
    client.post(
        "/api/transactions",
        json={
            "amount_cents": 100,
            "description": "Lunch",
            "date": "2024-03-02",
            "account_id": ids["account"],
            "type": "expense",
            "category_id": ids["food"],
        },
    )

    assert client.get("/api/transactions/999").status_code == 404
    assert client.delete(f"/api/accounts/{ids['account']}").status_code == 409
    assert client.delete(f"/api/expense-categories/{ids['food']}").status_code == 409
    assert client.delete(f"/api/income-categories/{ids['salary']}").status_code == 204
    duplicate = client.post("/api/expense-categories", json={"name": "FOOD"})
    assert duplicate.status_code == 409
    assert "already exists" in duplicate.json()["detail"]

    missing_range = client.post("/api/summary/expense", json={"period": "custom"})
    assert missing_range.status_code == 400
    bad_type = client.get(f"/api/transactions/category/{ids['food']}/transfer")
    assert bad_type.status_code == 400
    assert client.get("/api/summary/monthly/1900").status_code == 400
    zero = client.post(
        "/api/transactions",
        json={
            "amount_cents": 0,
            "description": "Nothing",
            "date": "2024-03-02",
            "account_id": ids["account"],
            "type": "expense",
            "category_id": ids["food"],
        },
    )
    assert zero.status_code == 400
    assert zero.json() == {"detail": "Amount must be greater than zero"}


def test_reports(client) -> None:
    ids = seed(client)
    for day, amount in [("2024-03-05", 700), ("2024-03-09", 300)]:
        client.post(
            "/api/transactions",
            json={
                "amount_cents": amount,
                "description": "Groceries",
                "date": day,
                "account_id": ids["account"],
                "type": "expense",
                "category_id": ids["food"],
            },
        )

    breakdown = client.post(
        "/api/summary/expense-by-category",
        json={
            "period": "custom",
            "custom_range": {"start_date": "2024-03-01", "end_date": "2024-03-31"},
        },
    ).json()
    assert breakdown == [
        {"category_id": ids["food"], "category_name": "Food", "sum_cents": 1_000}
    ]

    monthly = client.get("/api/summary/monthly/2024").json()
    assert len(monthly) == 12
    assert monthly[2] == {"month": 3, "income_cents": 0, "expense_cents": 1_000}

    by_period = client.post("/api/transactions/period", json={"period": "this_week"})
    assert [t["amount_cents"] for t in by_period.json()] == []

    in_range = client.get(
        "/api/transactions/range", params={"start": "2024-03-01", "end": "2024-03-06"}
    )
    assert [t["amount_cents"] for t in in_range.json()] == [700]

    by_account = client.get(f"/api/transactions/account/{ids['account']}").json()
    assert [t["date"] for t in by_account] == ["2024-03-09", "2024-03-05"]
