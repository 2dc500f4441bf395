"""Integration tests for API endpoints"""

import uuid
import pytest
from fastapi.testclient import TestClient


LOAN = {
    "name": "Car loan",
    "type": "LOAN",
    "start_date": "2025-03-01",
    "due_day": 10,
    "principal_cents": 100000,
    "installment_count": 3,
}


@pytest.fixture
def loan(client: TestClient) -> dict:
    response = client.post("/v1/accounts", json=LOAN)
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "finance_summary_cache" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_missing_user_identity(client: TestClient):
    anonymous = TestClient(client.app)
    response = anonymous.get("/v1/transactions")
    assert response.status_code == 401


def test_create_account_with_schedule(client: TestClient, loan: dict):
    """Test POST /v1/accounts splits the principal and refreshes touched months"""
    assert [i["amount_cents"] for i in loan["installments"]] == [33333, 33333, 33334]
    assert [i["due_date"] for i in loan["installments"]] == ["2025-03-10", "2025-04-10", "2025-05-10"]
    assert loan["is_paid"] is False

    data = client.get("/v1/summaries").json()
    assert data["total"] == 3
    assert [d["bills_to_pay_cents"] for d in data["docs"]] == [33333, 33333, 33334]


@pytest.mark.parametrize(
    "override",
    [
        {"due_day": 40},
        {"principal_cents": 1000.5},
        {"principal_cents": "1000"},
        {"type": "MORTGAGE"},
        {"principal_cents": None},  # count without an amount
    ],
)
def test_create_account_validation(client: TestClient, override: dict):
    response = client.post("/v1/accounts", json={**LOAN, **override})
    assert response.status_code == 422


def test_create_account_principal_below_count(client: TestClient):
    response = client.post("/v1/accounts", json={**LOAN, "principal_cents": 2})
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_get_account_not_found(client: TestClient):
    response = client.get(f"/v1/accounts/{uuid.uuid4()}")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "ACCOUNT_NOT_FOUND"


def test_accounts_are_scoped_to_user(client: TestClient, loan: dict):
    response = client.get(f"/v1/accounts/{loan['id']}", headers={"X-User-ID": "user_456"})
    assert response.status_code == 404


def test_pay_installment_twice(client: TestClient, loan: dict):
    """Test POST /v1/installments/{id}/pay is exactly-once"""
    installment_id = loan["installments"][0]["id"]

    response = client.post(f"/v1/installments/{installment_id}/pay")
    assert response.status_code == 200
    data = response.json()
    assert data["installment"]["is_paid"] is True
    assert data["transaction"]["installment_id"] == installment_id
    assert data["transaction"]["category"] == "INSTALLMENT_PAYMENT"
    assert data["transaction"]["amount_cents"] == 33333

    response = client.post(f"/v1/installments/{installment_id}/pay")
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "INSTALLMENT_ALREADY_PAID"

    march = client.get("/v1/summaries/2025/3", params={"cached_only": True}).json()
    assert march["bills_to_pay_cents"] == 0
    assert march["bills_count"] == 0


def test_unpay_then_pay_is_blocked(client: TestClient, loan: dict):
    installment_id = loan["installments"][0]["id"]
    client.post(f"/v1/installments/{installment_id}/pay")

    response = client.post(f"/v1/installments/{installment_id}/unpay")
    assert response.status_code == 200
    assert response.json()["is_paid"] is False

    response = client.post(f"/v1/installments/{installment_id}/pay")
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "INSTALLMENT_ALREADY_SETTLED"


def test_pay_unknown_installment(client: TestClient):
    response = client.post(f"/v1/installments/{uuid.uuid4()}/pay")
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "INSTALLMENT_NOT_FOUND"


def test_overdue_installments(client: TestClient, loan: dict):
    response = client.get("/v1/installments/overdue")
    assert response.status_code == 200
    assert [i["number"] for i in response.json()] == [1, 2, 3]


def test_settle_account(client: TestClient, loan: dict):
    """Test POST /v1/accounts/{id}/settle"""
    response = client.post(f"/v1/accounts/{loan['id']}/settle", json={"payment_amount_cents": 50000})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "INSUFFICIENT_PAYMENT_AMOUNT"

    response = client.post(f"/v1/accounts/{loan['id']}/settle", json={"payment_amount_cents": 100000})
    assert response.status_code == 200
    data = response.json()
    assert data["is_paid"] is True
    assert all(i["is_paid"] for i in data["installments"])

    response = client.post(f"/v1/accounts/{loan['id']}/settle", json={"payment_amount_cents": 100000})
    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "ACCOUNT_ALREADY_PAID"

    unpaid = client.get(f"/v1/accounts/{loan['id']}/installments", params={"unpaid": True}).json()
    assert unpaid == []


def test_transactions_crud(client: TestClient):
    """Test POST/GET/DELETE /v1/transactions keep the month's summary current"""
    response = client.post(
        "/v1/transactions",
        json={
            "type": "INCOME",
            "amount_cents": 300000,
            "description": "Salary",
            "date": "2025-03-05",
            "category": "SALARY",
        },
    )
    assert response.status_code == 201
    transaction_id = response.json()["id"]

    march = client.get("/v1/summaries/2025/3", params={"cached_only": True}).json()
    assert march["total_income_cents"] == 300000
    assert march["status"] == "EXCELLENT"

    page = client.get("/v1/transactions", params={"limit": 10}).json()
    assert page["total"] == 1
    assert page["has_next_page"] is False
    assert page["docs"][0]["description"] == "Salary"

    response = client.delete(f"/v1/transactions/{transaction_id}")
    assert response.status_code == 204

    march = client.get("/v1/summaries/2025/3", params={"cached_only": True}).json()
    assert march["total_income_cents"] == 0


def test_transaction_rejects_float_amount(client: TestClient):
    response = client.post(
        "/v1/transactions",
        json={"type": "EXPENSE", "amount_cents": 10.5, "description": "Coffee", "date": "2025-03-05"},
    )
    assert response.status_code == 422


def test_monthly_summary_computed_on_first_access(client: TestClient):
    response = client.get("/v1/summaries/2025/7", params={"cached_only": True})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "MONTHLY_SUMMARY_NOT_FOUND"

    response = client.get("/v1/summaries/2025/7")
    assert response.status_code == 200
    assert response.json()["status"] == "CRITICAL"

    response = client.get("/v1/summaries/2025/7", params={"cached_only": True})
    assert response.status_code == 200


@pytest.mark.parametrize("path", ["/v1/summaries/2025/13", "/v1/summaries/2019/6", "/v1/summaries/2025/0"])
def test_monthly_summary_invalid_period(client: TestClient, path: str):
    response = client.get(path)
    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_recalculate_summaries(client: TestClient, loan: dict):
    response = client.post("/v1/summaries/recalculate")
    assert response.status_code == 200
    assert response.json() == {"total": 3, "recalculated": 3}


def test_summaries_comparison_trend(client: TestClient, loan: dict):
    client.post(
        "/v1/transactions",
        json={"type": "INCOME", "amount_cents": 90000, "description": "Salary", "date": "2025-03-05"},
    )

    data = client.get("/v1/summaries", params={"limit": 2}).json()

    assert data["total"] == 3
    assert data["has_next_page"] is True
    assert [(d["reference_month"], d["reference_year"]) for d in data["docs"]] == [(3, 2025), (4, 2025)]
    assert data["trend"]["average_income_cents"] == 45000


def test_delete_account(client: TestClient, loan: dict):
    installment_id = loan["installments"][0]["id"]
    paid = client.post(f"/v1/installments/{installment_id}/pay").json()

    response = client.delete(f"/v1/accounts/{loan['id']}")
    assert response.status_code == 204
    assert client.get(f"/v1/accounts/{loan['id']}").status_code == 404

    # The payment survives without its account reference
    docs = client.get("/v1/transactions").json()["docs"]
    assert [d["id"] for d in docs] == [paid["transaction"]["id"]]
    assert docs[0]["account_id"] is None
    assert docs[0]["installment_id"] is None

    april = client.get("/v1/summaries/2025/4", params={"cached_only": True}).json()
    assert april["bills_to_pay_cents"] == 0


def test_update_reference_refreshes_old_and_new_periods(client: TestClient, loan: dict):
    response = client.patch(
        f"/v1/accounts/{loan['id']}/reference",
        json={"reference_month": 2, "reference_year": 2025},
    )
    assert response.status_code == 200
    data = response.json()
    assert (data["reference_month"], data["reference_year"]) == (2, 2025)
    assert [(i["reference_month"], i["due_date"]) for i in data["installments"]] == [
        (2, "2025-03-10"),
        (3, "2025-04-10"),
        (4, "2025-05-10"),
    ]

    february = client.get("/v1/summaries/2025/2", params={"cached_only": True}).json()
    may = client.get("/v1/summaries/2025/5", params={"cached_only": True}).json()
    assert february["bills_to_pay_cents"] == 33333
    assert may["bills_to_pay_cents"] == 0


@pytest.mark.parametrize("body", [{"reference_month": 13, "reference_year": 2025}, {"reference_month": 2}])
def test_update_reference_validation(client: TestClient, loan: dict, body: dict):
    response = client.patch(f"/v1/accounts/{loan['id']}/reference", json=body)
    assert response.status_code == 422


def test_update_reference_unknown_account(client: TestClient):
    response = client.patch(
        f"/v1/accounts/{uuid.uuid4()}/reference",
        json={"reference_month": 2, "reference_year": 2025},
    )
    assert response.status_code == 404


def test_list_accounts_by_period(client: TestClient, loan: dict):
    client.post(
        "/v1/accounts",
        json={"name": "Gym", "type": "FIXED", "start_date": "2025-04-01", "due_day": 5, "installment_amount_cents": 9900},
    )

    data = client.get("/v1/accounts", params={"month": 3, "year": 2025}).json()
    assert data["total"] == 1
    assert data["docs"][0]["id"] == loan["id"]

    data = client.get("/v1/accounts", params={"month": 4, "year": 2025, "type": "LOAN"}).json()
    assert data["total"] == 0

    response = client.get("/v1/accounts", params={"month": 13, "year": 2025})
    assert response.status_code == 422


def test_period_statistics_endpoint(client: TestClient, loan: dict):
    response = client.get("/v1/accounts/statistics", params={"month": 3, "year": 2025})
    assert response.status_code == 200
    data = response.json()
    assert (data["reference_month"], data["reference_year"]) == (3, 2025)
    assert data["total_accounts"] == 1
    assert data["unpaid_amount_cents"] == 100000
    assert data["by_type"]["LOAN"] == {"total": 1, "paid": 0, "unpaid": 1, "amount_cents": 100000}


def test_loan_terms_endpoint(client: TestClient, loan: dict):
    response = client.get(f"/v1/accounts/{loan['id']}/loan-terms")
    assert response.status_code == 422

    account = client.post(
        "/v1/accounts",
        json={**LOAN, "name": "Personal loan", "installment_amount_cents": 8885, "installment_count": 12},
    ).json()
    data = client.get(f"/v1/accounts/{account['id']}/loan-terms").json()
    assert data == {
        "principal_cents": 100000,
        "total_with_interest_cents": 106620,
        "interest_cents": 6620,
        "monthly_interest_rate_percent": 1.0,
    }


def test_balance_endpoint(client: TestClient):
    for type_, amount, day in [("INCOME", 300000, "2025-03-05"), ("EXPENSE", 45000, "2025-04-02")]:
        client.post(
            "/v1/transactions",
            json={"type": type_, "amount_cents": amount, "description": "Entry", "date": day},
        )

    data = client.get("/v1/transactions/balance").json()

    assert data == {"total_income_cents": 300000, "total_expenses_cents": 45000, "total_balance_cents": 255000}
