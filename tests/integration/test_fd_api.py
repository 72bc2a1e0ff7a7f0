"""Integration tests for API endpoints"""

import copy
import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from fd_catalog.services.catalog import CatalogWriteService

pytestmark = pytest.mark.integration


@pytest.fixture
def created_issuer(client: TestClient, admin_headers: dict, issuer_payload: dict) -> dict:
    """Bajaj Finance created through the API"""
    response = client.post("/v1/fd/issuers", json=issuer_payload, headers=admin_headers)
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
    assert "fd_quote_total" in response.text
    assert "fd_catalog_write_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_create_issuer(created_issuer: dict):
    """Test POST /v1/fd/issuers derives the id and returns the full tree"""
    assert created_issuer["issuer_id"] == "bajaj_finance"
    assert created_issuer["revision"] == 1
    assert [s["scheme_id"] for s in created_issuer["schemes"]] == ["BAJ-CUM", "BAJ-NC"]
    slab = created_issuer["schemes"][0]["rate_slabs"][0]
    assert Decimal(slab["base_interest_rate_pa"]) == Decimal("7.50")


def test_create_issuer_requires_admin(client: TestClient, issuer_payload: dict):
    response = client.post("/v1/fd/issuers", json=issuer_payload)
    assert response.status_code == 403

    response = client.post("/v1/fd/issuers", json=issuer_payload, headers={"X-User-Role": "viewer"})
    assert response.status_code == 403


def test_create_issuer_validation_errors(client: TestClient, admin_headers: dict, issuer_payload: dict):
    """Test every violation comes back tagged with its location"""
    payload = copy.deepcopy(issuer_payload)
    payload["schemes"][0]["payout_frequencies"] = ["Monthly", "On Maturity"]
    payload["schemes"][1]["rate_slabs"][0]["tenure_max_months"] = 72

    response = client.post("/v1/fd/issuers", json=payload, headers=admin_headers)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error"] == "Validation failed"
    rules = {(d["rule"], d["scheme_id"]) for d in detail["details"]}
    assert rules == {
        ("cumulative_on_maturity_only", "BAJ-CUM"),
        ("slab_within_scheme_tenure", "BAJ-NC"),
    }
    assert client.get("/v1/fd/issuers/bajaj_finance").status_code == 404


def test_create_duplicate_issuer(client: TestClient, admin_headers: dict, issuer_payload: dict):
    payload = dict(issuer_payload, issuer_id="bajaj")
    assert client.post("/v1/fd/issuers", json=payload, headers=admin_headers).status_code == 201

    response = client.post("/v1/fd/issuers", json=payload, headers=admin_headers)
    assert response.status_code == 409


def test_list_and_get_issuers(client: TestClient, created_issuer: dict):
    response = client.get("/v1/fd/issuers")
    assert response.status_code == 200
    issuers = response.json()
    assert len(issuers) == 1
    assert issuers[0]["issuer_id"] == "bajaj_finance"
    assert issuers[0]["scheme_count"] == 2
    assert issuers[0]["active_scheme_count"] == 2

    response = client.get("/v1/fd/issuers/bajaj_finance")
    assert response.status_code == 200
    assert response.json() == created_issuer


def test_get_unknown_issuer(client: TestClient):
    response = client.get("/v1/fd/issuers/unknown")
    assert response.status_code == 404


def test_update_issuer_with_revision(client: TestClient, admin_headers: dict, created_issuer: dict):
    """Test PUT requires the last-read revision; a stale one yields 409"""
    response = client.put(
        "/v1/fd/issuers/bajaj_finance",
        json={"revision": 1, "credit_rating": "AA+"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["revision"] == 2
    assert response.json()["credit_rating"] == "AA+"

    response = client.put(
        "/v1/fd/issuers/bajaj_finance",
        json={"revision": 1, "credit_rating": "AAA"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert client.get("/v1/fd/issuers/bajaj_finance").json()["credit_rating"] == "AA+"


def test_update_issuer_breaking_rule(client: TestClient, admin_headers: dict, created_issuer: dict):
    response = client.put(
        "/v1/fd/issuers/bajaj_finance",
        json={"revision": 1, "premature_withdrawal_policy": "  "},
        headers=admin_headers,
    )

    assert response.status_code == 422
    assert response.json()["detail"]["details"][0]["rule"] == "withdrawal_policy_required"


def test_scheme_and_slab_reads(client: TestClient, created_issuer: dict):
    response = client.get("/v1/fd/issuers/bajaj_finance/schemes")
    assert [s["scheme_id"] for s in response.json()] == ["BAJ-CUM", "BAJ-NC"]

    response = client.get("/v1/fd/issuers/bajaj_finance/schemes/BAJ-NC")
    assert response.status_code == 200
    assert response.json()["payout_frequencies"] == ["Monthly", "Quarterly"]

    response = client.get("/v1/fd/issuers/bajaj_finance/schemes/BAJ-CUM/slabs")
    assert [s["slab_id"] for s in response.json()] == ["BAJ-CUM-12-24", "BAJ-CUM-25-60"]

    assert client.get("/v1/fd/issuers/bajaj_finance/schemes/NOPE").status_code == 404


def test_add_slab(client: TestClient, admin_headers: dict, created_issuer: dict):
    slab = {
        "slab_id": "BAJ-NC-M-12-60",
        "tenure_min_months": 12,
        "tenure_max_months": 60,
        "payout_frequency": "Monthly",
        "base_interest_rate_pa": "7.05",
    }

    response = client.post(
        "/v1/fd/issuers/bajaj_finance/schemes/BAJ-NC/slabs",
        json=slab,
        headers=admin_headers,
    )

    assert response.status_code == 201
    assert response.json()["revision"] == 2
    nc = response.json()["schemes"][1]
    assert [s["slab_id"] for s in nc["rate_slabs"]] == ["BAJ-NC-Q-12-60", "BAJ-NC-M-12-60"]


def test_add_slab_with_disallowed_frequency(client: TestClient, admin_headers: dict, created_issuer: dict):
    slab = {
        "slab_id": "BAJ-NC-Y",
        "tenure_min_months": 12,
        "tenure_max_months": 24,
        "payout_frequency": "Yearly",
        "base_interest_rate_pa": "7.00",
    }

    response = client.post(
        "/v1/fd/issuers/bajaj_finance/schemes/BAJ-NC/slabs",
        json=slab,
        headers=admin_headers,
    )

    assert response.status_code == 422
    violation = response.json()["detail"]["details"][0]
    assert violation["rule"] == "slab_frequency_allowed"
    assert violation["slab_id"] == "BAJ-NC-Y"


def test_nested_write_stale_revision(client: TestClient, admin_headers: dict, created_issuer: dict):
    scheme = copy.deepcopy(created_issuer["schemes"][0])
    scheme["renewal_bonus_bps"] = 30

    response = client.put(
        "/v1/fd/issuers/bajaj_finance/schemes/BAJ-CUM?expected_revision=1",
        json=scheme,
        headers=admin_headers,
    )
    assert response.status_code == 200

    response = client.put(
        "/v1/fd/issuers/bajaj_finance/schemes/BAJ-CUM?expected_revision=1",
        json=scheme,
        headers=admin_headers,
    )
    assert response.status_code == 409


def test_quote_cumulative(client: TestClient, created_issuer: dict):
    """Test POST /v1/fd/quotes for a cumulative deposit"""
    response = client.post(
        "/v1/fd/quotes",
        json={
            "issuer_id": "bajaj_finance",
            "scheme_id": "BAJ-CUM",
            "deposit_amount": "100000",
            "tenure_months": 12,
            "payout_frequency": "On Maturity",
            "deposit_date": "2024-01-15",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["slab_id"] == "BAJ-CUM-12-24"
    assert data["total_rate_bps"] == 750
    assert abs(Decimal(data["maturity_amount"]) - Decimal("107714")) <= Decimal("0.5")
    assert data["maturity_date"] == "2025-01-15"
    assert data["compounding_frequency"] == "Quarterly"
    assert data["tds_applicable"] is True
    assert data["form15g15h_available"] is True


def test_quote_non_cumulative_with_bonus(client: TestClient, created_issuer: dict):
    response = client.post(
        "/v1/fd/quotes",
        json={
            "issuer_id": "bajaj_finance",
            "scheme_id": "BAJ-NC",
            "deposit_amount": "200000",
            "tenure_months": 24,
            "payout_frequency": "Quarterly",
            "deposit_date": "2024-01-15",
            "senior_citizen": True,
        },
    )

    assert response.status_code == 200
    data = response.json()
    # No senior bonus configured on this scheme
    assert data["total_rate_bps"] == 725
    assert Decimal(data["maturity_amount"]) == Decimal("200000")
    assert Decimal(data["periodic_payout_amount"]) == Decimal("3625.00")


def test_quote_no_matching_slab(client: TestClient, created_issuer: dict):
    response = client.post(
        "/v1/fd/quotes",
        json={
            "issuer_id": "bajaj_finance",
            "scheme_id": "BAJ-NC",
            "deposit_amount": "100000",
            "tenure_months": 24,
            "payout_frequency": "Monthly",
        },
    )

    assert response.status_code == 404
    assert "No matching rate slab" in response.json()["detail"]


def test_quote_amount_out_of_bounds(client: TestClient, created_issuer: dict):
    response = client.post(
        "/v1/fd/quotes",
        json={
            "issuer_id": "bajaj_finance",
            "scheme_id": "BAJ-CUM",
            "deposit_amount": "1000",
            "tenure_months": 12,
            "payout_frequency": "On Maturity",
        },
    )

    assert response.status_code == 422


def test_quote_history_and_referenced_delete(client: TestClient, admin_headers: dict, created_issuer: dict):
    """Test a quoted slab shows up in history and blocks hard deletion"""
    client.post(
        "/v1/fd/quotes",
        json={
            "issuer_id": "bajaj_finance",
            "scheme_id": "BAJ-CUM",
            "deposit_amount": "50000",
            "tenure_months": 36,
            "payout_frequency": "On Maturity",
        },
        headers={"X-User-Id": "ECS001"},
    )

    response = client.get("/v1/fd/quotes/history", params={"issuer_id": "bajaj_finance"})
    assert response.status_code == 200
    quotes = response.json()["quotes"]
    assert len(quotes) == 1
    assert quotes[0]["slab_id"] == "BAJ-CUM-25-60"
    assert quotes[0]["issuer_revision"] == 1

    response = client.delete(
        "/v1/fd/issuers/bajaj_finance/schemes/BAJ-CUM/slabs/BAJ-CUM-25-60",
        headers=admin_headers,
    )
    assert response.status_code == 409

    response = client.delete("/v1/fd/issuers/bajaj_finance", headers=admin_headers)
    assert response.status_code == 409


def test_delete_issuer(client: TestClient, admin_headers: dict, created_issuer: dict):
    response = client.delete("/v1/fd/issuers/bajaj_finance?expected_revision=1", headers=admin_headers)
    assert response.status_code == 204

    assert client.get("/v1/fd/issuers/bajaj_finance").status_code == 404
    assert client.delete("/v1/fd/issuers/bajaj_finance", headers=admin_headers).status_code == 404


def test_delete_issuer_unexpected_error(
    client: TestClient, admin_headers: dict, created_issuer: dict, monkeypatch: pytest.MonkeyPatch
):
    """Test an unexpected failure during delete is a 500 and the issuer survives"""

    def fail(self, issuer_id, expected_revision=None):
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr(CatalogWriteService, "delete_issuer", fail)

    response = client.delete("/v1/fd/issuers/bajaj_finance", headers=admin_headers)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to delete issuer"
    assert client.get("/v1/fd/issuers/bajaj_finance").status_code == 200


@pytest.mark.parametrize("tenure", [61, 0, -3])
def test_quote_tenure_outside_scheme_range(client: TestClient, created_issuer: dict, tenure: int):
    response = client.post(
        "/v1/fd/quotes",
        json={
            "issuer_id": "bajaj_finance",
            "scheme_id": "BAJ-CUM",
            "deposit_amount": "100000",
            "tenure_months": tenure,
            "payout_frequency": "On Maturity",
        },
    )

    assert response.status_code == 422
    assert "tenure_months" in response.json()["detail"]
