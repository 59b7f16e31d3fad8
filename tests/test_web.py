from __future__ import annotations

import pytest

from loan_compare.narrative import CONNECTION_ERROR_MESSAGE, NarrativeError
from loan_compare_web import app as web


@pytest.fixture
def client():
    web.app.config["TESTING"] = True
    return web.app.test_client()


def test_defaults(client):
    response = client.get("/api/defaults")
    assert response.status_code == 200
    data = response.get_json()
    assert [loan["id"] for loan in data["loans"]] == ["1", "2", "3"]
    assert data["loans"][1]["manualMonthlyPayment"] == 254_971
    assert data["settings"] == {"ivaRate": 16, "isrRate": 30, "applyIvaToInterest": True}


def test_compare_round_trips_defaults(client):
    payload = client.get("/api/defaults").get_json()
    response = client.post("/api/compare", json=payload)
    assert response.status_code == 200
    data = response.get_json()
    assert len(data["results"]) == 3
    assert len(data["results"][0]["table"]) == 36
    assert data["comparison"]["minPrincipal"] == 6_527_242
    assert len(data["charts"]["balances"]) == data["comparison"]["maxMonths"]
    assert data["charts"]["costs"][0]["name"] == "Crédito Pyme Citibanamex"


def test_compare_rejects_bad_payload(client):
    response = client.post("/api/compare", json={"loans": [{"id": "1", "name": "x", "paymentStrategy": "manual"}]})
    assert response.status_code == 400
    assert "error" in response.get_json()

    response = client.post("/api/compare", data="nope", content_type="text/plain")
    assert response.status_code == 400


def test_export_csv(client):
    loan = {"id": "9", "name": "Mi credito", "principal": 120_000, "annualRate": 0, "years": 1}
    response = client.post("/api/export", json={"loan": loan, "settings": {"applyIvaToInterest": False}})
    assert response.status_code == 200
    assert response.mimetype == "text/csv"
    assert "BancosPorta_Tabla_Mi_credito.csv" in response.headers["Content-Disposition"]
    assert response.data.startswith(b"\xef\xbb\xbf")
    text = response.data.decode("utf-8-sig")
    assert text.splitlines()[8] == "1,110000.00,10000.00,0.00,0.00,0.00,10000.00,0.00,10000.00"


def test_analysis_success(client, monkeypatch):
    class StubService:
        def generate(self, results, settings):
            return f"{len(results)} opciones"

    monkeypatch.setattr(web, "narrative_service", StubService())
    payload = client.get("/api/defaults").get_json()
    response = client.post("/api/analysis", json=payload)
    assert response.status_code == 200
    assert response.get_json() == {"analysis": "3 opciones"}


def test_analysis_failure_is_reported(client, monkeypatch):
    class FailingService:
        def generate(self, results, settings):
            raise NarrativeError(CONNECTION_ERROR_MESSAGE)

    monkeypatch.setattr(web, "narrative_service", FailingService())
    payload = client.get("/api/defaults").get_json()
    response = client.post("/api/analysis", json=payload)
    assert response.status_code == 502
    assert response.get_json() == {"error": CONNECTION_ERROR_MESSAGE}
