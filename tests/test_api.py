from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import FakeLauncher, make_settings
from src.VIP.api import create_app
from src.VIP.vip_scraper import VipScraper


@pytest.fixture
def client(launcher, settings):
    app = create_app(settings, scraper=VipScraper(settings, launcher=launcher))
    with TestClient(app) as test_client:
        yield test_client


def test_health_probe(client):
    response = client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["service"] == "VIP Reformas Scraper"
    assert body["timestamp"]


def test_cors_allows_any_origin(client):
    response = client.get("/", headers={"Origin": "https://n8n.example.com"})

    assert response.headers["access-control-allow-origin"] == "*"


def test_check_work_existing(client, launcher):
    response = client.post("/check-work", json={"work_id": "12345"})

    assert response.status_code == 200
    body = response.json()
    assert body["work_id"] == "12345"
    assert body["exists"] is True
    assert body["success"] is True
    assert body["timestamp"]
    assert launcher.close_calls == 1


def test_check_work_not_found(client):
    response = client.post("/check-work", json={"work_id": "99999"})

    assert response.status_code == 200
    assert response.json()["exists"] is False


def test_check_work_accepts_numeric_id(client):
    response = client.post("/check-work", json={"work_id": 12345})

    assert response.status_code == 200
    assert response.json()["work_id"] == "12345"


@pytest.mark.parametrize("path", ["/check-work", "/get-work-data"])
@pytest.mark.parametrize("payload", [{}, {"work_id": ""}, None])
def test_missing_work_id_is_client_error(client, launcher, path, payload):
    response = client.post(path, json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "work_id es requerido"}
    assert launcher.sessions == []


def test_get_work_data(client, launcher):
    response = client.post("/get-work-data", json={"work_id": "12345"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["work_id"] == "12345"
    data = body["data"]
    assert data["nombre"] == "Reforma integral de cocina"
    assert data["telefono"] == "600 123 456"
    assert data["email"] == "ana.garcia@example.com"
    assert data["fecha_reserva"] == "15/03/2024"
    assert data["lead_status"] == "pendiente"
    assert data["scraped_at"]
    assert launcher.close_calls == 1


def test_invalid_credentials_return_server_error(fake_page):
    launcher = FakeLauncher(fake_page)
    settings = make_settings(password="wrong")
    app = create_app(settings, scraper=VipScraper(settings, launcher=launcher))

    with TestClient(app) as client:
        check = client.post("/check-work", json={"work_id": "12345"})
        data = client.post("/get-work-data", json={"work_id": "12345"})

    assert check.status_code == 500
    assert check.json()["error"] == "Login fallido"
    assert check.json()["exists"] is False
    assert check.json()["work_id"] == "12345"

    assert data.status_code == 500
    assert data.json()["success"] is False
    assert "data" not in data.json()

    assert launcher.close_calls == 2


def test_navigation_timeout_returns_server_error(client, launcher):
    launcher.page.timeout_urls.add("https://portal.test/detalle-trabajo/12345")

    response = client.post("/get-work-data", json={"work_id": "12345"})

    assert response.status_code == 500
    assert "Timeout" in response.json()["error"]
    assert launcher.close_calls == 1


def test_search_works_reports_price_summary(client):
    response = client.post("/search-works", json={"search_text": "cocina"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["search_text"] == "cocina"
    assert body["precios"] == [150, 200.5, 9.99]
    assert body["primer_precio"] == 150
    assert body["promedio"] == 120.16
    assert body["total_trabajos"] == 3


def test_search_works_without_body(client):
    response = client.post("/search-works")

    assert response.status_code == 200
    assert response.json()["search_text"] is None


def test_search_works_failure_shape(fake_page):
    fake_page.timeout_urls.add("https://portal.test/trabajos-recibidos/")
    settings = make_settings()
    app = create_app(settings, scraper=VipScraper(settings, launcher=FakeLauncher(fake_page)))

    with TestClient(app) as client:
        response = client.post("/search-works", json={})

    assert response.status_code == 500
    assert set(response.json()) == {"error"}
