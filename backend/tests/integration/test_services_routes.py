"""Integration tests for the service catalog routes."""
from uuid import uuid4

import pytest


pytestmark = pytest.mark.integration

NEW_SERVICE = {
    "name": "Office Cleaning",
    "description": "Desks, floors and restrooms",
    "category": "office-cleaning",
    "price": 45.5,
    "duration": 90,
    "pricingPlans": {"weekly": 40, "monthly": 150},
}


def test_list_services_is_public(client, service):
    response = client.get("/services")

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["name"] == "Deep Home Cleaning"
    assert data[0]["price"] == 80.0
    assert data[0]["pricingPlans"]["weekly"] == 70.0
    assert data[0]["pricingPlans"]["monthly"] is None
    assert data[0]["isActive"] is True


def test_list_services_category_filter(client, service, admin_headers):
    client.post("/services", json=NEW_SERVICE, headers=admin_headers)

    response = client.get("/services", params={"category": "office-cleaning"})

    assert [s["name"] for s in response.json()] == ["Office Cleaning"]


def test_get_service(client, service):
    response = client.get(f"/services/{service.id}")

    assert response.status_code == 200
    assert response.json()["id"] == str(service.id)


def test_get_unknown_service(client):
    response = client.get(f"/services/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"] == "Service not found"


def test_admin_creates_service(client, admin_headers):
    response = client.post("/services", json=NEW_SERVICE, headers=admin_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Office Cleaning"
    assert data["price"] == 45.5
    assert data["duration"] == 90
    assert data["pricingPlans"] == {
        "hourly": None,
        "daily": None,
        "weekly": 40.0,
        "monthly": 150.0,
        "yearly": None,
    }


def test_quick_service_duration_is_fixed(client, admin_headers):
    payload = {**NEW_SERVICE, "isQuickService": True, "duration": 240}

    response = client.post("/services", json=payload, headers=admin_headers)

    assert response.status_code == 201
    assert response.json()["duration"] == 15


def test_create_service_requires_duration(client, admin_headers):
    payload = {k: v for k, v in NEW_SERVICE.items() if k != "duration"}

    response = client.post("/services", json=payload, headers=admin_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Duration is required"


def test_create_service_rejects_unknown_category(client, admin_headers):
    response = client.post("/services", json={**NEW_SERVICE, "category": "laundry"}, headers=admin_headers)

    assert response.status_code == 400


def test_customer_cannot_create_service(client, customer_headers):
    response = client.post("/services", json=NEW_SERVICE, headers=customer_headers)

    assert response.status_code == 403
    assert response.json()["error"] == "Access denied. Admin only."


def test_create_service_requires_token(client):
    response = client.post("/services", json=NEW_SERVICE)

    assert response.status_code == 401


def test_admin_updates_service(client, service, admin_headers):
    response = client.put(
        f"/services/{service.id}",
        json={"price": 95, "pricingPlans": {"monthly": 300}},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["price"] == 95.0
    assert data["name"] == "Deep Home Cleaning"
    # Plans not mentioned keep their value
    assert data["pricingPlans"]["weekly"] == 70.0
    assert data["pricingPlans"]["monthly"] == 300.0


def test_update_to_quick_service_forces_duration(client, service, admin_headers):
    response = client.put(f"/services/{service.id}", json={"isQuickService": True}, headers=admin_headers)

    assert response.json()["duration"] == 15


def test_update_unknown_service(client, admin_headers):
    response = client.put(f"/services/{uuid4()}", json={"price": 1}, headers=admin_headers)

    assert response.status_code == 404


def test_customer_cannot_update_service(client, service, customer_headers):
    response = client.put(f"/services/{service.id}", json={"price": 1}, headers=customer_headers)

    assert response.status_code == 403


def test_delete_is_soft(client, service, admin_headers):
    response = client.delete(f"/services/{service.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"message": "Service deleted"}

    assert client.get("/services").json() == []
    # Still reachable by id and in the admin listing
    assert client.get(f"/services/{service.id}").json()["isActive"] is False
    admin_list = client.get("/admin/services", headers=admin_headers).json()
    assert [s["id"] for s in admin_list] == [str(service.id)]


def test_customer_cannot_delete_service(client, service, customer_headers):
    response = client.delete(f"/services/{service.id}", headers=customer_headers)

    assert response.status_code == 403
