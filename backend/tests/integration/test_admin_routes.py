"""Integration tests for admin routes."""
from uuid import uuid4

import pytest

from zynkly.models.users import UserRole
from zynkly.services.payment_service import compute_signature


pytestmark = pytest.mark.integration

ADDRESS = {"street": "1 Main St", "city": "Pune", "state": "MH", "zipCode": "411001"}


def _book(client, headers, service):
    response = client.post(
        "/bookings",
        json={"serviceId": str(service.id), "date": "2026-11-02", "time": "10:00", "address": ADDRESS},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def _pay(client, provider, headers, booking_ids, payment_id):
    response = client.post(
        "/payment/verify-payment",
        json={
            "razorpay_order_id": "order_0001",
            "razorpay_payment_id": payment_id,
            "razorpay_signature": compute_signature(provider.secret, "order_0001", payment_id),
            "bookingIds": booking_ids,
        },
        headers=headers,
    )
    assert response.status_code == 200, response.text


def test_stats_after_checkouts(client, provider, customer_headers, admin_headers, service):
    # Two paid bookings totalling 200 and one still pending
    service_120 = client.post(
        "/services",
        json={"name": "Move Out", "description": "Empty flat", "category": "move-in-out",
              "price": 120, "duration": 240},
        headers=admin_headers,
    ).json()
    first = _book(client, customer_headers, service)
    second = client.post(
        "/bookings",
        json={"serviceId": service_120["id"], "date": "2026-11-03", "time": "09:00", "address": ADDRESS},
        headers=customer_headers,
    ).json()
    _book(client, customer_headers, service)
    _pay(client, provider, customer_headers, [first["id"], second["id"]], "pay_001")

    response = client.get("/admin/stats", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["totalRevenue"] == 200.0
    assert data["totalBookings"] == 3
    assert data["totalUsers"] == 1
    assert data["totalServices"] == 2
    assert data["statusCounts"] == {
        "pending": 1,
        "confirmed": 2,
        "in-progress": 0,
        "completed": 0,
        "cancelled": 0,
    }
    assert len(data["recentBookings"]) == 3
    assert data["recentBookings"][0]["user"]["email"] == "customer@example.com"
    assert sum(row["revenue"] for row in data["monthlyRevenue"]) == 200.0
    assert sum(row["count"] for row in data["monthlyRevenue"]) == 2


def test_stats_on_empty_store(client, admin_headers):
    data = client.get("/admin/stats", headers=admin_headers).json()

    assert data["totalRevenue"] == 0.0
    assert data["totalBookings"] == 0
    assert data["recentBookings"] == []
    assert data["monthlyRevenue"] == []
    assert set(data["statusCounts"]) == {"pending", "confirmed", "in-progress", "completed", "cancelled"}


@pytest.mark.parametrize("path", ["/admin/stats", "/admin/users", "/admin/services"])
def test_admin_routes_refuse_customers(client, customer_headers, path):
    response = client.get(path, headers=customer_headers)

    assert response.status_code == 403
    assert response.json()["error"] == "Access denied. Admin only."


@pytest.mark.parametrize("path", ["/admin/stats", "/admin/users", "/admin/services"])
def test_admin_routes_require_token(client, path):
    assert client.get(path).status_code == 401


def test_list_users_excludes_admins(client, customer, other_customer, admin_headers):
    response = client.get("/admin/users", headers=admin_headers)

    assert response.status_code == 200
    emails = {u["email"] for u in response.json()}
    assert emails == {customer.email, other_customer.email}
    assert all(u["role"] == "customer" for u in response.json())
    assert all("passwordHash" not in u for u in response.json())


def test_delete_user_removes_their_bookings(client, customer, customer_headers, other_headers,
                                            admin_headers, service):
    _book(client, customer_headers, service)
    theirs = _book(client, other_headers, service)

    response = client.delete(f"/admin/users/{customer.id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"message": "User deleted successfully"}
    remaining = client.get("/bookings", headers=admin_headers).json()
    assert [b["id"] for b in remaining] == [theirs["id"]]
    # The deleted account's token no longer works
    assert client.get("/auth/me", headers=customer_headers).status_code == 401


def test_delete_admin_is_refused(client, admin_headers, user_factory):
    other_admin = user_factory("boss@example.com", role=UserRole.ADMIN)

    response = client.delete(f"/admin/users/{other_admin.id}", headers=admin_headers)

    assert response.status_code == 403


def test_delete_unknown_user(client, admin_headers):
    response = client.delete(f"/admin/users/{uuid4()}", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error"] == "User not found"


def test_admin_services_include_inactive(client, service, admin_headers):
    client.delete(f"/services/{service.id}", headers=admin_headers)

    response = client.get("/admin/services", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["isActive"] is False
