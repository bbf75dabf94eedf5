"""HTTP surface: routing, envelopes and status mapping."""
import httpx
import pytest
import pytest_asyncio

from api.dependencies import get_order_service, get_payment_service
from application.services.order_service import OrderApplicationService
from application.services.payment_service import PaymentApplicationService
from fakes import resolver_for
from helpers import CUSTOMER, GOOD_CARD
from main import app


@pytest_asyncio.fixture
async def client(uow_factory, gateway):
    async def order_service():
        return OrderApplicationService(uow_factory)

    async def payment_service():
        return PaymentApplicationService(uow_factory, resolver_for(gateway))

    app.dependency_overrides[get_order_service] = order_service
    app.dependency_overrides[get_payment_service] = payment_service
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def order_payload(quantity=2, price="100.00", product_id=1):
    return {
        "items": [{"product_id": product_id, "quantity": quantity, "price": price}],
        "customer_info": CUSTOMER,
        "payment_method": "card",
    }


def test_routes_are_mounted_under_v1():
    # Included routers are not flattened into app.routes on every FastAPI release
    paths = set(app.openapi()["paths"]) | {getattr(route, "path", None) for route in app.routes}
    assert "/api/v1/orders" in paths
    assert "/api/v1/orders/{order_id}/cancel" in paths
    assert "/api/v1/payments/initialize" in paths
    assert "/api/v1/payments/{payment_id}/refunds" in paths
    assert "/api/v1/payments/webhooks/{provider}" in paths


@pytest.mark.asyncio
async def test_create_and_fetch_order(client, store):
    resp = await client.post("/api/v1/orders", json=order_payload())
    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 0
    order = body["data"]["order"]
    assert order["total"] == "200.00"
    assert order["order_status"] == "pending"
    assert order["can_be_cancelled"] is True
    assert order["can_be_refunded"] is False
    assert store.product(1).stock == 8

    by_number = await client.get(f"/api/v1/orders/by-number/{order['order_number']}")
    assert by_number.json()["data"]["id"] == order["id"]

    listing = await client.get("/api/v1/orders", params={"order_status": "pending"})
    assert listing.json()["data"]["total"] == 1
    assert resp.headers.get("x-request-id")


@pytest.mark.asyncio
async def test_rejected_order_lists_every_problem(client):
    payload = order_payload(quantity=20)
    payload["items"].append({"product_id": 99, "quantity": 1, "price": "1.00"})

    resp = await client.post("/api/v1/orders", json=payload)

    assert resp.status_code == 422
    body = resp.json()
    assert body["code"] == 10010
    assert body["error"]["kind"] == "validation"
    codes = sorted(e["code"] for e in body["error"]["details"]["errors"])
    assert codes == ["INSUFFICIENT_STOCK", "PRODUCT_NOT_FOUND"]


@pytest.mark.asyncio
async def test_malformed_request_is_422(client):
    resp = await client.post("/api/v1/orders", json={"items": []})
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "ValidationError"


@pytest.mark.asyncio
async def test_unknown_order_is_404(client):
    resp = await client.get("/api/v1/orders/4040")
    assert resp.status_code == 404
    body = resp.json()
    assert body["code"] == 20101
    assert body["error"]["kind"] == "not_found"


@pytest.mark.asyncio
async def test_illegal_transition_is_400(client):
    created = (await client.post("/api/v1/orders", json=order_payload())).json()["data"]["order"]
    resp = await client.patch(f"/api/v1/orders/{created['id']}/status", json={"status": "delivered"})
    assert resp.status_code == 400
    assert resp.json()["error"]["kind"] == "rule_violation"


@pytest.mark.asyncio
async def test_payment_flow_over_http(client):
    order = (await client.post("/api/v1/orders", json=order_payload())).json()["data"]["order"]

    init = await client.post("/api/v1/payments/initialize", json={
        "order_number": order["order_number"],
        "method": "visa",
        "customer_data": {"email": "mona@example.com"},
    })
    assert init.status_code == 200
    payment_id = init.json()["data"]["payment"]["payment_id"]

    processed = await client.post(f"/api/v1/payments/{payment_id}/process", json={"details": GOOD_CARD})
    assert processed.json()["data"]["outcome"] == "success"

    again = await client.post("/api/v1/payments/initialize", json={
        "order_number": order["order_number"],
        "method": "visa",
    })
    assert again.status_code == 409
    assert again.json()["code"] == 20106

    payments = await client.get(f"/api/v1/payments/orders/{order['order_number']}")
    assert [p["status"] for p in payments.json()["data"]] == ["completed"]


@pytest.mark.asyncio
async def test_methods_for_currency(client):
    resp = await client.get("/api/v1/payments/methods", params={"currency": "EUR"})
    assert [m["name"] for m in resp.json()["data"]] == ["paypal"]


@pytest.mark.asyncio
async def test_webhook_requires_json(client):
    resp = await client.post(
        "/api/v1/payments/webhooks/paymob", content=b"id=1", headers={"content-type": "text/plain"}
    )
    assert resp.status_code == 415
    assert resp.json()["error"]["type"] == "UnsupportedContentType"


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.json()["data"] == {"status": "healthy"}


@pytest.mark.asyncio
async def test_order_reports_refund_and_cancel_eligibility(client):
    order = (await client.post("/api/v1/orders", json=order_payload())).json()["data"]["order"]
    init = await client.post("/api/v1/payments/initialize", json={
        "order_number": order["order_number"],
        "method": "visa",
    })
    payment_id = init.json()["data"]["payment"]["payment_id"]
    await client.post(f"/api/v1/payments/{payment_id}/process", json={"details": GOOD_CARD})

    paid = (await client.get(f"/api/v1/orders/{order['id']}")).json()["data"]
    assert paid["order_status"] == "confirmed"
    assert paid["can_be_cancelled"] is True
    assert paid["can_be_refunded"] is True

    for status in ("processing", "shipped"):
        await client.patch(f"/api/v1/orders/{order['id']}/status", json={"status": status})
    shipped = (await client.get(f"/api/v1/orders/{order['id']}")).json()["data"]
    assert shipped["can_be_cancelled"] is False
    assert shipped["can_be_refunded"] is False
