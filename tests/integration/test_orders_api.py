"""Integration tests for the orders API.

Requests go through the FastAPI app with the test database session.
"""

import uuid
from decimal import Decimal

import pytest
from tests.factories import seed_product, spec_quantity_of, stock_of

LARGE = {"specification_id": "size", "value_id": "large", "value": "Large"}


def _url(scope, path=""):
    return f"/stores/{scope.store_id}/orders{path}"


async def _shirt(db, store_id, **overrides):
    return await seed_product(db, store_id, specifications=[{}], **overrides)


def _order_payload(product_id, quantity, selections=(), **overrides):
    payload = {
        "user": "buyer-1",
        "cart_items": [
            {
                "product": str(product_id),
                "quantity": quantity,
                "selected_specifications": list(selections),
            }
        ],
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# POST /orders
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_order(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)
    product_id = product.id

    response = await client.post(
        _url(scope),
        json=_order_payload(
            product_id,
            5,
            [LARGE],
            customer_email="Buyer@Example.com",
            shipping_address={"city": "Lagos"},
        ),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["payment_status"] == "unpaid"
    assert body["customer_email"] == "buyer@example.com"
    assert body["shipping_address"] == {"city": "Lagos"}
    assert Decimal(body["total"]) == Decimal("500")
    assert body["wholesale_applied"] is False
    assert body["items"][0]["selected_specifications"][0]["value_id"] == "large"
    assert await stock_of(db_session, product_id) == 45
    assert await spec_quantity_of(db_session, product_id, "size", "large") == 15


@pytest.mark.asyncio
@pytest.mark.integration
async def test_insufficient_specification_stock_error_shape(
    client, db_session, scope
):
    product = await _shirt(db_session, scope.store_id)
    product_id = product.id

    response = await client.post(
        _url(scope), json=_order_payload(product_id, 30, [LARGE])
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "insufficient_specification_stock"
    assert "only 20 left in Size Large" in body["message"]
    assert body["details"]["available"] == 20
    assert body["details"]["requested"] == 30
    assert await stock_of(db_session, product_id) == 50


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_specification_is_a_client_error(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)

    response = await client.post(
        _url(scope),
        json=_order_payload(
            product.id,
            1,
            [{"specification_id": "invalid-spec", "value_id": "invalid-value"}],
        ),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "specification_not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_zero_quantity_is_a_validation_error(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)

    response = await client.post(_url(scope), json=_order_payload(product.id, 0))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation_error"
    assert body["details"]["fields"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_in_unknown_store_is_not_found(client):
    response = await client.post(
        f"/stores/{uuid.uuid4()}/orders",
        json=_order_payload(uuid.uuid4(), 1),
    )

    assert response.status_code == 404
    assert response.json()["error"] == "store_not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_without_buyer_is_rejected(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)

    response = await client.post(
        _url(scope), json=_order_payload(product.id, 1, user=None)
    )

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_order_by_id_and_number(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)
    created = (
        await client.post(_url(scope), json=_order_payload(product.id, 1))
    ).json()

    by_id = await client.get(_url(scope, f"/{created['id']}"))
    by_number = await client.get(_url(scope, f"/number/{created['order_number']}"))
    missing = await client.get(_url(scope, f"/{uuid.uuid4()}"))

    assert by_id.status_code == 200
    assert by_number.json()["id"] == created["id"]
    assert missing.status_code == 404
    assert missing.json()["error"] == "order_not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_guest_history_and_claim(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)
    for _ in range(2):
        response = await client.post(
            _url(scope),
            json=_order_payload(product.id, 1, user=None, guest_id="guest-7"),
        )
        assert response.status_code == 201

    history = await client.get(_url(scope, "/guest/guest-7"))
    assert history.json()["total"] == 2

    claim = await client.post(
        _url(scope, "/guest/guest-7/claim"), json={"user_id": "user-7"}
    )
    assert claim.status_code == 200
    assert claim.json() == {"guest_id": "guest-7", "user_id": "user-7", "claimed": 2}

    mine = await client.get(_url(scope), params={"user_id": "user-7"})
    assert mine.json()["total"] == 2


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buyer_cancel_restocks(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)
    product_id = product.id
    created = (
        await client.post(_url(scope), json=_order_payload(product_id, 5, [LARGE]))
    ).json()

    response = await client.put(
        _url(scope, f"/{created['id']}/cancel"),
        json={"user": "buyer-1", "reason": "Ordered the wrong size"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert await stock_of(db_session, product_id) == 50
    assert await spec_quantity_of(db_session, product_id, "size", "large") == 20


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_by_stranger_is_forbidden(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)
    created = (
        await client.post(_url(scope), json=_order_payload(product.id, 1))
    ).json()

    response = await client.put(
        _url(scope, f"/{created['id']}/cancel"), json={"user": "someone-else"}
    )

    assert response.status_code == 403
    assert response.json()["error"] == "order_access_denied"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_status_flow(client, db_session, scope):
    product = await _shirt(db_session, scope.store_id)
    created = (
        await client.post(_url(scope), json=_order_payload(product.id, 1))
    ).json()
    status_url = _url(scope, f"/{created['id']}/status")

    shipped = await client.put(status_url, json={"status": "shipped"})
    backwards = await client.put(status_url, json={"status": "confirmed"})
    delivered = await client.put(status_url, json={"status": "delivered"})
    listed = await client.get(_url(scope), params={"status": "delivered"})

    assert shipped.json()["status"] == "shipped"
    assert backwards.status_code == 400
    assert backwards.json()["error"] == "invalid_status_transition"
    assert delivered.json()["actual_delivery_date"] is not None
    assert listed.json()["total"] == 1
