"""Integration tests for the cart API."""

import uuid

import pytest
from tests.factories import seed_product

LARGE = {"specification_id": "size", "value_id": "large", "value": "Large"}


def _url(scope, path=""):
    return f"/stores/{scope.store_id}/cart{path}"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_guest_cart_via_header(client, db_session, scope):
    product = await seed_product(db_session, scope.store_id, specifications=[{}])
    headers = {"X-Guest-ID": "guest-42"}

    added = await client.post(
        _url(scope, "/items"),
        json={
            "product_id": str(product.id),
            "quantity": 2,
            "selected_specifications": [LARGE],
        },
        headers=headers,
    )
    fetched = await client.get(_url(scope), headers=headers)

    assert added.status_code == 201
    body = fetched.json()
    assert body["guest_id"] == "guest-42"
    assert body["item_count"] == 2
    assert body["items"][0]["in_stock"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cart_without_owner_is_rejected(client, scope):
    response = await client.get(_url(scope))

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_and_remove_lines(client, db_session, scope):
    product = await seed_product(db_session, scope.store_id)
    params = {"user_id": "user-1"}
    cart = (
        await client.post(
            _url(scope, "/items"),
            json={"product_id": str(product.id), "quantity": 1},
            params=params,
        )
    ).json()
    item_id = cart["items"][0]["id"]

    updated = await client.patch(
        _url(scope, f"/items/{item_id}"), json={"quantity": 4}, params=params
    )
    removed = await client.delete(_url(scope, f"/items/{item_id}"), params=params)
    missing = await client.delete(_url(scope, f"/items/{uuid.uuid4()}"), params=params)

    assert updated.json()["items"][0]["quantity"] == 4
    assert removed.json()["items"] == []
    assert missing.status_code == 404
    assert missing.json()["error"] == "cart_item_not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_merge_guest_cart(client, db_session, scope):
    product = await seed_product(db_session, scope.store_id)
    line = {"product_id": str(product.id), "quantity": 2}
    await client.post(_url(scope, "/items"), json=line, headers={"X-Guest-ID": "g-1"})
    await client.post(_url(scope, "/items"), json=line, params={"user_id": "u-1"})

    merged = await client.post(
        _url(scope, "/merge"), json={"guest_id": "g-1", "user_id": "u-1"}
    )

    assert merged.status_code == 200
    body = merged.json()
    assert body["user_id"] == "u-1"
    assert body["item_count"] == 4
    assert len(body["items"]) == 1
