"""Integration tests for pricing, wholesaler lookups and stock status."""

import uuid
from decimal import Decimal

import pytest
from services.commerce_service.models import WholesalerStatus
from tests.factories import seed_product, seed_wholesaler


def _url(scope, path):
    return f"/stores/{scope.store_id}{path}"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "commerce"}


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_quote_for_wholesaler(client, db_session, scope):
    await seed_wholesaler(
        db_session, scope.store_id, user_id="wholesale-1", discount=Decimal("0.15")
    )
    product = await seed_product(
        db_session,
        scope.store_id,
        price=Decimal("100"),
        compare_at_price=Decimal("120"),
    )

    response = await client.post(
        _url(scope, "/pricing/quote"),
        json={
            "user": "wholesale-1",
            "items": [{"product": str(product.id), "quantity": 2}],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["wholesale_applied"] is True
    assert Decimal(body["lines"][0]["unit_price"]) == Decimal("102")
    assert Decimal(body["subtotal"]) == Decimal("204")
    assert Decimal(body["regular_subtotal"]) == Decimal("200")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_quote_requires_items(client, scope):
    response = await client.post(_url(scope, "/pricing/quote"), json={"items": []})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


# ---------------------------------------------------------------------------
# Wholesaler discount lookups
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_discount_by_user(client, db_session, scope):
    wholesaler = await seed_wholesaler(
        db_session, scope.store_id, user_id="wholesale-1", discount=Decimal("0.2")
    )

    response = await client.get(
        _url(scope, "/wholesalers/by-user/wholesale-1/discount")
    )

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == str(wholesaler.id)
    assert Decimal(body["discount"]) == Decimal("0.2")
    assert body["is_eligible"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_discount_by_email_reports_ineligible_record(client, db_session, scope):
    await seed_wholesaler(
        db_session,
        scope.store_id,
        email="pending@example.com",
        status=WholesalerStatus.PENDING,
    )

    response = await client.get(
        _url(scope, "/wholesalers/by-email/Pending@Example.com/discount")
    )

    assert response.status_code == 200
    assert response.json()["is_eligible"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_discount_lookup_miss(client, scope):
    response = await client.get(_url(scope, "/wholesalers/by-user/nobody/discount"))

    assert response.status_code == 404
    assert response.json()["error"] == "wholesaler_not_found"


# ---------------------------------------------------------------------------
# Stock status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stock_status(client, db_session, scope):
    product = await seed_product(
        db_session,
        scope.store_id,
        stock=4,
        specifications=[{"quantity": 0}, {"value_id": "small", "quantity": 9}],
    )

    response = await client.get(_url(scope, f"/products/{product.id}/stock-status"))

    assert response.status_code == 200
    body = response.json()
    assert body["stock"] == 4
    assert body["stock_status"] == "low_stock"
    assert body["total_specification_quantity"] == 9
    assert [s["stock_status"] for s in body["specifications"]] == [
        "out_of_stock",
        "in_stock",
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stock_status_of_unknown_product(client, scope):
    response = await client.get(
        _url(scope, f"/products/{uuid.uuid4()}/stock-status")
    )

    assert response.status_code == 404
    assert response.json()["error"] == "product_not_found"
