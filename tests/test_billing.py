"""
Tests for subscription checkout, portal, webhook and enterprise inquiries.
Stripe is never contacted: the SDK entry points are patched.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import stripe

from config.settings import settings
from crud.user import UserRepository
from services.billing_service import BillingService, list_plans, PLAN_PRICES
from services.email_service import EmailService
from services.notification_service import NotificationService
from tests.conftest import auth_headers


@pytest.fixture
def stripe_keys(monkeypatch):
    monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_123")
    monkeypatch.setattr(settings, "stripe_webhook_secret", "whsec_123")


def price(price_id, amount, interval=None):
    recurring = SimpleNamespace(interval=interval) if interval else None
    return SimpleNamespace(id=price_id, unit_amount=amount, recurring=recurring)


def price_list(*prices):
    listing = MagicMock()
    listing.auto_paging_iter.return_value = iter(prices)
    return listing


def test_plan_catalogue():
    plans = {p["id"]: p for p in list_plans()}
    assert set(plans) >= {"starter", "gold", "platinum"}
    assert PLAN_PRICES["gold"]["month"] == 2900


@pytest.mark.asyncio
async def test_enterprise_checkout_never_reaches_stripe(client, create_user, stripe_keys):
    user = await create_user()
    with patch.object(BillingService, "create_checkout_session", new_callable=AsyncMock) as checkout, \
            patch("stripe.checkout.Session.create") as session_create:
        response = await client.post("/api/subscription/checkout", headers=auth_headers(user), json={
            "planType": "enterprise",
        })

    assert response.status_code == 200
    assert response.json()["type"] == "enterprise"
    checkout.assert_not_awaited()
    session_create.assert_not_called()


@pytest.mark.asyncio
async def test_checkout_reuses_matching_price(client, create_user, stripe_keys):
    """
    An existing active price with the same amount and interval is reused;
    the customer is created once and remembered.
    """
    user = await create_user()
    listing = price_list(price("price_wrong", 1000, "month"), price("price_gold_month", 2900, "month"))

    with patch("stripe.Customer.create", return_value=SimpleNamespace(id="cus_1")) as customer_create, \
            patch("stripe.Price.list", return_value=listing), \
            patch("stripe.Price.create") as price_create, \
            patch("stripe.checkout.Session.create", return_value=SimpleNamespace(id="cs_1", url="https://checkout.stripe.test/cs_1")) as session_create:
        response = await client.post("/api/subscription/checkout", headers=auth_headers(user), json={
            "planType": "gold",
            "interval": "month",
        })

    assert response.status_code == 200
    assert response.json() == {"url": "https://checkout.stripe.test/cs_1", "sessionId": "cs_1"}
    customer_create.assert_called_once()
    price_create.assert_not_called()

    kwargs = session_create.call_args.kwargs
    assert kwargs["line_items"] == [{"price": "price_gold_month", "quantity": 1}]
    assert kwargs["mode"] == "subscription"
    assert kwargs["metadata"]["planType"] == "gold"

    status = await client.get("/api/subscription/status", headers=auth_headers(user))
    assert status.json()["has_billing_account"] is True


@pytest.mark.asyncio
async def test_lifetime_checkout_creates_one_time_price(test_db, create_user, stripe_keys):
    user = await create_user()
    repo = UserRepository(test_db)
    await repo.update_user(await repo.get_user_by_id(user.id), {"stripe_customer_id": "cus_9"})
    await test_db.commit()

    with patch("stripe.Price.list", return_value=price_list(price("price_monthly", 29900, "month"))), \
            patch("stripe.Price.create", return_value=SimpleNamespace(id="price_new")) as price_create, \
            patch("stripe.checkout.Session.create", return_value=SimpleNamespace(id="cs_2", url="u")) as session_create:
        await BillingService(test_db).create_checkout_session(user.id, "starter", "lifetime")

    assert "recurring" not in price_create.call_args.kwargs
    assert session_create.call_args.kwargs["mode"] == "payment"
    assert session_create.call_args.kwargs["customer"] == "cus_9"


@pytest.mark.asyncio
async def test_checkout_without_stripe_key_is_unavailable(client, create_user):
    user = await create_user()
    response = await client.post("/api/subscription/checkout", headers=auth_headers(user), json={"planType": "starter"})
    assert response.status_code == 503
    assert response.json()["error"] == "billing_not_configured"


@pytest.mark.asyncio
async def test_portal_requires_billing_account(client, create_user, stripe_keys):
    user = await create_user()
    response = await client.post("/api/subscription/portal", headers=auth_headers(user), json={})
    assert response.status_code == 400
    assert response.json()["error"] == "missing_customer"


@pytest.mark.asyncio
async def test_stripe_failure_maps_to_bad_gateway(client, create_user, stripe_keys):
    user = await create_user()
    with patch("stripe.Customer.create", side_effect=stripe.APIConnectionError("offline")):
        response = await client.post("/api/subscription/checkout", headers=auth_headers(user), json={"planType": "gold"})
    assert response.status_code == 502


@pytest.mark.asyncio
async def test_webhook_activates_subscription(client, create_user, stripe_keys, session_factory):
    user = await create_user()
    event = {
        "type": "checkout.session.completed",
        "data": {"object": {
            "customer": "cus_42",
            "subscription": "sub_42",
            "metadata": {"userId": str(user.id), "planType": "platinum", "interval": "year"},
        }},
    }

    with patch("stripe.Webhook.construct_event", return_value=event):
        response = await client.post(
            "/api/subscription/webhook",
            content=b"{}",
            headers={"stripe-signature": "t=1,v1=abc"},
        )

    assert response.status_code == 200
    assert response.json()["handled"] is True

    async with session_factory() as session:
        stored = await UserRepository(session).get_user_by_id(user.id)
    assert stored.plan_type == "platinum"
    assert stored.subscription_status == "active"
    assert stored.stripe_customer_id == "cus_42"


@pytest.mark.asyncio
async def test_failed_webhook_leaves_no_partial_updates(client, create_user, stripe_keys, session_factory):
    """
    A handler that fails after writing subscription fields still answers 200,
    but none of its writes are committed.
    """
    user = await create_user()
    event = {
        "type": "checkout.session.completed",
        "data": {"object": {
            "customer": "cus_99",
            "subscription": "sub_99",
            "metadata": {"userId": str(user.id), "planType": "gold", "interval": "month"},
        }},
    }

    failing_notify = AsyncMock(side_effect=RuntimeError("notification store unavailable"))
    with patch("stripe.Webhook.construct_event", return_value=event), \
            patch.object(NotificationService, "notify", failing_notify):
        response = await client.post(
            "/api/subscription/webhook",
            content=b"{}",
            headers={"stripe-signature": "t=1,v1=abc"},
        )

    assert response.status_code == 200
    assert response.json()["ok"] is False
    failing_notify.assert_awaited_once()

    async with session_factory() as session:
        stored = await UserRepository(session).get_user_by_id(user.id)
    assert stored.plan_type != "gold"
    assert stored.stripe_customer_id != "cus_99"
    assert stored.subscription_status != "active"


@pytest.mark.asyncio
async def test_webhook_rejects_bad_signature_with_200(client, stripe_keys):
    error = stripe.SignatureVerificationError("bad", "sig")
    with patch("stripe.Webhook.construct_event", side_effect=error):
        response = await client.post("/api/subscription/webhook", content=b"{}", headers={"stripe-signature": "x"})
    assert response.status_code == 200
    assert response.json()["ok"] is False


@pytest.mark.asyncio
async def test_enterprise_inquiry_is_stored_and_notified(client, create_user):
    user = await create_user()
    with patch.object(EmailService, "send_enterprise_inquiry", new_callable=AsyncMock) as send:
        response = await client.post("/api/support/enterprise", headers=auth_headers(user), json={
            "name": "Dana Law",
            "email": "dana@firm.example.com",
            "company": "Dana & Co",
            "message": "We need 40 seats.",
        })

    assert response.status_code == 201
    send.assert_awaited_once()
    notifications = (await client.get("/api/notifications", headers=auth_headers(user))).json()
    assert notifications[0]["title"] == "Request Received"

    anonymous = await client.post("/api/support/enterprise", json={
        "name": "Anon", "email": "anon@example.com", "message": "Pricing?",
    })
    assert anonymous.status_code == 201
