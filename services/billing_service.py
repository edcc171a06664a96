"""
Billing Service - Stripe checkout, billing portal and subscription state
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
import stripe

from config.settings import (
    settings,
    PLAN_STARTER,
    PLAN_GOLD,
    PLAN_PLATINUM,
    PLAN_ENTERPRISE,
    INTERVAL_MONTH,
    INTERVAL_YEAR,
    INTERVAL_LIFETIME,
)
from crud.user import UserRepository
from database_models import User, EnterpriseInquiry
from services.email_service import EmailService
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

# Prices in cents per plan and interval
PLAN_PRICES = {
    PLAN_STARTER: {INTERVAL_MONTH: 1499, INTERVAL_YEAR: 14999, INTERVAL_LIFETIME: 29900},
    PLAN_GOLD: {INTERVAL_MONTH: 2900, INTERVAL_YEAR: 29000, INTERVAL_LIFETIME: 59900},
    PLAN_PLATINUM: {INTERVAL_MONTH: 5500, INTERVAL_YEAR: 55000, INTERVAL_LIFETIME: 99900},
}

PLAN_DETAILS = {
    PLAN_STARTER: ("Starter", "Essential will creation with Skyler and secure document storage."),
    PLAN_GOLD: ("Gold", "Everything in Starter plus video testimony and unlimited documents."),
    PLAN_PLATINUM: ("Platinum", "Everything in Gold plus priority support and multiple wills."),
    PLAN_ENTERPRISE: ("Enterprise", "Custom pricing for firms and advisors. Contact our team."),
}

CURRENCY = "usd"


class BillingError(Exception):
    """Base class for billing failures that are shown to the user."""
    code = "billing_error"
    status_code = 400


class BillingNotConfiguredError(BillingError):
    code = "billing_not_configured"
    status_code = 503


class UserNotFoundError(BillingError):
    code = "user_not_found"
    status_code = 404


class MissingCustomerError(BillingError):
    code = "missing_customer"


class MissingSubscriptionError(BillingError):
    code = "missing_subscription"


class UnknownPlanError(BillingError):
    code = "unknown_plan"


class EnterprisePlanError(BillingError):
    """Enterprise plans never go through automated checkout."""
    code = "enterprise_plan"


class StripeRequestError(BillingError):
    code = "stripe_error"
    status_code = 502


def product_id_for(plan_type: str) -> str:
    """
    Map an internal plan identifier to its Stripe product.

    Raises:
        EnterprisePlanError: For the enterprise plan
        UnknownPlanError: For any other unmapped plan
    """
    if plan_type == PLAN_ENTERPRISE:
        raise EnterprisePlanError("Enterprise plans are arranged with our team. Please use the contact form.")
    products = {
        PLAN_STARTER: settings.stripe_product_starter,
        PLAN_GOLD: settings.stripe_product_gold,
        PLAN_PLATINUM: settings.stripe_product_platinum,
    }
    product_id = products.get(plan_type)
    if not product_id:
        raise UnknownPlanError(f"Unknown plan '{plan_type}'")
    return product_id


def price_amount_for(plan_type: str, interval: str) -> int:
    try:
        return PLAN_PRICES[plan_type][interval]
    except KeyError:
        raise UnknownPlanError(f"No price for plan '{plan_type}' billed per '{interval}'")


def list_plans() -> list:
    """Public plan catalogue, amounts in cents."""
    plans = []
    for plan_type, (name, description) in PLAN_DETAILS.items():
        plans.append({
            "id": plan_type,
            "name": name,
            "description": description,
            "prices": PLAN_PRICES.get(plan_type),
            "currency": CURRENCY,
            "custom_pricing": plan_type == PLAN_ENTERPRISE,
        })
    return plans


def _price_matches(price, amount: int, interval: str) -> bool:
    if price.unit_amount != amount:
        return False
    recurring = getattr(price, "recurring", None)
    if interval == INTERVAL_LIFETIME:
        return not recurring
    return bool(recurring) and recurring.interval == interval


class BillingService:
    """
    Service class for handling billing-related business logic.
    Stripe SDK calls are made synchronously, one request at a time, with no retry.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the billing service.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db
        self.user_repo = UserRepository(db)
        self.notifications = NotificationService(db)

    def _require_stripe(self) -> None:
        if not settings.stripe_secret_key:
            logger.error("STRIPE_SECRET_KEY is not set. Billing is unavailable.")
            raise BillingNotConfiguredError("Billing is not available right now. Please try again later.")
        stripe.api_key = settings.stripe_secret_key

    async def _get_user(self, user_id: int) -> User:
        user = await self.user_repo.get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError("User not found")
        return user

    async def get_or_create_customer(self, user: User) -> str:
        """Reuse the user's Stripe customer or create one and persist its ID."""
        if user.stripe_customer_id:
            return user.stripe_customer_id
        customer = stripe.Customer.create(
            email=user.email,
            name=user.full_name or None,
            metadata={"userId": str(user.id)},
        )
        await self.user_repo.update_user(user, {"stripe_customer_id": customer.id})
        logger.info(f"Created Stripe customer {customer.id} for user {user.id}")
        return customer.id

    def get_or_create_price(self, product_id: str, amount: int, interval: str) -> str:
        """
        Find an active price of the product with the same amount and interval,
        creating one only when none matches.
        """
        prices = stripe.Price.list(product=product_id, active=True, limit=100)
        for price in prices.auto_paging_iter():
            if _price_matches(price, amount, interval):
                return price.id

        params = {"product": product_id, "unit_amount": amount, "currency": CURRENCY}
        if interval != INTERVAL_LIFETIME:
            params["recurring"] = {"interval": interval}
        price = stripe.Price.create(**params)
        logger.info(f"Created Stripe price {price.id} for {product_id} ({amount} per {interval})")
        return price.id

    async def create_checkout_session(
        self,
        user_id: int,
        plan_type: str,
        interval: str,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> dict:
        """
        Start a Stripe Checkout session for a plan.

        Returns:
            {"url": ..., "session_id": ...}

        Raises:
            EnterprisePlanError, UnknownPlanError, UserNotFoundError,
            BillingNotConfiguredError, StripeRequestError
        """
        product_id = product_id_for(plan_type)
        amount = price_amount_for(plan_type, interval)
        self._require_stripe()
        user = await self._get_user(user_id)

        frontend_url = settings.frontend_url or "http://localhost:5173"
        success_url = success_url or f"{frontend_url}/subscription/success"
        cancel_url = cancel_url or f"{frontend_url}/pricing"
        separator = "&" if "?" in success_url else "?"

        try:
            customer_id = await self.get_or_create_customer(user)
            price_id = self.get_or_create_price(product_id, amount, interval)
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="payment" if interval == INTERVAL_LIFETIME else "subscription",
                success_url=f"{success_url}{separator}session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=cancel_url,
                metadata={"userId": str(user.id), "planType": plan_type, "interval": interval},
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session: {e}", exc_info=True)
            raise StripeRequestError("Could not start checkout. Please try again.") from e

        return {"url": session.url, "session_id": session.id}

    async def create_billing_portal_session(self, user_id: int, return_url: Optional[str] = None) -> str:
        """
        Raises:
            MissingCustomerError: If the user never went through checkout
        """
        self._require_stripe()
        user = await self._get_user(user_id)
        if not user.stripe_customer_id:
            raise MissingCustomerError("No billing account found. Choose a plan first.")

        try:
            portal_session = stripe.billing_portal.Session.create(
                customer=user.stripe_customer_id,
                return_url=return_url or f"{settings.frontend_url}/dashboard/billing",
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create billing portal session: {e}", exc_info=True)
            raise StripeRequestError("Could not open the billing portal. Please try again.") from e
        return portal_session.url

    async def cancel_subscription(self, user_id: int) -> dict:
        """Cancel at the end of the current period; the status becomes 'canceling'."""
        self._require_stripe()
        user = await self._get_user(user_id)
        if not user.stripe_customer_id:
            raise MissingCustomerError("No billing account found.")
        if not user.stripe_subscription_id:
            raise MissingSubscriptionError("There is no active subscription to cancel.")

        try:
            subscription = stripe.Subscription.modify(
                user.stripe_subscription_id,
                cancel_at_period_end=True,
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to cancel subscription: {e}", exc_info=True)
            raise StripeRequestError("Could not cancel the subscription. Please try again.") from e

        await self.user_repo.update_user(user, {"subscription_status": "canceling"})
        await self.notifications.notify(user.id, "subscription_canceled")
        return {
            "status": "canceling",
            "current_period_end": getattr(subscription, "current_period_end", None),
        }

    async def get_subscription_status(self, user_id: int) -> dict:
        user = await self._get_user(user_id)
        return {
            "plan_type": user.plan_type,
            "interval": user.plan_interval,
            "status": user.subscription_status or "none",
            "has_billing_account": bool(user.stripe_customer_id),
        }

    async def update_user_subscription(self, user: User, updates: dict) -> User:
        """Persist subscription fields reported by Stripe."""
        return await self.user_repo.update_user(user, updates)

    async def process_webhook(self, event) -> bool:
        """
        Apply a verified Stripe event to the matching user.

        Returns:
            True if the event changed local state, False if it was ignored
        """
        event_type = event["type"]
        obj = event["data"]["object"]
        logger.info(f"Processing Stripe webhook event: {event_type}")

        if event_type == "checkout.session.completed":
            metadata = obj.get("metadata") or {}
            user = None
            if metadata.get("userId"):
                user = await self.user_repo.get_user_by_id(int(metadata["userId"]))
            if not user and obj.get("customer"):
                user = await self.user_repo.get_user_by_stripe_customer_id(obj["customer"])
            if not user:
                logger.warning(f"checkout.session.completed for unknown user: {metadata}")
                return False
            await self.update_user_subscription(user, {
                "stripe_customer_id": obj.get("customer") or user.stripe_customer_id,
                "stripe_subscription_id": obj.get("subscription"),
                "plan_type": metadata.get("planType"),
                "plan_interval": metadata.get("interval"),
                "subscription_status": "active",
            })
            await self.notifications.notify(user.id, "subscription_activated")
            return True

        if event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
            user = await self.user_repo.get_user_by_stripe_customer_id(obj.get("customer"))
            if not user:
                return False
            if event_type == "customer.subscription.deleted":
                status = "canceled"
            elif obj.get("cancel_at_period_end"):
                status = "canceling"
            else:
                status = obj.get("status")
            await self.update_user_subscription(user, {
                "stripe_subscription_id": obj.get("id"),
                "subscription_status": status,
            })
            return True

        if event_type == "invoice.payment_failed":
            user = await self.user_repo.get_user_by_stripe_customer_id(obj.get("customer"))
            if not user:
                return False
            await self.update_user_subscription(user, {"subscription_status": "past_due"})
            await self.notifications.notify(user.id, "payment_failed")
            return True

        return False

    async def submit_enterprise_inquiry(self, inquiry: dict, user_id: Optional[int] = None) -> EnterpriseInquiry:
        """Record an enterprise contact request and forward it to support."""
        record = EnterpriseInquiry(user_id=user_id, **inquiry)
        self.db.add(record)
        await self.db.flush()
        await self.db.refresh(record)

        await EmailService().send_enterprise_inquiry(inquiry)
        if user_id is not None:
            await self.notifications.notify(user_id, "support_request_sent")
        logger.info(f"Enterprise inquiry {record.id} received from {inquiry.get('email')}")
        return record
