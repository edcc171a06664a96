"""
Billing Router - subscription plans, Stripe checkout, billing portal and webhook
Webhook is defined FIRST to avoid middleware conflicts
"""

import logging
from fastapi import APIRouter, Request, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
import stripe

from auth import get_current_user, get_optional_user
from config.settings import settings, PLAN_ENTERPRISE
from database import get_db
from models.billing import CheckoutRequest, PortalRequest, EnterpriseInquiryRequest
from services.billing_service import BillingService, BillingError, list_plans
from utils.responses import success_response, error_response
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

billing_router = APIRouter(prefix="/api/subscription", tags=["billing"])
support_router = APIRouter(prefix="/api/support", tags=["support"])


def _billing_error(e: BillingError) -> JSONResponse:
    return error_response(e.code, status=e.status_code, message=str(e))


# WEBHOOK ENDPOINT - MUST BE DEFINED FIRST TO AVOID MIDDLEWARE CONFLICTS
@billing_router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Handle Stripe webhook events with signature verification.

    Only verified events are processed. Always returns 200 OK to Stripe
    to prevent retries.
    """
    webhook_secret = settings.stripe_webhook_secret
    if not webhook_secret:
        logger.error("STRIPE_WEBHOOK_SECRET environment variable is not set")
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Webhook secret not configured"}
        )

    payload = await request.body()
    stripe_signature = request.headers.get("stripe-signature")
    if not stripe_signature:
        logger.error("Missing Stripe-Signature header")
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Missing signature header"}
        )

    try:
        event = stripe.Webhook.construct_event(payload, stripe_signature, webhook_secret)
    except stripe.SignatureVerificationError as e:
        logger.error(f"Stripe webhook signature verification failed: {e}")
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Invalid webhook signature"}
        )
    except ValueError as e:
        logger.error(f"Invalid webhook payload: {e}")
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Invalid payload format"}
        )

    try:
        handled = await BillingService(db).process_webhook(event)
    except Exception as e:
        logger.error(f"Webhook processing error for {event['type']}: {e}", exc_info=True)
        await db.rollback()
        return JSONResponse(
            status_code=200,
            content={"ok": False, "received": True, "error": "Processing failed"}
        )

    return JSONResponse(
        status_code=200,
        content={"ok": True, "received": True, "handled": handled, "event_type": event["type"]}
    )


@billing_router.get("/plans")
async def get_plans():
    """Plan catalogue with amounts in cents."""
    return {"plans": list_plans()}


@billing_router.post("/checkout")
async def create_checkout_session(
    request: CheckoutRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Start Stripe Checkout for a plan.

    The enterprise plan never reaches Stripe: the client is told to use the
    enterprise contact form instead.
    """
    if request.plan_type == PLAN_ENTERPRISE:
        return {"type": "enterprise", "contactUrl": "/api/support/enterprise"}

    try:
        session = await BillingService(db).create_checkout_session(
            current_user["user_id"],
            request.plan_type,
            request.interval,
            request.success_url,
            request.cancel_url,
        )
    except BillingError as e:
        return _billing_error(e)

    log_endpoint_event("/api/subscription/checkout", current_user["user_id"], details={
        "plan": request.plan_type, "interval": request.interval,
    })
    return {"url": session["url"], "sessionId": session["session_id"]}


@billing_router.post("/portal")
async def create_billing_portal_session(
    request: PortalRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        url = await BillingService(db).create_billing_portal_session(current_user["user_id"], request.return_url)
    except BillingError as e:
        return _billing_error(e)
    return {"url": url}


@billing_router.post("/cancel")
async def cancel_subscription(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    try:
        result = await BillingService(db).cancel_subscription(current_user["user_id"])
    except BillingError as e:
        return _billing_error(e)
    return success_response(result, message="Your subscription will end at the close of the current billing period.")


@billing_router.get("/status")
async def get_subscription_status(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    try:
        return await BillingService(db).get_subscription_status(current_user["user_id"])
    except BillingError as e:
        return _billing_error(e)


@support_router.post("/enterprise", status_code=201)
async def enterprise_inquiry(
    request: EnterpriseInquiryRequest,
    current_user=Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Enterprise plan contact form. Signed-in users also get a confirmation notification."""
    user_id = current_user["user_id"] if current_user else None
    record = await BillingService(db).submit_enterprise_inquiry(request.model_dump(), user_id)
    return success_response(
        {"id": record.id},
        message="Thanks! Our enterprise team will contact you shortly.",
        status=201,
    )
