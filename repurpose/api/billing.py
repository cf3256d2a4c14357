"""
Subscription API routes.

- POST /api/subscription/checkout: Create checkout session
- POST /api/subscription/portal: Create portal session
- POST /api/subscription/cancel: Cancel at period end
- POST /api/subscription/webhook: Handle Stripe webhooks
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from repurpose.core.auth import Identity, get_current_identity, get_current_account_id
from repurpose.core.errors import UpstreamError, ValidationError
from repurpose.features.billing.provider import BillingProviderError, BillingWebhookError
from repurpose.features.billing.service import (
    cancel_subscription,
    process_webhook_event,
    start_checkout,
    start_portal,
)

router = APIRouter(prefix="/api/subscription", tags=["billing"])


class CheckoutRequest(BaseModel):
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class UrlResponse(BaseModel):
    url: str


@router.post("/checkout", response_model=UrlResponse)
def create_checkout(body: Optional[CheckoutRequest] = None, identity: Identity = Depends(get_current_identity)):
    """
    Create a Stripe checkout session for the paid tier.

    Errors:
        503: Billing disabled (STRIPE_SECRET_KEY or STRIPE_PRICE_ID not set)
        502: Stripe API error
    """
    body = body or CheckoutRequest()
    try:
        url = start_checkout(
            identity.account_id,
            email=identity.email,
            success_url=body.success_url,
            cancel_url=body.cancel_url,
        )
    except BillingProviderError as e:
        raise UpstreamError(str(e), code="billing_provider_error")
    return {"url": url}


@router.post("/portal", response_model=UrlResponse)
def create_portal(account_id: str = Depends(get_current_account_id)):
    """
    Create a Stripe billing portal session.

    Errors:
        400: No subscription found (never checked out)
        503: Billing disabled
    """
    try:
        url = start_portal(account_id)
    except BillingProviderError as e:
        raise UpstreamError(str(e), code="billing_provider_error")
    return {"url": url}


@router.post("/cancel")
def cancel(account_id: str = Depends(get_current_account_id)):
    try:
        cancel_subscription(account_id)
    except BillingProviderError as e:
        raise UpstreamError(str(e), code="billing_provider_error")
    return {"success": True}


@router.post("/webhook")
async def handle_webhook(request: Request):
    """
    Handle Stripe webhook events.

    The raw body is required for signature verification. Events are
    deduplicated by Stripe event id.

    Errors:
        400: Missing or invalid signature
        500: Event could not be applied
        503: Billing disabled
    """
    body = await request.body()
    headers = dict(request.headers)

    try:
        process_webhook_event(headers, body)
    except BillingWebhookError as e:
        raise ValidationError(str(e), code="invalid_webhook")
    return {"received": True}
