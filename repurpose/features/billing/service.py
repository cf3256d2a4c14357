"""
Billing service orchestrator.

Coordinates:
- Customer management (customer id stored on the account)
- Checkout, portal and cancellation
- Webhook processing with event-id idempotency
- Tier synchronization

All Stripe-specific code is in stripe_provider.py.
"""
import hashlib
from datetime import datetime, timezone
from typing import Optional, Dict

from sqlalchemy import select, insert, update
from sqlalchemy.exc import IntegrityError

from repurpose.core.config import settings
from repurpose.core.database import get_db_session, billing_events
from repurpose.core.errors import AppError, NotFoundError, ServiceUnavailableError, ValidationError
from repurpose.core.logging import log_event
from repurpose.features.accounts.service import (
    find_by_customer_id,
    get_account,
    set_billing_customer,
    set_tier,
)
from repurpose.features.billing.provider import (
    BillingProvider,
    BillingWebhookResult,
    NoActiveSubscriptionError,
)
from repurpose.features.billing.stripe_provider import StripeProvider, ACCOUNT_METADATA_KEY
from repurpose.models.account import Tier


class WebhookProcessingError(AppError):
    code = "webhook_processing_failed"
    status_code = 500


def billing_enabled() -> bool:
    """Check if billing is enabled (Stripe configured)."""
    return bool(settings.STRIPE_SECRET_KEY)


def get_provider() -> BillingProvider:
    """Billing provider, or 503 billing_disabled when Stripe is not configured."""
    if not billing_enabled():
        raise ServiceUnavailableError("Billing is not enabled", code="billing_disabled")
    return StripeProvider()


def _require_customer(user_id: str) -> str:
    account = get_account(user_id)
    if account is None:
        raise NotFoundError("User not found")
    if not account.stripe_customer_id:
        raise ValidationError("No subscription found")
    return account.stripe_customer_id


def ensure_customer_for_user(user_id: str, email: Optional[str] = None) -> str:
    """Return the account's Stripe customer id, creating the customer on first use."""
    provider = get_provider()
    account = get_account(user_id)
    if account is None:
        raise NotFoundError("User not found")
    if account.stripe_customer_id:
        return account.stripe_customer_id

    customer_id = provider.ensure_customer(user_id, email or account.email or None)
    set_billing_customer(user_id, customer_id)
    return customer_id


def start_checkout(
    user_id: str,
    email: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> str:
    """
    Start a checkout session for the paid tier.

    Returns:
        Checkout URL

    Raises:
        ServiceUnavailableError: billing or price not configured
        BillingProviderError: If checkout creation fails
    """
    provider = get_provider()
    price_id = settings.STRIPE_PRICE_ID
    if not price_id:
        raise ServiceUnavailableError("No Stripe price configured", code="billing_disabled")

    customer_id = ensure_customer_for_user(user_id, email)
    return provider.create_checkout_session(
        customer_id=customer_id,
        price_id=price_id,
        success_url=success_url or f"{settings.APP_URL}/dashboard?upgraded=true",
        cancel_url=cancel_url or f"{settings.APP_URL}/account",
        metadata={ACCOUNT_METADATA_KEY: user_id},
    )


def start_portal(user_id: str, return_url: Optional[str] = None) -> str:
    """Start billing portal session for customer self-service."""
    provider = get_provider()
    customer_id = _require_customer(user_id)
    return provider.create_portal_session(
        customer_id=customer_id,
        return_url=return_url or f"{settings.APP_URL}/account",
    )


def cancel_subscription(user_id: str) -> str:
    """Schedule the active subscription to end at period end; returns its id."""
    provider = get_provider()
    customer_id = _require_customer(user_id)
    try:
        subscription_id = provider.cancel_at_period_end(customer_id)
    except NoActiveSubscriptionError:
        raise ValidationError("No active subscription found")
    log_event("info", "billing.cancel_scheduled", account_id=user_id, extra={"subscription_id": subscription_id})
    return subscription_id


def apply_webhook_event(result: BillingWebhookResult) -> Optional[str]:
    """
    Apply a verified event to account state.

    Returns:
        The account id that changed or was looked up, if any
    """
    event_type = result.event_type

    if event_type == "checkout.session.completed":
        if not result.account_id:
            log_event("warning", "billing.checkout_without_account", event_type=event_type)
            return None
        if result.customer_id:
            account = get_account(result.account_id)
            if account is not None and not account.stripe_customer_id:
                set_billing_customer(result.account_id, result.customer_id)
        set_tier(result.account_id, Tier.PRO)
        log_event("info", "billing.upgraded", account_id=result.account_id, event_type=event_type)
        return result.account_id

    if event_type in ("customer.subscription.updated", "customer.subscription.deleted", "invoice.payment_failed"):
        account = find_by_customer_id(result.customer_id)
        if account is None:
            log_event("warning", "billing.unknown_customer", event_type=event_type)
            return None

        if event_type == "customer.subscription.updated":
            if result.status == "active":
                set_tier(account.id, Tier.PRO)
            elif result.status in ("canceled", "unpaid"):
                set_tier(account.id, Tier.FREE)
        elif event_type == "customer.subscription.deleted":
            set_tier(account.id, Tier.FREE)
            log_event("info", "billing.subscription_ended", account_id=account.id, event_type=event_type)
        else:
            log_event(
                "warning",
                "billing.payment_failed",
                account_id=account.id,
                event_type=event_type,
                extra={"email": account.email},
            )
        return account.id

    log_event("info", "billing.unhandled_event", event_type=event_type)
    return None


def process_webhook_event(headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
    """
    Process billing webhook event (idempotent).

    1. Verify signature
    2. Check idempotency (skip if already processed, retry if an earlier delivery failed)
    3. Apply state changes
    4. Mark as processed, or record the error

    Raises:
        BillingWebhookError: If signature missing/invalid
        WebhookProcessingError: If applying the event fails
    """
    provider = get_provider()
    result = provider.handle_webhook(headers, body)

    payload_hash = hashlib.sha256(body).hexdigest()

    try:
        with get_db_session() as session:
            existing = session.execute(
                select(billing_events.c.id, billing_events.c.processed).where(
                    billing_events.c.stripe_event_id == result.event_id
                )
            ).fetchone()
            if existing and existing.processed:
                log_event("info", "billing.duplicate_event", event_type=result.event_type, extra={"event_id": result.event_id})
                return result

            if existing:
                # Earlier delivery failed to apply; retry it
                log_event("info", "billing.event_retry", event_type=result.event_type, extra={"event_id": result.event_id})
            else:
                session.execute(
                    insert(billing_events).values(
                        stripe_event_id=result.event_id,
                        event_type=result.event_type,
                        payload_hash=payload_hash,
                        processed=False,
                    )
                )
    except IntegrityError:
        # Another delivery of the same event won the insert
        return result

    try:
        apply_webhook_event(result)
    except Exception as e:
        with get_db_session() as session:
            session.execute(
                update(billing_events)
                .where(billing_events.c.stripe_event_id == result.event_id)
                .values(error=str(e))
            )
        log_event("error", "billing.webhook_failed", event_type=result.event_type, error_code="webhook_processing_failed", extra={"error": e})
        raise WebhookProcessingError("Webhook processing failed") from e

    with get_db_session() as session:
        session.execute(
            update(billing_events)
            .where(billing_events.c.stripe_event_id == result.event_id)
            .values(processed=True, processed_at=datetime.now(timezone.utc), error=None)
        )

    return result
