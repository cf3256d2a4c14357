"""
Stripe billing provider implementation.

Implements the BillingProvider protocol with the Stripe SDK.
"""
import json
from typing import Dict, Any, Optional

import stripe

from repurpose.core.config import settings
from repurpose.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    BillingWebhookResult,
    NoActiveSubscriptionError,
)

ACCOUNT_METADATA_KEY = "supabase_user_id"


class StripeProvider:
    """Stripe implementation of BillingProvider protocol."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key (defaults to STRIPE_SECRET_KEY)
            webhook_secret: Stripe webhook secret (defaults to STRIPE_WEBHOOK_SECRET)
        """
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def ensure_customer(self, user_id: str, email: Optional[str] = None) -> str:
        try:
            customer_data: Dict[str, Any] = {"metadata": {ACCOUNT_METADATA_KEY: user_id}}
            if email:
                customer_data["email"] = email
            customer = stripe.Customer.create(**customer_data)
            return customer.id
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe customer creation failed: {e}")

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                mode="subscription",
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
            )
            return session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )
            return session.url
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe portal session creation failed: {e}")

    def cancel_at_period_end(self, customer_id: str) -> str:
        try:
            subscriptions = stripe.Subscription.list(customer=customer_id, status="active")
            if not subscriptions.data:
                raise NoActiveSubscriptionError("No active subscription found")
            subscription_id = subscriptions.data[0].id
            stripe.Subscription.modify(subscription_id, cancel_at_period_end=True)
            return subscription_id
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe subscription cancel failed: {e}")

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """Verify Stripe webhook signature and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")

        sig_header = headers.get("stripe-signature") or headers.get("Stripe-Signature")
        if not sig_header:
            raise BillingWebhookError("No signature provided")

        try:
            stripe.Webhook.construct_event(body, sig_header, self.webhook_secret)
        except ValueError:
            raise BillingWebhookError("Invalid payload")
        except stripe.SignatureVerificationError:
            raise BillingWebhookError("Invalid signature")

        # Signature is valid; work on the plain JSON payload
        return self._parse_event(json.loads(body))

    def _parse_event(self, event: Dict[str, Any]) -> BillingWebhookResult:
        """Parse Stripe event into normalized BillingWebhookResult."""
        event_type = event["type"]
        data = event.get("data", {}).get("object", {}) or {}
        metadata = data.get("metadata") or {}

        subscription_id = None
        if event_type.startswith("customer.subscription"):
            subscription_id = data.get("id")
        elif event_type == "checkout.session.completed":
            subscription_id = data.get("subscription")

        return BillingWebhookResult(
            event_id=event["id"],
            event_type=event_type,
            account_id=metadata.get(ACCOUNT_METADATA_KEY),
            customer_id=data.get("customer"),
            subscription_id=subscription_id,
            status=data.get("status"),
            metadata=metadata,
        )
