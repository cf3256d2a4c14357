"""
Billing provider protocol.

Defines the interface for billing providers (Stripe, etc.) so the
subscription logic does not depend on a specific SDK.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass, field


@dataclass
class BillingWebhookResult:
    """Verified, normalized webhook event."""
    event_id: str
    event_type: str
    account_id: Optional[str] = None  # from checkout metadata (supabase_user_id)
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    status: Optional[str] = None  # active, canceled, unpaid, ...
    metadata: Dict[str, Any] = field(default_factory=dict)


class BillingProvider(Protocol):
    """
    Protocol for billing providers.

    Implementations must handle:
    - Customer creation
    - Checkout and portal session creation
    - Cancelling at period end
    - Webhook signature verification and parsing
    """

    def ensure_customer(self, user_id: str, email: Optional[str] = None) -> str:
        """Create a billing customer for the account and return its id."""
        ...

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """Create a subscription checkout session and return its URL."""
        ...

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        """Create a self-service portal session and return its URL."""
        ...

    def cancel_at_period_end(self, customer_id: str) -> str:
        """
        Schedule cancellation of the customer's first active subscription.

        Returns:
            The subscription id

        Raises:
            NoActiveSubscriptionError: Customer has no active subscription
        """
        ...

    def handle_webhook(self, headers: Dict[str, str], body: bytes) -> BillingWebhookResult:
        """
        Verify webhook signature and parse event.

        Raises:
            BillingWebhookError: If signature missing/invalid or payload malformed
        """
        ...


class BillingProviderError(Exception):
    """Base exception for billing provider errors."""
    pass


class BillingWebhookError(BillingProviderError):
    """Exception for webhook verification errors."""
    pass


class NoActiveSubscriptionError(BillingProviderError):
    pass
