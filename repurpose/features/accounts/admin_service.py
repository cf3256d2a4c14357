"""
Admin account operations.

Each operation changes one account and writes an audit row naming the
admin credential that performed it.
"""
from repurpose.core.logging import log_event
from repurpose.features.accounts.service import get_account, reset_usage, set_tier
from repurpose.features.audit.service import record_admin_audit
from repurpose.core.errors import NotFoundError
from repurpose.models.account import Account, Tier


def _previous(account_id: str) -> Account:
    account = get_account(account_id)
    if account is None:
        raise NotFoundError("User not found")
    return account


def admin_set_tier(actor_id: str, account_id: str, tier: Tier) -> Account:
    before = _previous(account_id)
    action = "upgrade" if tier == Tier.PRO else "downgrade"
    account = set_tier(account_id, tier)
    record_admin_audit(
        actor=actor_id,
        action=action,
        target_user_id=account_id,
        payload={"from": before.subscription_tier.value, "to": account.subscription_tier.value},
    )
    log_event("info", f"admin.{action}", account_id=account_id, extra={"actor": actor_id})
    return account


def admin_reset_usage(actor_id: str, account_id: str) -> Account:
    before = _previous(account_id)
    account = reset_usage(account_id)
    record_admin_audit(
        actor=actor_id,
        action="reset_usage",
        target_user_id=account_id,
        payload={"previous_count": before.jobs_this_month},
    )
    log_event("info", "admin.reset_usage", account_id=account_id, extra={"actor": actor_id})
    return account
