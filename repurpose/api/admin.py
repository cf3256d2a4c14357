"""
Admin API routes.

- GET  /api/admin/status: Caller's tier and usage
- POST /api/admin/upgrade: Caller's tier -> pro
- POST /api/admin/downgrade: Caller's tier -> free
- POST /api/admin/reset-usage: Caller's monthly counter -> 0

Mutations require an authenticated caller and an X-Admin-Key credential.
"""
from fastapi import APIRouter, Depends

from repurpose.core.admin_auth import AdminActor, require_admin
from repurpose.core.auth import get_current_account_id
from repurpose.core.errors import NotFoundError
from repurpose.features.accounts.admin_service import admin_reset_usage, admin_set_tier
from repurpose.features.accounts.service import get_account
from repurpose.models.account import Account, Tier

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _status(account: Account) -> dict:
    return {
        "email": account.email,
        "tier": account.subscription_tier.value,
        "jobsThisMonth": account.jobs_this_month,
    }


@router.get("/status")
def admin_status(account_id: str = Depends(get_current_account_id)):
    account = get_account(account_id)
    if account is None:
        raise NotFoundError("User not found")
    return _status(account)


@router.post("/upgrade")
def admin_upgrade(
    account_id: str = Depends(get_current_account_id),
    actor: AdminActor = Depends(require_admin),
):
    account = admin_set_tier(actor.actor_id, account_id, Tier.PRO)
    return {"success": True, "message": "Upgraded to Pro", **_status(account)}


@router.post("/downgrade")
def admin_downgrade(
    account_id: str = Depends(get_current_account_id),
    actor: AdminActor = Depends(require_admin),
):
    account = admin_set_tier(actor.actor_id, account_id, Tier.FREE)
    return {"success": True, "message": "Downgraded to Free", **_status(account)}


@router.post("/reset-usage")
def admin_reset(
    account_id: str = Depends(get_current_account_id),
    actor: AdminActor = Depends(require_admin),
):
    account = admin_reset_usage(actor.actor_id, account_id)
    return {"success": True, "message": "Usage reset", **_status(account)}
