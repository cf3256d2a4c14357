"""
Account domain service.
- get_or_create_account(account_id, email)
- get_account(account_id)
- roll_over_if_due(account, now): monthly usage reset
- consume_job_slot(session, account_id): quota-checked increment
- set_tier / reset_usage / billing customer lookups
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, insert, update, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from repurpose.core.database import get_db_session, accounts
from repurpose.core.errors import NotFoundError
from repurpose.core.logging import log_event
from repurpose.models.account import Account, Tier, FREE_TIER_LIMIT


def as_utc(value: datetime) -> datetime:
    """Normalize a stored timestamp to tz-aware UTC (SQLite returns naive values)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def next_reset_date(now: datetime) -> datetime:
    """First instant (UTC) of the month after `now`."""
    now = as_utc(now)
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email or "",
        subscription_tier=Tier(row.subscription_tier),
        jobs_this_month=row.jobs_this_month,
        jobs_reset_date=as_utc(row.jobs_reset_date),
        stripe_customer_id=row.stripe_customer_id,
        created_at=as_utc(row.created_at) if row.created_at else None,
    )


def get_account(account_id: str) -> Optional[Account]:
    with get_db_session() as session:
        row = session.execute(select(accounts).where(accounts.c.id == account_id)).first()
        if not row:
            return None
        return _row_to_account(row)


def get_or_create_account(account_id: str, email: str = "", now: Optional[datetime] = None) -> Account:
    """Return the account, provisioning a free one on first sight."""
    existing = get_account(account_id)
    if existing:
        return existing

    now = as_utc(now or datetime.now(timezone.utc))
    try:
        with get_db_session() as session:
            session.execute(
                insert(accounts).values(
                    id=account_id,
                    email=email or "",
                    subscription_tier=Tier.FREE.value,
                    jobs_this_month=0,
                    jobs_reset_date=next_reset_date(now),
                    created_at=now,
                )
            )
    except IntegrityError:
        # Provisioned by a concurrent request
        pass
    else:
        log_event("info", "account.provisioned", account_id=account_id)

    account = get_account(account_id)
    if account is None:
        raise NotFoundError("User not found")
    return account


def roll_over_if_due(account: Account, now: Optional[datetime] = None) -> Account:
    """
    Reset the monthly counter when the reset date has passed.

    The update only applies while the stored reset date is still due, so
    concurrent callers roll over at most once per cycle.
    """
    now = as_utc(now or datetime.now(timezone.utc))
    if now < account.jobs_reset_date:
        return account

    new_reset = next_reset_date(now)
    with get_db_session() as session:
        result = session.execute(
            update(accounts)
            .where(accounts.c.id == account.id)
            .where(accounts.c.jobs_reset_date <= now)
            .values(jobs_this_month=0, jobs_reset_date=new_reset)
        )
        applied = result.rowcount == 1

    if applied:
        log_event(
            "info",
            "account.usage_rollover",
            account_id=account.id,
            extra={"previous_count": account.jobs_this_month, "next_reset": new_reset.isoformat()},
        )
        return account.model_copy(update={"jobs_this_month": 0, "jobs_reset_date": new_reset})

    refreshed = get_account(account.id)
    if refreshed is None:
        raise NotFoundError("User not found")
    return refreshed


def has_quota(account: Account) -> bool:
    return account.is_pro or account.jobs_this_month < FREE_TIER_LIMIT


def consume_job_slot(session: Session, account_id: str, reset_date: Optional[datetime] = None) -> bool:
    """
    Increment the usage counter inside the caller's transaction.

    With `reset_date` the increment only applies to that usage cycle. If the
    account rolled over in the meantime the slot is taken from the new cycle
    instead.

    Returns False when no slot is left (free tier at the limit), in which
    case nothing was changed.

    Raises:
        NotFoundError: The account no longer exists
    """
    stmt = (
        update(accounts)
        .where(accounts.c.id == account_id)
        .where(
            or_(
                accounts.c.subscription_tier == Tier.PRO.value,
                accounts.c.jobs_this_month < FREE_TIER_LIMIT,
            )
        )
        .values(jobs_this_month=accounts.c.jobs_this_month + 1)
    )
    if reset_date is not None:
        stmt = stmt.where(accounts.c.jobs_reset_date == reset_date)

    if session.execute(stmt).rowcount == 1:
        return True

    row = session.execute(
        select(accounts.c.jobs_reset_date).where(accounts.c.id == account_id)
    ).first()
    if row is None:
        raise NotFoundError("User not found")
    if reset_date is not None and as_utc(row.jobs_reset_date) != as_utc(reset_date):
        return consume_job_slot(session, account_id)
    return False


def _update_account(account_id: str, **values) -> Account:
    with get_db_session() as session:
        result = session.execute(
            update(accounts).where(accounts.c.id == account_id).values(**values)
        )
        if result.rowcount == 0:
            raise NotFoundError("User not found")
    account = get_account(account_id)
    if account is None:
        raise NotFoundError("User not found")
    return account


def set_tier(account_id: str, tier: Tier) -> Account:
    account = _update_account(account_id, subscription_tier=Tier(tier).value)
    log_event("info", "account.tier_changed", account_id=account_id, extra={"tier": account.subscription_tier.value})
    return account


def reset_usage(account_id: str) -> Account:
    return _update_account(account_id, jobs_this_month=0)


def set_billing_customer(account_id: str, customer_id: str) -> Account:
    return _update_account(account_id, stripe_customer_id=customer_id)


def find_by_customer_id(customer_id: str) -> Optional[Account]:
    if not customer_id:
        return None
    with get_db_session() as session:
        row = session.execute(
            select(accounts).where(accounts.c.stripe_customer_id == customer_id)
        ).first()
        if not row:
            return None
        return _row_to_account(row)
