"""
Account provisioning and monthly usage rollover.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import update

from repurpose.core.database import get_db_session, accounts
from repurpose.features.accounts.service import (
    get_account,
    get_or_create_account,
    next_reset_date,
    roll_over_if_due,
    set_tier,
    find_by_customer_id,
    set_billing_customer,
)
from repurpose.models.account import Tier


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_next_reset_date_is_first_of_next_month():
    assert next_reset_date(utc(2025, 3, 14, 9, 30)) == utc(2025, 4, 1)


def test_next_reset_date_does_not_skip_february():
    assert next_reset_date(utc(2025, 1, 31, 23, 59)) == utc(2025, 2, 1)


def test_next_reset_date_wraps_year():
    assert next_reset_date(utc(2025, 12, 15)) == utc(2026, 1, 1)


def test_next_reset_date_accepts_naive_as_utc():
    assert next_reset_date(datetime(2025, 6, 30, 12, 0)) == utc(2025, 7, 1)


def test_get_or_create_provisions_free_account():
    account = get_or_create_account("acct-new", "new@example.com", now=utc(2025, 5, 20))
    assert account.subscription_tier == Tier.FREE
    assert account.jobs_this_month == 0
    assert account.jobs_reset_date == utc(2025, 6, 1)
    assert account.email == "new@example.com"


def test_get_or_create_is_idempotent():
    first = get_or_create_account("acct-1", "a@example.com")
    set_tier("acct-1", Tier.PRO)
    second = get_or_create_account("acct-1", "other@example.com")
    assert second.id == first.id
    assert second.subscription_tier == Tier.PRO
    assert second.email == "a@example.com"


def _set_usage(account_id, count, reset_date):
    with get_db_session() as session:
        session.execute(
            update(accounts)
            .where(accounts.c.id == account_id)
            .values(jobs_this_month=count, jobs_reset_date=reset_date)
        )


def test_rollover_resets_when_due():
    get_or_create_account("acct-roll", now=utc(2025, 1, 10))
    _set_usage("acct-roll", 3, utc(2025, 2, 1))

    account = roll_over_if_due(get_account("acct-roll"), now=utc(2025, 2, 3))

    assert account.jobs_this_month == 0
    assert account.jobs_reset_date == utc(2025, 3, 1)
    stored = get_account("acct-roll")
    assert stored.jobs_this_month == 0
    assert stored.jobs_reset_date == utc(2025, 3, 1)


def test_rollover_is_logged_at_info(caplog):
    get_or_create_account("acct-log", now=utc(2025, 1, 10))
    _set_usage("acct-log", 3, utc(2025, 2, 1))

    with caplog.at_level(logging.INFO, logger="repurpose"):
        roll_over_if_due(get_account("acct-log"), now=utc(2025, 2, 3))

    records = [r for r in caplog.records if r.getMessage() == "account.usage_rollover"]
    assert len(records) == 1
    assert records[0].levelno == logging.INFO


def test_rollover_applies_exactly_at_boundary():
    get_or_create_account("acct-edge", now=utc(2025, 1, 10))
    _set_usage("acct-edge", 2, utc(2025, 2, 1))
    account = roll_over_if_due(get_account("acct-edge"), now=utc(2025, 2, 1))
    assert account.jobs_this_month == 0


def test_no_rollover_before_reset_date():
    get_or_create_account("acct-early", now=utc(2025, 1, 10))
    _set_usage("acct-early", 2, utc(2025, 2, 1))
    account = roll_over_if_due(get_account("acct-early"), now=utc(2025, 1, 31, 23, 59))
    assert account.jobs_this_month == 2
    assert account.jobs_reset_date == utc(2025, 2, 1)


def test_stale_snapshot_rolls_over_once():
    get_or_create_account("acct-race", now=utc(2025, 1, 10))
    _set_usage("acct-race", 3, utc(2025, 2, 1))
    stale = get_account("acct-race")

    roll_over_if_due(stale, now=utc(2025, 2, 2))
    _set_usage("acct-race", 1, utc(2025, 3, 1))  # a job was created after the rollover

    account = roll_over_if_due(stale, now=utc(2025, 2, 2))
    assert account.jobs_this_month == 1
    assert account.jobs_reset_date == utc(2025, 3, 1)


def test_billing_customer_lookup():
    get_or_create_account("acct-cus")
    assert find_by_customer_id("cus_123") is None
    set_billing_customer("acct-cus", "cus_123")
    assert find_by_customer_id("cus_123").id == "acct-cus"
