"""
Job orchestration service.

create_job runs the whole request synchronously:
validate -> load account -> rollover -> quota -> generate per format ->
persist job and usage increment in one transaction.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import select, insert
from sqlalchemy.exc import SQLAlchemyError

from repurpose.core.database import get_db_session, jobs
from repurpose.core.errors import (
    InputTooShortError,
    NoFormatsSelectedError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    StorageError,
    AIServiceUnavailableError,
)
from repurpose.core.logging import log_event
from repurpose.features.accounts.service import (
    as_utc,
    consume_job_slot,
    get_account,
    has_quota,
    roll_over_if_due,
)
from repurpose.features.formats.templates import DEFAULT_VOICE, render_prompt, restricted_formats
from repurpose.features.generation.providers import (
    AllProvidersFailedError,
    ProviderChain,
    build_provider_chain,
    classify_failure,
    placeholder_for,
)
from repurpose.models.account import Account
from repurpose.models.job import InputMethod, Job

MIN_INPUT_LENGTH = 100
RECENT_JOBS_LIMIT = 5
QUOTA_MESSAGE = "You've reached your free limit. Please upgrade to Pro for unlimited jobs."


@dataclass(frozen=True)
class JobResult:
    job_id: str
    outputs: Dict[str, str]
    provider: Optional[str]


@dataclass(frozen=True)
class Dashboard:
    account: Account
    recent_jobs: List[Job]

    @property
    def remaining_free_jobs(self) -> Optional[int]:
        return self.account.remaining_free_jobs()


def _dedupe(formats: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(formats))


def _validate_request(input_text: Optional[str], selected_formats: Optional[Sequence[str]]) -> List[str]:
    if not input_text or len(input_text) < MIN_INPUT_LENGTH:
        raise InputTooShortError(f"Content must be at least {MIN_INPUT_LENGTH} characters")
    if not selected_formats:
        raise NoFormatsSelectedError("Please select at least one output format")
    return _dedupe(selected_formats)


def _generate_outputs(formats: List[str], input_text: str, voice: str, chain: ProviderChain, account_id: str):
    outputs: Dict[str, str] = {}
    provider: Optional[str] = None
    for format_key in formats:
        prompt = render_prompt(format_key, input_text, voice)
        try:
            result = chain.generate(prompt)
        except AllProvidersFailedError as e:
            kind = classify_failure(str(e))
            log_event(
                "error",
                "generation.format_failed",
                account_id=account_id,
                error_code=kind.value,
                extra={"format": format_key, "error": str(e)},
            )
            outputs[format_key] = placeholder_for(kind, format_key)
            continue
        outputs[format_key] = result.content
        provider = result.provider
    return outputs, provider


def create_job(
    account_id: str,
    input_text: Optional[str],
    selected_formats: Optional[Sequence[str]],
    brand_voice: str = DEFAULT_VOICE,
    input_method: InputMethod = InputMethod.PASTE,
    *,
    chain: Optional[ProviderChain] = None,
    now: Optional[datetime] = None,
) -> JobResult:
    """
    Create a repurposing job for an authenticated account.

    Raises:
        InputTooShortError, NoFormatsSelectedError: invalid request (400)
        NotFoundError: account missing (404)
        QuotaExceededError: free tier at its monthly limit (403)
        AIServiceUnavailableError: no provider configured (500)
        StorageError: job could not be persisted (500)
    """
    formats = _validate_request(input_text, selected_formats)
    voice = brand_voice or DEFAULT_VOICE
    now = as_utc(now or datetime.now(timezone.utc))

    account = get_account(account_id)
    if account is None:
        raise NotFoundError("User not found")

    account = roll_over_if_due(account, now)

    if not has_quota(account):
        log_event("info", "jobs.quota_exceeded", account_id=account_id, error_code="quota_exceeded")
        raise QuotaExceededError(QUOTA_MESSAGE)

    blocked = restricted_formats(account.subscription_tier.value, formats)
    if blocked:
        raise PermissionError(f"These formats require Pro: {', '.join(blocked)}")

    chain = chain or build_provider_chain()
    if not chain.configured:
        raise AIServiceUnavailableError("No AI service configured")

    outputs, provider = _generate_outputs(formats, input_text, voice, chain, account_id)

    job_id = str(uuid4())
    try:
        with get_db_session() as session:
            session.execute(
                insert(jobs).values(
                    id=job_id,
                    user_id=account_id,
                    input_text=input_text,
                    input_method=InputMethod(input_method).value,
                    brand_voice=voice,
                    selected_formats=formats,
                    outputs=outputs,
                    provider=provider,
                    created_at=now,
                )
            )
            if not consume_job_slot(session, account_id, account.jobs_reset_date):
                raise QuotaExceededError(QUOTA_MESSAGE)
    except QuotaExceededError:
        log_event("info", "jobs.quota_race_lost", account_id=account_id, error_code="quota_exceeded")
        raise
    except SQLAlchemyError as e:
        log_event("error", "jobs.save_failed", account_id=account_id, error_code="storage_error", extra={"error": e})
        raise StorageError("Failed to save job") from e

    log_event(
        "info",
        "jobs.created",
        account_id=account_id,
        job_id=job_id,
        extra={"formats": ",".join(formats), "provider": provider},
    )
    return JobResult(job_id=job_id, outputs=outputs, provider=provider)


def _row_to_job(row) -> Job:
    return Job(
        id=row.id,
        user_id=row.user_id,
        input_text=row.input_text,
        input_method=InputMethod(row.input_method),
        brand_voice=row.brand_voice,
        selected_formats=list(row.selected_formats or []),
        outputs=dict(row.outputs or {}),
        provider=row.provider,
        created_at=as_utc(row.created_at),
    )


def get_job(job_id: str, user_id: str) -> Job:
    """Fetch a job owned by `user_id`; other owners' jobs read as missing."""
    with get_db_session() as session:
        row = session.execute(
            select(jobs).where(jobs.c.id == job_id).where(jobs.c.user_id == user_id)
        ).first()
    if not row:
        raise NotFoundError("Job not found")
    return _row_to_job(row)


def list_recent_jobs(user_id: str, limit: int = RECENT_JOBS_LIMIT) -> List[Job]:
    with get_db_session() as session:
        rows = session.execute(
            select(jobs)
            .where(jobs.c.user_id == user_id)
            .order_by(jobs.c.created_at.desc())
            .limit(limit)
        ).fetchall()
    return [_row_to_job(r) for r in rows]


def get_dashboard(user_id: str, now: Optional[datetime] = None) -> Dashboard:
    """Account (with rollover applied) and the most recent jobs."""
    account = get_account(user_id)
    if account is None:
        raise NotFoundError("User not found")
    account = roll_over_if_due(account, now)
    return Dashboard(account=account, recent_jobs=list_recent_jobs(user_id))
