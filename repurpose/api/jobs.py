"""
Jobs API routes.

- POST /api/jobs/create: Repurpose content into the selected formats
- GET  /api/jobs/{job_id}: Read one of the caller's jobs
- GET  /api/jobs: The caller's most recent jobs
- GET  /api/dashboard: Account usage plus recent jobs
- GET  /api/formats: Format catalogue
"""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from repurpose.core.auth import get_current_account_id
from repurpose.features.formats.templates import DEFAULT_VOICE, VOICES, list_formats
from repurpose.features.jobs.service import create_job, get_job, get_dashboard, list_recent_jobs
from repurpose.models.job import InputMethod, Job

router = APIRouter(prefix="/api", tags=["jobs"])


class CreateJobRequest(BaseModel):
    # Optional so missing fields surface the domain validation messages
    input_text: Optional[str] = None
    selected_formats: Optional[List[str]] = None
    brand_voice: str = DEFAULT_VOICE
    input_method: InputMethod = InputMethod.PASTE


class CreateJobResponse(BaseModel):
    job_id: str
    outputs: Dict[str, str]
    provider: Optional[str] = None


def _job_payload(job: Job) -> dict:
    return job.model_dump(mode="json")


@router.post("/jobs/create", response_model=CreateJobResponse)
def create_job_route(body: CreateJobRequest, account_id: str = Depends(get_current_account_id)):
    result = create_job(
        account_id,
        body.input_text,
        body.selected_formats,
        brand_voice=body.brand_voice,
        input_method=body.input_method,
    )
    return CreateJobResponse(job_id=result.job_id, outputs=result.outputs, provider=result.provider)


@router.get("/jobs")
def list_jobs_route(account_id: str = Depends(get_current_account_id)):
    return {"jobs": [_job_payload(j) for j in list_recent_jobs(account_id)]}


@router.get("/jobs/{job_id}")
def get_job_route(job_id: str, account_id: str = Depends(get_current_account_id)):
    return _job_payload(get_job(job_id, account_id))


@router.get("/dashboard")
def dashboard_route(account_id: str = Depends(get_current_account_id)):
    dashboard = get_dashboard(account_id)
    return {
        "user": dashboard.account.model_dump(mode="json"),
        "jobs": [_job_payload(j) for j in dashboard.recent_jobs],
        "remaining_free_jobs": dashboard.remaining_free_jobs,
    }


@router.get("/formats")
def formats_route():
    return {
        "formats": [
            {"key": f.key, "label": f.label, "description": f.description}
            for f in list_formats()
        ],
        "voices": VOICES,
        "default_voice": DEFAULT_VOICE,
    }
