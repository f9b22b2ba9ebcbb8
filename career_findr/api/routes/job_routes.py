"""
Job Routes

POST /jobs - Create job posting (company only)
GET /jobs - List open jobs
GET /jobs/mine - Jobs posted by the current company
GET /jobs/applications/mine - My applications (student only)
PUT /jobs/applications/{application_id}/status - Update application status (owning company)
GET /jobs/{job_id} - Get job details
PUT /jobs/{job_id} - Update job (owning company)
DELETE /jobs/{job_id} - Delete job (owning company)
GET /jobs/{job_id}/match - How well my profile matches this job
POST /jobs/{job_id}/apply - Apply to job (student only)
GET /jobs/{job_id}/applicants - Applicants ranked by match score (owning company)
"""

from fastapi import APIRouter, HTTPException, Depends
from typing import List

from career_findr.core.auth import get_view_context, require_roles
from career_findr.core.impersonation import ViewContext
from career_findr.db.mongodb import get_document_store
from career_findr.schemas.schemas import (
    ApplicantMatch, ApplicationCreate, ApplicationStatusUpdate, CandidateProfile,
    JobApplication, JobCreate, JobPosting, JobUpdate, MessageResponse, UserAccount, UserRole
)
from career_findr.services.job_service import AlreadyApplied, JobClosed, JobService
from career_findr.services.matching_service import calculate_match_score, match_band

router = APIRouter(prefix="/jobs", tags=["Jobs"])

company_only = require_roles("company", "admin")
student_only = require_roles("student")


def get_job_service(store=Depends(get_document_store)) -> JobService:
    return JobService(store)


def _get_owned_job(job_id: str, company: UserAccount, service: JobService) -> JobPosting:
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if company.role != UserRole.admin.value and job.company_id != company.id:
        raise HTTPException(status_code=403, detail="Not your job posting")
    return job


@router.post("", response_model=JobPosting, status_code=201)
def create_job(
    job: JobCreate,
    company: UserAccount = Depends(company_only),
    service: JobService = Depends(get_job_service),
):
    """Create a new job posting. Only companies can create jobs."""
    return service.create_job(company, job)


@router.get("", response_model=List[JobPosting])
def list_jobs(
    user: UserAccount = Depends(require_roles()),
    service: JobService = Depends(get_job_service),
):
    return service.list_jobs()


@router.get("/mine", response_model=List[JobPosting])
def my_jobs(
    ctx: ViewContext = Depends(get_view_context),
    service: JobService = Depends(get_job_service),
):
    if ctx.active_user.role != UserRole.company.value:
        raise HTTPException(status_code=403, detail="Companies only")
    return service.list_company_jobs(ctx.active_user.id)


@router.get("/applications/mine", response_model=List[JobApplication])
def my_applications(
    ctx: ViewContext = Depends(get_view_context),
    service: JobService = Depends(get_job_service),
):
    if ctx.active_user.role != UserRole.student.value:
        raise HTTPException(status_code=403, detail="Students only")
    return service.list_student_applications(ctx.active_user.id)


@router.put("/applications/{application_id}/status", response_model=JobApplication)
def update_application_status(
    application_id: str,
    data: ApplicationStatusUpdate,
    company: UserAccount = Depends(company_only),
    service: JobService = Depends(get_job_service),
):
    """Change an application's status; the student is notified."""
    application = service.get_application(application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    if company.role != UserRole.admin.value and application.company_id != company.id:
        raise HTTPException(status_code=403, detail="Not your applicant")

    return service.update_application_status(application_id, data.status)


@router.get("/{job_id}", response_model=JobPosting)
def get_job(
    job_id: str,
    user: UserAccount = Depends(require_roles()),
    service: JobService = Depends(get_job_service),
):
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.put("/{job_id}", response_model=JobPosting)
def update_job(
    job_id: str,
    data: JobUpdate,
    company: UserAccount = Depends(company_only),
    service: JobService = Depends(get_job_service),
):
    """Update job. Only provided fields are updated."""
    _get_owned_job(job_id, company, service)
    if not data.model_dump(exclude_none=True):
        raise HTTPException(status_code=400, detail="No fields to update")
    return service.update_job(job_id, data)


@router.get("/{job_id}/match")
def my_match(
    job_id: str,
    ctx: ViewContext = Depends(get_view_context),
    service: JobService = Depends(get_job_service),
):
    """Match score of the viewer's profile against this job, computed fresh."""
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    profile = CandidateProfile(
        skills=ctx.active_user.skills,
        experience_level=ctx.active_user.experience_level,
    )
    score = calculate_match_score(job, profile)
    return {"job_id": job_id, "match_score": score, "match_band": match_band(score)}


@router.post("/{job_id}/apply", response_model=JobApplication, status_code=201)
def apply_to_job(
    job_id: str,
    data: ApplicationCreate,
    student: UserAccount = Depends(student_only),
    service: JobService = Depends(get_job_service),
):
    job = service.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    try:
        return service.apply(job, student, data)
    except JobClosed:
        raise HTTPException(status_code=400, detail="Job is no longer accepting applications")
    except AlreadyApplied:
        raise HTTPException(status_code=400, detail="Already applied to this job")


@router.get("/{job_id}/applicants", response_model=List[ApplicantMatch])
def review_applicants(
    job_id: str,
    company: UserAccount = Depends(company_only),
    service: JobService = Depends(get_job_service),
):
    """Applicants ranked by match score. Scores are recomputed on every call."""
    job = _get_owned_job(job_id, company, service)
    return service.ranked_applicants(job)


@router.delete("/{job_id}", response_model=MessageResponse)
def delete_job(
    job_id: str,
    company: UserAccount = Depends(company_only),
    service: JobService = Depends(get_job_service),
):
    """Applications already submitted are kept."""
    _get_owned_job(job_id, company, service)
    service.delete_job(job_id)
    return MessageResponse(message="Job deleted")
