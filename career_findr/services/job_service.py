"""
Job Service - job postings, applications and applicant review.

Applications snapshot the student's skills and experience level when they
are submitted; applicant review scores those snapshots against the job's
current requirements on every request.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pymongo.errors import PyMongoError

from career_findr.db.mongodb import COLLECTIONS, get_document_store
from career_findr.schemas.schemas import (
    ApplicantMatch,
    ApplicationCreate,
    ApplicationStatus,
    JobApplication,
    JobCreate,
    JobPosting,
    JobStatus,
    JobUpdate,
    UserAccount,
)
from career_findr.services.matching_service import match_band, rank_applicants
from career_findr.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class AlreadyApplied(Exception):
    pass


class JobClosed(Exception):
    pass


# (title, message) per status; {item} and {org} are filled in
STATUS_MESSAGES = {
    ApplicationStatus.accepted.value: (
        "Application Accepted!",
        'Congratulations! Your application for "{item}" at {org} has been accepted.'
    ),
    ApplicationStatus.rejected.value: (
        "Application Update",
        'Your application for "{item}" at {org} was not successful. Don\'t give up - keep applying!'
    ),
    ApplicationStatus.under_review.value: (
        "Application Under Review",
        'Your application for "{item}" at {org} is now being reviewed.'
    ),
    ApplicationStatus.interview.value: (
        "Interview Scheduled!",
        'Great news! You\'ve been selected for an interview for "{item}" at {org}.'
    ),
    ApplicationStatus.shortlisted.value: (
        "You've Been Shortlisted!",
        'Exciting news! You\'ve been shortlisted for "{item}" at {org}.'
    ),
}


def status_notification_text(application: JobApplication, status: str):
    item = application.job_title or "Job"
    org = application.company_name or "Company"
    title, template = STATUS_MESSAGES.get(status, (
        "Application Status Update",
        'Your application for "{item}" at {org} status has been updated to: ' + status + "."
    ))
    return title, template.format(item=item, org=org)


class JobService:

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self.jobs = COLLECTIONS["jobs"]
        self.applications = COLLECTIONS["applications"]
        self.notifications = NotificationService(self.store)

    # ------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------

    def create_job(self, company: UserAccount, data: JobCreate) -> JobPosting:
        now = datetime.now(timezone.utc)
        doc = {
            "company_id": company.id,
            "company_name": company.display_name,
            "title": data.title,
            "description": data.description,
            "location": data.location,
            "skills": data.skills,
            "experience_level": data.experience_level.value if data.experience_level else None,
            "status": JobStatus.open.value,
            "created_at": now,
            "updated_at": now,
        }
        doc["id"] = self.store.insert(self.jobs, doc)
        return JobPosting.model_validate(doc)

    def get_job(self, job_id: str) -> Optional[JobPosting]:
        doc = self.store.get(self.jobs, job_id)
        return JobPosting.model_validate(doc) if doc else None

    def list_jobs(self, status: Optional[str] = JobStatus.open.value) -> List[JobPosting]:
        filters = {"status": status} if status else {}
        docs = self.store.find(self.jobs, filters, order_by=(("created_at", -1),))
        return [JobPosting.model_validate(doc) for doc in docs]

    def list_company_jobs(self, company_id: str) -> List[JobPosting]:
        docs = self.store.find(self.jobs, {"company_id": company_id}, order_by=(("created_at", -1),))
        return [JobPosting.model_validate(doc) for doc in docs]

    def update_job(self, job_id: str, data: JobUpdate) -> Optional[JobPosting]:
        fields = data.model_dump(exclude_none=True, mode="json")
        fields["updated_at"] = datetime.now(timezone.utc)
        if not self.store.update(self.jobs, job_id, fields):
            return None
        return self.get_job(job_id)

    def delete_job(self, job_id: str) -> bool:
        return self.store.delete(self.jobs, job_id)

    # ------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------

    def apply(self, job: JobPosting, student: UserAccount, data: ApplicationCreate) -> JobApplication:
        if job.status != JobStatus.open.value:
            raise JobClosed(job.id)
        if self.store.find(self.applications, {"job_id": job.id, "student_id": student.id}, limit=1):
            raise AlreadyApplied(job.id)

        now = datetime.now(timezone.utc)
        doc = {
            "job_id": job.id,
            "student_id": student.id,
            "company_id": job.company_id,
            "student_name": student.display_name,
            "student_email": student.email,
            "job_title": job.title,
            "company_name": job.company_name,
            "skills": student.skills,
            "experience_level": student.experience_level,
            "cover_letter": data.cover_letter,
            "status": ApplicationStatus.pending.value,
            "applied_at": now,
            "updated_at": now,
        }
        doc["id"] = self.store.insert(self.applications, doc)
        return JobApplication.model_validate(doc)

    def get_application(self, application_id: str) -> Optional[JobApplication]:
        doc = self.store.get(self.applications, application_id)
        return JobApplication.model_validate(doc) if doc else None

    def list_job_applications(self, job_id: str) -> List[JobApplication]:
        docs = self.store.find(self.applications, {"job_id": job_id}, order_by=(("applied_at", 1),))
        return [JobApplication.model_validate(doc) for doc in docs]

    def list_student_applications(self, student_id: str) -> List[JobApplication]:
        docs = self.store.find(
            self.applications, {"student_id": student_id}, order_by=(("applied_at", -1),)
        )
        return [JobApplication.model_validate(doc) for doc in docs]

    def ranked_applicants(self, job: JobPosting) -> List[ApplicantMatch]:
        """Applicants for `job`, best match first. Scores are never stored."""
        return [
            ApplicantMatch(application=application, match_score=score, match_band=match_band(score))
            for application, score in rank_applicants(job, self.list_job_applications(job.id))
        ]

    def update_application_status(
        self,
        application_id: str,
        status: ApplicationStatus
    ) -> Optional[JobApplication]:
        """Set the status, then tell the student (best effort)."""
        status = ApplicationStatus(status).value
        updated = self.store.update(self.applications, application_id, {
            "status": status,
            "updated_at": datetime.now(timezone.utc),
        })
        if not updated:
            return None

        application = self.get_application(application_id)
        self._notify_status_change(application, status)
        return application

    def _notify_status_change(self, application: JobApplication, status: str) -> None:
        title, message = status_notification_text(application, status)
        try:
            self.notifications.create(
                user_id=application.student_id,
                type="application_status",
                title=title,
                message=message,
                application_id=application.id,
                status=status,
            )
        except PyMongoError as exc:
            logger.error(
                "Error creating application status notification: %s", exc,
                extra={"user_id": application.student_id}
            )
