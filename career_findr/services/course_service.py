"""
Course Service - institute courses, course applications and admissions.

Students apply to courses; the owning institute accepts or rejects each
application, then offers admission to accepted students. A student may
accept at most one admission offer.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from pymongo.errors import PyMongoError

from career_findr.db.mongodb import COLLECTIONS, get_document_store
from career_findr.schemas.schemas import (
    Admission,
    AdmissionResponse,
    AdmissionResults,
    Course,
    CourseApplication,
    CourseApplicationCreate,
    CourseApplicationStatus,
    CourseApplicationSummary,
    CourseCreate,
    CourseStatus,
    CourseUpdate,
    InstituteStatsResponse,
    UserAccount,
)
from career_findr.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

MAX_APPLICATIONS_PER_INSTITUTE = 2


class CourseClosed(Exception):
    pass


class NoSeatsLeft(Exception):
    pass


class ApplicationLimitReached(Exception):
    pass


class AlreadyAppliedToCourse(Exception):
    pass


class NotPending(Exception):
    """The application has already left the pending state."""


class PendingApplications(Exception):
    pass


class AlreadyResponded(Exception):
    pass


class AdmissionAlreadyAccepted(Exception):
    pass


# (title, message) per review decision; {item} and {org} are filled in
REVIEW_MESSAGES = {
    CourseApplicationStatus.accepted.value: (
        "Application Accepted!",
        'Congratulations! Your application for "{item}" at {org} has been accepted.'
    ),
    CourseApplicationStatus.rejected.value: (
        "Application Update",
        'Your application for "{item}" at {org} was not successful. '
        "We encourage you to explore other opportunities on the platform."
    ),
}


class CourseService:

    def __init__(self, store=None):
        self.store = store if store is not None else get_document_store()
        self.courses = COLLECTIONS["courses"]
        self.applications = COLLECTIONS["course_applications"]
        self.admissions = COLLECTIONS["admissions"]
        self.notifications = NotificationService(self.store)

    # ------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------

    def create_course(self, institute: UserAccount, data: CourseCreate) -> Course:
        now = datetime.now(timezone.utc)
        doc = data.model_dump()
        doc.update({
            "institute_id": institute.id,
            "institute_name": institute.display_name,
            "status": CourseStatus.active.value,
            "created_at": now,
            "updated_at": now,
        })
        doc["id"] = self.store.insert(self.courses, doc)
        return Course.model_validate(doc)

    def get_course(self, course_id: str) -> Optional[Course]:
        doc = self.store.get(self.courses, course_id)
        return Course.model_validate(doc) if doc else None

    def search_courses(
        self,
        text: str = "",
        field: Optional[str] = None,
        level: Optional[str] = None,
        location: Optional[str] = None,
    ) -> List[Course]:
        """
        Active courses, newest first.

        `field`, `level` and `location` are exact matches; `text` is a
        case-insensitive substring of the title, description, institute
        name or field.
        """
        filters = {"status": CourseStatus.active.value}
        for key, value in (("field", field), ("level", level), ("location", location)):
            if value:
                filters[key] = value
        docs = self.store.find(self.courses, filters, order_by=(("created_at", -1),))
        courses = [Course.model_validate(doc) for doc in docs]

        needle = text.strip().lower()
        if needle:
            courses = [
                course for course in courses
                if any(needle in value.lower() for value in (
                    course.title, course.description, course.institute_name, course.field
                ))
            ]
        return courses

    def list_institute_courses(self, institute_id: str) -> List[Course]:
        docs = self.store.find(
            self.courses, {"institute_id": institute_id}, order_by=(("created_at", -1),)
        )
        return [Course.model_validate(doc) for doc in docs]

    def update_course(self, course_id: str, data: CourseUpdate) -> Optional[Course]:
        fields = data.model_dump(exclude_none=True)
        if "status" in fields:
            fields["status"] = CourseStatus(fields["status"]).value
        fields["updated_at"] = datetime.now(timezone.utc)
        if not self.store.update(self.courses, course_id, fields):
            return None
        return self.get_course(course_id)

    def delete_course(self, course_id: str) -> bool:
        """
        Soft delete: the course goes inactive so existing applications
        and admissions keep their course. Refused while applications are pending.
        """
        pending = self.store.find(self.applications, {
            "course_id": course_id, "status": CourseApplicationStatus.pending.value
        }, limit=1)
        if pending:
            raise PendingApplications(course_id)
        now = datetime.now(timezone.utc)
        return self.store.update(self.courses, course_id, {
            "status": CourseStatus.inactive.value,
            "deleted_at": now,
            "updated_at": now,
        })

    # ------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------

    def apply(
        self,
        course: Course,
        student: UserAccount,
        data: CourseApplicationCreate
    ) -> CourseApplication:
        if course.status != CourseStatus.active.value:
            raise CourseClosed(course.id)

        accepted = self.store.find(self.applications, {
            "course_id": course.id, "status": CourseApplicationStatus.accepted.value
        })
        if len(accepted) >= course.seats:
            raise NoSeatsLeft(course.id)

        at_institute = self.store.find(self.applications, {
            "student_id": student.id, "institute_id": course.institute_id
        })
        if len(at_institute) >= MAX_APPLICATIONS_PER_INSTITUTE:
            raise ApplicationLimitReached(course.institute_id)
        if any(doc["course_id"] == course.id for doc in at_institute):
            raise AlreadyAppliedToCourse(course.id)

        now = datetime.now(timezone.utc)
        doc = {
            "course_id": course.id,
            "student_id": student.id,
            "institute_id": course.institute_id,
            "student_name": student.display_name,
            "student_email": student.email,
            "course_title": course.title,
            "institute_name": course.institute_name,
            "documents": data.documents,
            "additional_info": data.additional_info,
            "status": CourseApplicationStatus.pending.value,
            "remarks": "",
            "reviewed_by": None,
            "reviewed_at": None,
            "applied_at": now,
            "updated_at": now,
        }
        doc["id"] = self.store.insert(self.applications, doc)
        return CourseApplication.model_validate(doc)

    def get_application(self, application_id: str) -> Optional[CourseApplication]:
        doc = self.store.get(self.applications, application_id)
        return CourseApplication.model_validate(doc) if doc else None

    def list_course_applications(
        self,
        course_id: str,
        status: Optional[str] = None
    ) -> CourseApplicationSummary:
        filters = {"course_id": course_id}
        if status:
            filters["status"] = status
        docs = self.store.find(self.applications, filters, order_by=(("applied_at", 1),))
        applications = [CourseApplication.model_validate(doc) for doc in docs]

        def count(state: CourseApplicationStatus) -> int:
            return sum(1 for a in applications if a.status == state.value)

        return CourseApplicationSummary(
            applications=applications,
            total=len(applications),
            pending=count(CourseApplicationStatus.pending),
            accepted=count(CourseApplicationStatus.accepted),
            rejected=count(CourseApplicationStatus.rejected),
        )

    def list_student_applications(self, student_id: str) -> List[CourseApplication]:
        docs = self.store.find(
            self.applications, {"student_id": student_id}, order_by=(("applied_at", -1),)
        )
        return [CourseApplication.model_validate(doc) for doc in docs]

    def withdraw(self, application: CourseApplication) -> CourseApplication:
        """Only pending applications can be withdrawn."""
        if application.status != CourseApplicationStatus.pending.value:
            raise NotPending(application.status)
        self.store.update(self.applications, application.id, {
            "status": CourseApplicationStatus.withdrawn.value,
            "updated_at": datetime.now(timezone.utc),
        })
        return self.get_application(application.id)

    def review(
        self,
        application: CourseApplication,
        status: CourseApplicationStatus,
        reviewer: UserAccount,
        remarks: str = ""
    ) -> CourseApplication:
        """Accept or reject a pending application, then tell the student (best effort)."""
        if application.status != CourseApplicationStatus.pending.value:
            raise NotPending(application.status)

        status = CourseApplicationStatus(status).value
        now = datetime.now(timezone.utc)
        self.store.update(self.applications, application.id, {
            "status": status,
            "remarks": remarks,
            "reviewed_by": reviewer.id,
            "reviewed_at": now,
            "updated_at": now,
        })
        reviewed = self.get_application(application.id)

        title, template = REVIEW_MESSAGES[status]
        self._notify(
            reviewed.student_id,
            type="application_status",
            title=title,
            message=template.format(
                item=reviewed.course_title or "Course",
                org=reviewed.institute_name or "Institute",
            ),
            link="/student/applications",
            application_id=reviewed.id,
            status=status,
        )
        return reviewed

    # ------------------------------------------------------------
    # Admissions
    # ------------------------------------------------------------

    def create_admissions(self, course: Course, student_ids: List[str]) -> List[Admission]:
        """
        Offer seats to the given students.

        Students without an accepted application for the course, or who
        already hold an offer for it, are skipped.
        """
        offered = []
        for student_id in dict.fromkeys(student_ids):
            accepted = self.store.find(self.applications, {
                "course_id": course.id,
                "student_id": student_id,
                "status": CourseApplicationStatus.accepted.value,
            }, limit=1)
            if not accepted:
                continue
            if self.store.find(self.admissions, {"course_id": course.id, "student_id": student_id}, limit=1):
                continue

            doc = {
                "course_id": course.id,
                "student_id": student_id,
                "institute_id": course.institute_id,
                "course_title": course.title,
                "institute_name": course.institute_name,
                "student_response": None,
                "offered_at": datetime.now(timezone.utc),
                "responded_at": None,
            }
            doc["id"] = self.store.insert(self.admissions, doc)
            admission = Admission.model_validate(doc)
            offered.append(admission)

            self._notify(
                student_id,
                type="admission_offer",
                title="Admission Offer!",
                message=f'You have received an admission offer for "{course.title}" '
                        f"at {course.institute_name or 'Institute'}. You can only accept one offer.",
                link="/student/admissions",
                admission_id=admission.id,
            )

        logger.info("Created %d admission offers", len(offered), extra={"user_id": course.institute_id})
        return offered

    def get_admission(self, admission_id: str) -> Optional[Admission]:
        doc = self.store.get(self.admissions, admission_id)
        return Admission.model_validate(doc) if doc else None

    def list_institute_admissions(self, institute_id: str) -> List[Admission]:
        docs = self.store.find(
            self.admissions, {"institute_id": institute_id}, order_by=(("offered_at", -1),)
        )
        return [Admission.model_validate(doc) for doc in docs]

    def admission_results(self, student_id: str) -> AdmissionResults:
        docs = self.store.find(self.admissions, {"student_id": student_id}, order_by=(("offered_at", -1),))
        admissions = [Admission.model_validate(doc) for doc in docs]
        return AdmissionResults(
            admissions=admissions,
            has_accepted_admission=any(
                a.student_response == AdmissionResponse.accepted.value for a in admissions
            ),
        )

    def respond(self, admission: Admission, accept: bool) -> Admission:
        """Accept or decline an offer. Each offer is answered once."""
        if admission.student_response:
            raise AlreadyResponded(admission.id)
        if accept and self.store.find(self.admissions, {
            "student_id": admission.student_id,
            "student_response": AdmissionResponse.accepted.value,
        }, limit=1):
            raise AdmissionAlreadyAccepted(admission.student_id)

        response = AdmissionResponse.accepted if accept else AdmissionResponse.declined
        self.store.update(self.admissions, admission.id, {
            "student_response": response.value,
            "responded_at": datetime.now(timezone.utc),
        })
        return self.get_admission(admission.id)

    # ------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------

    def institute_stats(self, institute_id: str) -> InstituteStatsResponse:
        courses = self.store.find(self.courses, {"institute_id": institute_id})
        applications = self.store.find(self.applications, {"institute_id": institute_id})
        admissions = self.store.find(self.admissions, {"institute_id": institute_id})

        return InstituteStatsResponse(
            total_courses=len(courses),
            active_courses=sum(1 for c in courses if c.get("status") == CourseStatus.active.value),
            total_applications=len(applications),
            pending_applications=sum(
                1 for a in applications if a.get("status") == CourseApplicationStatus.pending.value
            ),
            accepted_applications=sum(
                1 for a in applications if a.get("status") == CourseApplicationStatus.accepted.value
            ),
            total_admissions=len(admissions),
            confirmed_admissions=sum(
                1 for a in admissions if a.get("student_response") == AdmissionResponse.accepted.value
            ),
        )

    def _notify(self, user_id: str, **notification) -> None:
        try:
            self.notifications.create(user_id=user_id, **notification)
        except PyMongoError as exc:
            logger.error("Error creating course notification: %s", exc, extra={"user_id": user_id})
