"""
Course Routes

POST /courses - Create course (institute only)
GET /courses - Search active courses (?q=&field=&level=&location=)
GET /courses/mine - Courses offered by the current institute
GET /courses/stats - Course, application and admission counts (institute only)
GET /courses/applications/mine - My course applications (student only)
PUT /courses/applications/{application_id}/review - Accept or reject (owning institute)
POST /courses/applications/{application_id}/withdraw - Withdraw a pending application (student)
POST /courses/admissions - Offer admission to accepted applicants (owning institute)
GET /courses/admissions/offered - Admissions offered by the current institute
GET /courses/admissions/mine - My admission results (student only)
POST /courses/admissions/{admission_id}/respond - Accept or decline an offer (student)
GET /courses/{course_id} - Get course details
PUT /courses/{course_id} - Update course (owning institute)
DELETE /courses/{course_id} - Deactivate course (owning institute)
POST /courses/{course_id}/apply - Apply to course (student only)
GET /courses/{course_id}/applications - Applications with status counts (owning institute)
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from typing import List, Optional

from career_findr.core.auth import get_view_context, require_roles
from career_findr.core.impersonation import ViewContext
from career_findr.db.mongodb import get_document_store
from career_findr.schemas.schemas import (
    Admission, AdmissionCreate, AdmissionReply, AdmissionResults, Course,
    CourseApplication, CourseApplicationCreate, CourseApplicationReview,
    CourseApplicationStatus, CourseApplicationSummary, CourseCreate, CourseUpdate,
    InstituteStatsResponse, MessageResponse, UserAccount, UserRole
)
from career_findr.services.course_service import (
    AdmissionAlreadyAccepted, AlreadyAppliedToCourse, AlreadyResponded,
    ApplicationLimitReached, CourseClosed, CourseService, NoSeatsLeft,
    NotPending, PendingApplications
)

router = APIRouter(prefix="/courses", tags=["Courses"])

institute_only = require_roles("institute", "admin")
student_only = require_roles("student")


def get_course_service(store=Depends(get_document_store)) -> CourseService:
    return CourseService(store)


def _get_owned_course(course_id: str, institute: UserAccount, service: CourseService) -> Course:
    course = service.get_course(course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    if institute.role != UserRole.admin.value and course.institute_id != institute.id:
        raise HTTPException(status_code=403, detail="Not your course")
    return course


def _active_institute(ctx: ViewContext) -> UserAccount:
    if ctx.active_user.role != UserRole.institute.value:
        raise HTTPException(status_code=403, detail="Institutes only")
    return ctx.active_user


def _active_student(ctx: ViewContext) -> UserAccount:
    if ctx.active_user.role != UserRole.student.value:
        raise HTTPException(status_code=403, detail="Students only")
    return ctx.active_user


@router.post("", response_model=Course, status_code=201)
def create_course(
    course: CourseCreate,
    institute: UserAccount = Depends(institute_only),
    service: CourseService = Depends(get_course_service),
):
    return service.create_course(institute, course)


@router.get("", response_model=List[Course])
def search_courses(
    q: str = "",
    field: Optional[str] = None,
    level: Optional[str] = None,
    location: Optional[str] = None,
    user: UserAccount = Depends(require_roles()),
    service: CourseService = Depends(get_course_service),
):
    return service.search_courses(q, field=field, level=level, location=location)


@router.get("/mine", response_model=List[Course])
def my_courses(
    ctx: ViewContext = Depends(get_view_context),
    service: CourseService = Depends(get_course_service),
):
    return service.list_institute_courses(_active_institute(ctx).id)


@router.get("/stats", response_model=InstituteStatsResponse)
def institute_stats(
    ctx: ViewContext = Depends(get_view_context),
    service: CourseService = Depends(get_course_service),
):
    return service.institute_stats(_active_institute(ctx).id)


@router.get("/applications/mine", response_model=List[CourseApplication])
def my_course_applications(
    ctx: ViewContext = Depends(get_view_context),
    service: CourseService = Depends(get_course_service),
):
    return service.list_student_applications(_active_student(ctx).id)


@router.put("/applications/{application_id}/review", response_model=CourseApplication)
def review_application(
    application_id: str,
    data: CourseApplicationReview,
    institute: UserAccount = Depends(institute_only),
    service: CourseService = Depends(get_course_service),
):
    """Accept or reject a pending application; the student is notified."""
    application = service.get_application(application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    if institute.role != UserRole.admin.value and application.institute_id != institute.id:
        raise HTTPException(status_code=403, detail="You can only review applications for your own courses")

    try:
        return service.review(application, data.status, institute, data.remarks)
    except NotPending:
        raise HTTPException(status_code=400, detail="Application has already been reviewed")


@router.post("/applications/{application_id}/withdraw", response_model=CourseApplication)
def withdraw_application(
    application_id: str,
    student: UserAccount = Depends(student_only),
    service: CourseService = Depends(get_course_service),
):
    application = service.get_application(application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    if application.student_id != student.id:
        raise HTTPException(status_code=403, detail="You can only withdraw your own applications")

    try:
        return service.withdraw(application)
    except NotPending as exc:
        raise HTTPException(status_code=400, detail=f"Cannot withdraw {exc} application")


@router.post("/admissions", response_model=List[Admission], status_code=201)
def create_admissions(
    data: AdmissionCreate,
    institute: UserAccount = Depends(institute_only),
    service: CourseService = Depends(get_course_service),
):
    """Offers go only to students whose application was accepted."""
    course = _get_owned_course(data.course_id, institute, service)
    return service.create_admissions(course, data.student_ids)


@router.get("/admissions/offered", response_model=List[Admission])
def offered_admissions(
    ctx: ViewContext = Depends(get_view_context),
    service: CourseService = Depends(get_course_service),
):
    return service.list_institute_admissions(_active_institute(ctx).id)


@router.get("/admissions/mine", response_model=AdmissionResults)
def my_admissions(
    ctx: ViewContext = Depends(get_view_context),
    service: CourseService = Depends(get_course_service),
):
    return service.admission_results(_active_student(ctx).id)


@router.post("/admissions/{admission_id}/respond", response_model=Admission)
def respond_to_admission(
    admission_id: str,
    data: AdmissionReply,
    student: UserAccount = Depends(student_only),
    service: CourseService = Depends(get_course_service),
):
    admission = service.get_admission(admission_id)
    if not admission:
        raise HTTPException(status_code=404, detail="Admission not found")
    if admission.student_id != student.id:
        raise HTTPException(status_code=403, detail="This admission does not belong to you")

    try:
        return service.respond(admission, data.accept)
    except AlreadyResponded:
        raise HTTPException(status_code=400, detail="You have already responded to this admission offer")
    except AdmissionAlreadyAccepted:
        raise HTTPException(status_code=400, detail="You can only accept one admission offer")


@router.get("/{course_id}", response_model=Course)
def get_course(
    course_id: str,
    user: UserAccount = Depends(require_roles()),
    service: CourseService = Depends(get_course_service),
):
    course = service.get_course(course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


@router.put("/{course_id}", response_model=Course)
def update_course(
    course_id: str,
    data: CourseUpdate,
    institute: UserAccount = Depends(institute_only),
    service: CourseService = Depends(get_course_service),
):
    """Update course. Only provided fields are updated."""
    _get_owned_course(course_id, institute, service)
    if not data.model_dump(exclude_none=True):
        raise HTTPException(status_code=400, detail="No fields to update")
    return service.update_course(course_id, data)


@router.delete("/{course_id}", response_model=MessageResponse)
def delete_course(
    course_id: str,
    institute: UserAccount = Depends(institute_only),
    service: CourseService = Depends(get_course_service),
):
    """The course is deactivated; applications and admissions are kept."""
    _get_owned_course(course_id, institute, service)
    try:
        service.delete_course(course_id)
    except PendingApplications:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete course with pending applications. Please review them first."
        )
    return MessageResponse(message="Course deleted")


@router.post("/{course_id}/apply", response_model=CourseApplication, status_code=201)
def apply_to_course(
    course_id: str,
    data: CourseApplicationCreate,
    student: UserAccount = Depends(student_only),
    service: CourseService = Depends(get_course_service),
):
    course = service.get_course(course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    try:
        return service.apply(course, student, data)
    except CourseClosed:
        raise HTTPException(status_code=400, detail="This course is no longer accepting applications")
    except NoSeatsLeft:
        raise HTTPException(status_code=400, detail="No seats available for this course")
    except ApplicationLimitReached:
        raise HTTPException(status_code=400, detail="Maximum 2 applications per institution allowed")
    except AlreadyAppliedToCourse:
        raise HTTPException(status_code=400, detail="You have already applied to this course")


@router.get("/{course_id}/applications", response_model=CourseApplicationSummary)
def course_applications(
    course_id: str,
    status: Optional[CourseApplicationStatus] = Query(None),
    institute: UserAccount = Depends(institute_only),
    service: CourseService = Depends(get_course_service),
):
    _get_owned_course(course_id, institute, service)
    return service.list_course_applications(course_id, status.value if status else None)
