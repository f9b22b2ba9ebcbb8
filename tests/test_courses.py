"""
Tests for course_service.py - courses, course applications and admissions.
"""

import pytest
from pymongo.errors import NetworkTimeout

from career_findr.schemas.schemas import CourseApplicationCreate, CourseCreate, CourseUpdate
from career_findr.services.course_service import (
    AdmissionAlreadyAccepted,
    AlreadyAppliedToCourse,
    AlreadyResponded,
    ApplicationLimitReached,
    CourseClosed,
    CourseService,
    NoSeatsLeft,
    NotPending,
    PendingApplications,
)


@pytest.fixture
def service(store):
    return CourseService(store)


@pytest.fixture
def institute(make_user):
    return make_user("institute", name="Northside College")


@pytest.fixture
def course(service, institute):
    return service.create_course(institute, CourseCreate(
        title="BSc Software Engineering", field="Computing", level="Degree", seats=2
    ))


def apply(service, course, student):
    return service.apply(course, student, CourseApplicationCreate())


class TestCourses:

    def test_create_course(self, course, institute):
        assert course.institute_id == institute.id
        assert course.institute_name == "Northside College"
        assert course.status == "active"

    def test_search(self, service, institute, course):
        service.create_course(institute, CourseCreate(title="Diploma in Nursing", field="Health", seats=5))

        assert [c.title for c in service.search_courses("software")] == ["BSc Software Engineering"]
        assert sorted(c.title for c in service.search_courses("NORTHSIDE")) == [
            "BSc Software Engineering", "Diploma in Nursing"
        ]
        assert [c.title for c in service.search_courses(field="Health")] == ["Diploma in Nursing"]

    def test_update_course(self, service, course):
        updated = service.update_course(course.id, CourseUpdate(seats=30))
        assert updated.seats == 30
        assert updated.title == "BSc Software Engineering"

    def test_delete_deactivates(self, service, course):
        assert service.delete_course(course.id) is True

        assert service.get_course(course.id).status == "inactive"
        assert service.search_courses() == []

    def test_delete_refused_with_pending_applications(self, service, course, student):
        apply(service, course, student)
        with pytest.raises(PendingApplications):
            service.delete_course(course.id)


class TestCourseApplications:

    def test_apply(self, service, course, student):
        application = apply(service, course, student)

        assert application.status == "pending"
        assert application.institute_id == course.institute_id
        assert application.course_title == "BSc Software Engineering"

    def test_apply_twice(self, service, course, student):
        apply(service, course, student)
        with pytest.raises(AlreadyAppliedToCourse):
            apply(service, course, student)

    def test_two_applications_per_institute(self, service, institute, course, student):
        other = service.create_course(institute, CourseCreate(title="BSc Data Science", seats=5))
        third = service.create_course(institute, CourseCreate(title="BSc Networking", seats=5))
        apply(service, course, student)
        apply(service, other, student)

        with pytest.raises(ApplicationLimitReached):
            apply(service, third, student)

    def test_inactive_course(self, service, course, student):
        closed = service.update_course(course.id, CourseUpdate(status="inactive"))
        with pytest.raises(CourseClosed):
            apply(service, closed, student)

    def test_no_seats_left(self, service, institute, course, make_user):
        for _ in range(2):
            application = apply(service, course, make_user("student"))
            service.review(application, "accepted", institute)

        with pytest.raises(NoSeatsLeft):
            apply(service, course, make_user("student"))

    def test_withdraw(self, service, course, student):
        application = apply(service, course, student)

        assert service.withdraw(application).status == "withdrawn"
        with pytest.raises(NotPending):
            service.withdraw(service.get_application(application.id))

    def test_summary_counts(self, service, institute, course, student, make_user):
        accepted = apply(service, course, student)
        apply(service, course, make_user("student"))
        service.review(accepted, "accepted", institute)

        summary = service.list_course_applications(course.id)
        assert (summary.total, summary.pending, summary.accepted, summary.rejected) == (2, 1, 1, 0)
        assert len(service.list_course_applications(course.id, "pending").applications) == 1


class TestReview:

    def test_review_notifies_student(self, service, store, institute, course, student):
        application = apply(service, course, student)

        reviewed = service.review(application, "accepted", institute, remarks="Welcome")

        assert reviewed.status == "accepted"
        assert reviewed.reviewed_by == institute.id
        assert reviewed.remarks == "Welcome"
        notifications = store.find("notifications", {"user_id": student.id})
        assert len(notifications) == 1
        assert notifications[0]["type"] == "application_status"
        assert notifications[0]["title"] == "Application Accepted!"
        assert "BSc Software Engineering" in notifications[0]["message"]
        assert "Northside College" in notifications[0]["message"]

    def test_reviewed_once(self, service, institute, course, student):
        application = apply(service, course, student)
        reviewed = service.review(application, "rejected", institute)

        with pytest.raises(NotPending):
            service.review(reviewed, "accepted", institute)

    def test_notification_failure_keeps_decision(self, service, store, institute, course, student):
        application = apply(service, course, student)

        def hook(collection, data):
            if collection == "notifications":
                raise NetworkTimeout("timed out")

        store.insert_hook = hook
        assert service.review(application, "rejected", institute).status == "rejected"


class TestAdmissions:

    @pytest.fixture
    def accepted_student(self, service, institute, course, student):
        service.review(apply(service, course, student), "accepted", institute)
        return student

    def test_offers_only_to_accepted_applicants(self, service, store, course, accepted_student, make_user):
        pending = make_user("student")
        apply(service, course, pending)

        offered = service.create_admissions(course, [accepted_student.id, pending.id, accepted_student.id])

        assert [a.student_id for a in offered] == [accepted_student.id]
        offers = store.find("notifications", {"user_id": accepted_student.id, "type": "admission_offer"})
        assert offers[0]["admission_id"] == offered[0].id

    def test_no_duplicate_offer(self, service, course, accepted_student):
        service.create_admissions(course, [accepted_student.id])
        assert service.create_admissions(course, [accepted_student.id]) == []

    def test_accept_offer(self, service, course, accepted_student):
        admission = service.create_admissions(course, [accepted_student.id])[0]

        assert service.respond(admission, True).student_response == "accepted"
        assert service.admission_results(accepted_student.id).has_accepted_admission

        with pytest.raises(AlreadyResponded):
            service.respond(service.get_admission(admission.id), False)

    def test_only_one_accepted_offer(self, service, institute, course, accepted_student):
        other = service.create_course(institute, CourseCreate(title="BSc Data Science", seats=5))
        service.review(apply(service, other, accepted_student), "accepted", institute)
        first = service.create_admissions(course, [accepted_student.id])[0]
        second = service.create_admissions(other, [accepted_student.id])[0]

        service.respond(first, True)

        with pytest.raises(AdmissionAlreadyAccepted):
            service.respond(second, True)
        assert service.respond(second, False).student_response == "declined"

    def test_institute_stats(self, service, institute, course, accepted_student, make_user):
        apply(service, course, make_user("student"))
        admission = service.create_admissions(course, [accepted_student.id])[0]
        service.respond(admission, True)

        stats = service.institute_stats(institute.id)

        assert stats.total_courses == 1
        assert stats.active_courses == 1
        assert stats.total_applications == 2
        assert stats.pending_applications == 1
        assert stats.accepted_applications == 1
        assert stats.total_admissions == 1
        assert stats.confirmed_admissions == 1
