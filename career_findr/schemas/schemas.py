"""
Pydantic Schemas - Stored Records and Request/Response Validation

Records mirror the documents kept in MongoDB. Optional fields are explicit
and malformed values fall back to defaults, so services never read ad hoc
keys off an untyped dict.
"""

import re
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    institute = "institute"
    company = "company"
    admin = "admin"


class UserStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    suspended = "suspended"


class ExperienceLevel(str, Enum):
    entry = "Entry"
    mid = "Mid Level"
    senior = "Senior Level"

    @classmethod
    def parse(cls, value: Any) -> Optional["ExperienceLevel"]:
        """
        Lenient parse of the labels used across the portal forms.

        "Entry", "Entry Level", "Mid Level (2-5 years)" and "senior level" all
        resolve; anything else (including "Expert Level") is None.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        label = re.sub(r"\(.*\)", "", value).strip().lower()
        for level in cls:
            if label in (level.value.lower(), level.value.lower().replace(" level", "") + " level"):
                return level
        return None


class AnnouncementType(str, Enum):
    info = "info"
    warning = "warning"
    success = "success"
    error = "error"


class TargetAudience(str, Enum):
    all = "all"
    student = "student"
    institute = "institute"
    company = "company"


class JobStatus(str, Enum):
    open = "open"
    closed = "closed"


class ApplicationStatus(str, Enum):
    pending = "pending"
    under_review = "under review"
    shortlisted = "shortlisted"
    interview = "interview"
    accepted = "accepted"
    rejected = "rejected"


class CourseStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class CourseApplicationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class AdmissionResponse(str, Enum):
    accepted = "accepted"
    declined = "declined"


def _coerce_skills(value: Any) -> List[str]:
    """Anything that is not a collection of strings counts as no skills."""
    if not isinstance(value, (list, tuple, set)):
        return []
    return [skill.strip() for skill in value if isinstance(skill, str) and skill.strip()]


# ============================================================
# STORED RECORDS
# ============================================================

class Record(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: Optional[str] = None


class UserAccount(Record):
    email: str = ""
    name: str = ""
    phone: str = ""
    role: Optional[UserRole] = None
    status: UserStatus = UserStatus.approved
    skills: List[str] = []
    experience_level: Optional[ExperienceLevel] = None
    avatar: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return value if value in UserRole._value2member_map_ else None
        return value

    @field_validator("skills", mode="before")
    @classmethod
    def coerce_skills(cls, value):
        return _coerce_skills(value)

    @field_validator("experience_level", mode="before")
    @classmethod
    def parse_experience(cls, value):
        return ExperienceLevel.parse(value)

    @property
    def display_name(self) -> str:
        return self.name or self.email


class JobPosting(Record):
    company_id: Optional[str] = None
    company_name: str = ""
    title: str = ""
    description: str = ""
    location: str = ""
    skills: List[str] = []
    experience_level: Optional[ExperienceLevel] = None
    status: JobStatus = JobStatus.open
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("skills", mode="before")
    @classmethod
    def coerce_skills(cls, value):
        return _coerce_skills(value)

    @field_validator("experience_level", mode="before")
    @classmethod
    def parse_experience(cls, value):
        return ExperienceLevel.parse(value)


class CandidateProfile(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    skills: List[str] = []
    experience_level: Optional[ExperienceLevel] = None

    @field_validator("skills", mode="before")
    @classmethod
    def coerce_skills(cls, value):
        return _coerce_skills(value)

    @field_validator("experience_level", mode="before")
    @classmethod
    def parse_experience(cls, value):
        return ExperienceLevel.parse(value)


class JobApplication(Record):
    job_id: str
    student_id: str
    company_id: Optional[str] = None
    student_name: str = ""
    student_email: str = ""
    job_title: str = ""
    company_name: str = ""
    skills: List[str] = []
    experience_level: Optional[ExperienceLevel] = None
    cover_letter: Optional[str] = None
    status: ApplicationStatus = ApplicationStatus.pending
    applied_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("skills", mode="before")
    @classmethod
    def coerce_skills(cls, value):
        return _coerce_skills(value)

    @field_validator("experience_level", mode="before")
    @classmethod
    def parse_experience(cls, value):
        return ExperienceLevel.parse(value)

    def candidate(self) -> CandidateProfile:
        return CandidateProfile(skills=self.skills, experience_level=self.experience_level)


class Course(Record):
    institute_id: Optional[str] = None
    institute_name: str = ""
    title: str = ""
    description: str = ""
    field: str = ""
    level: str = ""
    location: str = ""
    duration: str = ""
    fee: Optional[float] = None
    eligibility: str = ""
    seats: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: CourseStatus = CourseStatus.active
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CourseApplication(Record):
    course_id: str
    student_id: str
    institute_id: Optional[str] = None
    student_name: str = ""
    student_email: str = ""
    course_title: str = ""
    institute_name: str = ""
    documents: List[str] = []
    additional_info: str = ""
    status: CourseApplicationStatus = CourseApplicationStatus.pending
    remarks: str = ""
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Admission(Record):
    """An offered seat; the student answers it once."""
    course_id: str
    student_id: str
    institute_id: Optional[str] = None
    course_title: str = ""
    institute_name: str = ""
    student_response: Optional[AdmissionResponse] = None
    offered_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None


class Announcement(Record):
    title: str = ""
    message: str = ""
    type: AnnouncementType = AnnouncementType.info
    target_audience: TargetAudience = TargetAudience.all
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Notification(Record):
    user_id: str
    type: str = "general"
    title: str = ""
    message: str = ""
    link: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None
    # Set by the flow that produced the notification
    announcement_id: Optional[str] = None
    announcement_type: Optional[str] = None
    application_id: Optional[str] = None
    admission_id: Optional[str] = None
    status: Optional[str] = None


class ParticipantInfo(BaseModel):
    name: str = ""
    email: str = ""
    avatar: str = ""
    role: Optional[str] = None


class Chat(Record):
    participants: List[str] = []
    participants_data: Dict[str, ParticipantInfo] = {}
    last_message: str = ""
    last_message_time: Optional[datetime] = None
    unread_count: int = 0
    created_at: Optional[datetime] = None


class ChatMessage(Record):
    chat_id: str
    text: str
    sender_id: str
    sender_name: str = ""
    timestamp: Optional[datetime] = None
    read: bool = False


class CalendarEvent(Record):
    title: str = ""
    description: str = ""
    type: str = "interview"
    location: str = ""
    meeting_link: str = ""
    start_time: datetime
    end_time: datetime
    participant_ids: List[str] = []
    participant_names: List[str] = []
    job_id: Optional[str] = None
    job_title: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    status: str = "scheduled"


class SessionUser(BaseModel):
    """The slice of an account kept in the session cookie."""
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: str
    email: str = ""
    name: str = ""
    role: Optional[UserRole] = None


class ImpersonationState(BaseModel):
    original_user: SessionUser
    impersonated_user: SessionUser


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole
    name: str = Field("", max_length=100)
    phone: str = ""

    @field_validator("role")
    @classmethod
    def no_self_service_admin(cls, value):
        if value == UserRole.admin:
            raise ValueError("Admin accounts cannot be self-registered")
        return value

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str
    dashboard: str

class PasswordResetRequest(BaseModel):
    email: EmailStr

class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=8)

class UserResponse(BaseModel):
    id: str
    email: str
    name: str = ""
    phone: str = ""
    role: Optional[str] = None
    status: str
    skills: List[str] = []
    experience_level: Optional[str] = None
    created_at: Optional[datetime] = None
    dashboard: Optional[str] = None


# ============================================================
# USER SCHEMAS
# ============================================================

class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = None
    avatar: Optional[str] = None
    skills: Optional[List[str]] = None
    experience_level: Optional[ExperienceLevel] = None

class UserStatusUpdate(BaseModel):
    status: UserStatus

class PlatformStatsResponse(BaseModel):
    total_users: int
    users_by_role: Dict[str, int]
    pending_approvals: int
    total_jobs: int
    open_jobs: int
    total_applications: int


# ============================================================
# ANNOUNCEMENT / NOTIFICATION SCHEMAS
# ============================================================

class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    message: str = Field(..., min_length=1)
    type: AnnouncementType = AnnouncementType.info
    target_audience: TargetAudience = TargetAudience.all
    is_active: bool = True

class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    message: Optional[str] = None
    type: Optional[AnnouncementType] = None
    target_audience: Optional[TargetAudience] = None
    is_active: Optional[bool] = None

class AnnouncementStatusUpdate(BaseModel):
    is_active: bool

class AnnouncementCreateResponse(BaseModel):
    announcement: Announcement
    notifications_created: int

class NotificationFeed(BaseModel):
    notifications: List[Notification]
    unread_count: int


# ============================================================
# MESSAGING / CALENDAR SCHEMAS
# ============================================================

class ConversationStart(BaseModel):
    other_user_id: str
    initial_message: str = Field("", max_length=5000)

class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)

class ConversationResponse(BaseModel):
    chat: Chat
    message: Optional[ChatMessage] = None

class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    type: str = "interview"
    location: str = ""
    meeting_link: str = ""
    start_time: datetime
    end_time: datetime
    attendee_id: Optional[str] = None
    attendee_name: Optional[str] = None
    job_id: Optional[str] = None
    job_title: Optional[str] = None

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

class EventResponse(BaseModel):
    event: CalendarEvent
    google_calendar_url: str


# ============================================================
# JOB / APPLICATION SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = ""
    location: str = ""
    skills: List[str] = []
    experience_level: Optional[ExperienceLevel] = None

class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    skills: Optional[List[str]] = None
    experience_level: Optional[ExperienceLevel] = None
    status: Optional[JobStatus] = None

class ApplicationCreate(BaseModel):
    cover_letter: Optional[str] = Field(None, max_length=5000)

class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus

class ApplicantMatch(BaseModel):
    application: JobApplication
    match_score: int
    match_band: str


# ============================================================
# COURSE / ADMISSION SCHEMAS
# ============================================================

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = ""
    field: str = ""
    level: str = ""
    location: str = ""
    duration: str = ""
    fee: Optional[float] = Field(None, ge=0)
    eligibility: str = ""
    seats: int = Field(..., ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = None
    field: Optional[str] = None
    level: Optional[str] = None
    location: Optional[str] = None
    duration: Optional[str] = None
    fee: Optional[float] = Field(None, ge=0)
    eligibility: Optional[str] = None
    seats: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[CourseStatus] = None

class CourseApplicationCreate(BaseModel):
    documents: List[str] = []
    additional_info: str = Field("", max_length=5000)

class CourseApplicationReview(BaseModel):
    status: CourseApplicationStatus
    remarks: str = ""

    @field_validator("status")
    @classmethod
    def decision_only(cls, value):
        if value not in (CourseApplicationStatus.accepted, CourseApplicationStatus.rejected):
            raise ValueError("Status must be either accepted or rejected")
        return value

class CourseApplicationSummary(BaseModel):
    applications: List[CourseApplication]
    total: int
    pending: int
    accepted: int
    rejected: int

class AdmissionCreate(BaseModel):
    course_id: str
    student_ids: List[str] = Field(..., min_length=1)

class AdmissionReply(BaseModel):
    accept: bool

class AdmissionResults(BaseModel):
    admissions: List[Admission]
    has_accepted_admission: bool

class InstituteStatsResponse(BaseModel):
    total_courses: int
    active_courses: int
    total_applications: int
    pending_applications: int
    accepted_applications: int
    total_admissions: int
    confirmed_admissions: int


# ============================================================
# IMPERSONATION SCHEMAS
# ============================================================

class ImpersonationStart(BaseModel):
    user_id: str

class ImpersonationStatus(BaseModel):
    is_impersonating: bool
    active_user: Optional[SessionUser] = None
    impersonated_user: Optional[SessionUser] = None
    original_user: Optional[SessionUser] = None
    dashboard: Optional[str] = None
    redirect_to: Optional[str] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
