"""
Applicant Matching Service

PURPOSE:
Score how well a candidate fits a job posting, on a 0-100 scale.

HOW IT WORKS:
1. Skills (60 points): share of the job's required skills the candidate has.
   Exact case-insensitive matches only, no partial credit.
2. Experience (40 points): same level earns 40, Mid Level vs Senior Level
   earns 20, anything else earns 0.
3. The sum is rounded half-up to an integer.

Scores are computed on demand for every request and never stored, so an
edit to either the job or the profile shows up in the next ranking.
"""

import math
from typing import List, Optional, Tuple

from career_findr.schemas.schemas import (
    CandidateProfile,
    ExperienceLevel,
    JobApplication,
    JobPosting,
)


SKILL_WEIGHT = 60
EXPERIENCE_WEIGHT = 40

# Pairs of levels one step apart that earn half the experience weight
ADJACENT_LEVELS = {
    frozenset({ExperienceLevel.mid.value, ExperienceLevel.senior.value}),
}


def _level_value(level) -> Optional[str]:
    parsed = ExperienceLevel.parse(level)
    return parsed.value if parsed else None


def compute_skill_score(candidate_skills: List[str], job_skills: List[str]) -> float:
    """
    Skill component of the match score.

    A job listing no skills yields 0 for every candidate (the denominator is
    clamped to 1, the numerator is empty).
    """
    required = {skill.lower() for skill in job_skills}
    offered = {skill.lower() for skill in candidate_skills}
    matching = offered & required
    return len(matching) / max(len(required), 1) * SKILL_WEIGHT


def compute_experience_score(candidate_level, job_level) -> float:
    candidate_value = _level_value(candidate_level)
    job_value = _level_value(job_level)

    # Missing or unknown levels never match
    if candidate_value is None or job_value is None:
        return 0

    if candidate_value == job_value:
        return EXPERIENCE_WEIGHT
    if frozenset({candidate_value, job_value}) in ADJACENT_LEVELS:
        return EXPERIENCE_WEIGHT / 2
    return 0


def calculate_match_score(job: JobPosting, candidate: CandidateProfile) -> int:
    """Compatibility score in [0, 100] between a job posting and a candidate."""
    total = (
        compute_skill_score(candidate.skills, job.skills)
        + compute_experience_score(candidate.experience_level, job.experience_level)
    )
    # half-up, not banker's rounding
    return int(math.floor(total + 0.5))


def match_band(score: int) -> str:
    """Bucket used by the applicant review table."""
    if score >= 70:
        return "strong"
    if score >= 40:
        return "moderate"
    return "weak"


def rank_applicants(
    job: JobPosting,
    applications: List[JobApplication]
) -> List[Tuple[JobApplication, int]]:
    """Pair each application with its score, best match first."""
    scored = [
        (application, calculate_match_score(job, application.candidate()))
        for application in applications
    ]
    # stable sort keeps application order among equal scores
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored
