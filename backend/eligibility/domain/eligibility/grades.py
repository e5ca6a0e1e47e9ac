"""Letter-grade scale and credit-hour based class standing."""
from __future__ import annotations
from typing import Iterable, Optional

from eligibility.core import config
from eligibility.domain.eligibility.enums import ClassStanding
from eligibility.domain.eligibility.models import CompletedCourse

GRADE_POINTS: dict[str, float] = {
    "A+": 4.0,
    "A": 4.0,
    "A-": 3.7,
    "B+": 3.3,
    "B": 3.0,
    "B-": 2.7,
    "C+": 2.3,
    "C": 2.0,
    "C-": 1.7,
    "D+": 1.3,
    "D": 1.0,
    "D-": 0.7,
    "F": 0.0,
}

# Pass/fail marks that count as a completion but carry no points
PASSING_MARKS = {"P", "S", "CR"}


def normalize_grade(grade: Optional[str]) -> Optional[str]:
    if grade is None:
        return None
    return grade.strip().upper()


def is_letter_grade(grade: Optional[str]) -> bool:
    return normalize_grade(grade) in GRADE_POINTS


def grade_points(grade: Optional[str]) -> Optional[float]:
    return GRADE_POINTS.get(normalize_grade(grade) or "")


def meets_minimum_grade(grade: Optional[str], minimum_grade: Optional[str]) -> bool:
    """True when `grade` is a completion at or above `minimum_grade`.

    With no minimum any passing letter grade or pass mark counts. With a
    minimum only letter grades are compared; pass marks and W/I/NC never
    qualify.
    """
    g = normalize_grade(grade)
    if minimum_grade is None:
        if g in PASSING_MARKS:
            return True
        points = grade_points(g)
        return points is not None and points > 0.0
    points = grade_points(g)
    required = grade_points(minimum_grade)
    if points is None or required is None:
        return False
    return points >= required and points > 0.0


def best_grade(grades: Iterable[str]) -> Optional[str]:
    """Highest-ranked grade among repeated attempts; pass marks rank below D-."""
    best = None
    best_rank = -2.0
    for g in grades:
        n = normalize_grade(g)
        if n in GRADE_POINTS:
            rank = GRADE_POINTS[n]
        elif n in PASSING_MARKS:
            rank = 0.5
        else:
            rank = -1.0
        if rank > best_rank:
            best, best_rank = n, rank
    return best


def weighted_gpa(courses: Iterable[CompletedCourse]) -> Optional[float]:
    points = 0.0
    hours = 0.0
    for c in courses:
        p = grade_points(c.grade)
        if p is None:
            continue
        points += p * c.credit_hours
        hours += c.credit_hours
    if hours == 0:
        return None
    return round(points / hours, 2)


def standing_for_credit_hours(credit_hours: float) -> ClassStanding:
    if credit_hours >= config.SENIOR_MIN_HOURS:
        return ClassStanding.SENIOR
    if credit_hours >= config.JUNIOR_MIN_HOURS:
        return ClassStanding.JUNIOR
    if credit_hours >= config.SOPHOMORE_MIN_HOURS:
        return ClassStanding.SOPHOMORE
    return ClassStanding.FRESHMAN


def effective_standing(credit_hours: float, declared: Optional[str] = None) -> ClassStanding:
    """Computed standing, unless the record declares a graduate-level one."""
    if declared and ClassStanding.has(declared):
        explicit = ClassStanding(declared)
        if explicit.rank >= ClassStanding.GRADUATE.rank:
            return explicit
    return standing_for_credit_hours(credit_hours)
