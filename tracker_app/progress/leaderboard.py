"""
Leaderboard ranking over verified submissions.

Assessment marks and project submissions are both reduced to ``Scoreable``
records so there is one ranking implementation for both boards.
"""
from typing import Any, NamedTuple, Optional

from .grouping import field, group_by, map_values, sort_desc


class Scoreable(NamedTuple):
    student_id: Any
    amount: Optional[float]
    max_amount: Optional[float]
    verified: bool
    student: Any = None


def from_assessment_mark(mark):
    return Scoreable(
        student_id=field(mark, "student_id"),
        amount=field(mark, "marks_obtained"),
        max_amount=field(mark, "max_marks"),
        verified=bool(field(mark, "verified")),
        student=field(mark, "student"),
    )


def from_project_submission(submission):
    return Scoreable(
        student_id=field(submission, "student_id"),
        amount=field(submission, "score"),
        max_amount=field(submission, "max_score"),
        verified=bool(field(submission, "verified")),
        student=field(submission, "student"),
    )


def display_name(person, default="Unknown"):
    if person is None:
        return default
    name = f"{field(person, 'first_name') or ''} {field(person, 'last_name') or ''}".strip()
    return name or default


def _fold_student(scoreables):
    first = scoreables[0]
    total = sum(float(s.amount) for s in scoreables)
    max_possible = sum(float(s.max_amount or 0) for s in scoreables)
    return {
        "student_id": first.student_id,
        "student_name": display_name(first.student),
        "email": (field(first.student, "email") if first.student is not None else None) or "",
        "total": total,
        "max_possible": max_possible,
        "percentage": (total / max_possible * 100) if max_possible > 0 else 0.0,
        "count": len(scoreables),
        "rank": 0,
    }


def rank(scoreables):
    """
    Rank students by the percentage of their verified, scored submissions.

    Ranks are positions 1..N; students with equal percentages still get
    distinct ranks in the order they were first seen.
    """
    eligible = [s for s in scoreables if s.verified and s.amount is not None]
    per_student = map_values(group_by(eligible, lambda s: s.student_id), _fold_student)
    ordered = sort_desc(list(per_student.values()), lambda e: e["percentage"])
    for position, entry in enumerate(ordered, start=1):
        entry["rank"] = position
    return ordered


def my_rank(entries, student_id):
    for entry in entries:
        if entry["student_id"] == student_id:
            return entry["rank"]
    return None


def display_entry(entry):
    out = dict(entry)
    out["percentage"] = round(entry["percentage"], 1)
    return out
