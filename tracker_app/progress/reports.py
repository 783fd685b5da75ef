"""
Dashboard and report builders.

Each builder takes already-loaded rows (model instances or plain objects with
the same attribute names) plus an explicit ``today`` and returns JSON-ready
dicts. Nothing here touches the database or the clock.
"""
from ..roles import Role
from .aggregator import aggregate, aggregate_by, by_percentage, portions_of
from .classifier import (
    UPCOMING_WINDOW_DAYS,
    PortionStatus,
    classify,
    days_overdue,
    deadline_label,
    to_day,
    upcoming,
)
from .grouping import field, group_by, map_values, sort_desc
from .leaderboard import display_name

UPCOMING_LIMIT = 5

BAND_ON_TRACK = "on-track"
BAND_MODERATE = "moderate"
BAND_BEHIND = "behind"
BAND_OVERDUE = "overdue"
BANDS = (BAND_ON_TRACK, BAND_MODERATE, BAND_BEHIND, BAND_OVERDUE)


def _iso(value):
    day = to_day(value)
    return day.isoformat() if day else None


def _name(record, default=""):
    if record is None:
        return default
    return field(record, "name") or default


def _with_progress(portions_or_progress, today):
    if isinstance(portions_or_progress, dict):
        progress = dict(portions_or_progress)
    else:
        progress = aggregate(portions_or_progress, today)
    progress["pending"] = progress["total"] - progress["completed"]
    return progress


def in_band(progress, band):
    pct = progress["percentage"]
    if band == BAND_ON_TRACK:
        return pct >= 80
    if band == BAND_MODERATE:
        return 50 <= pct < 80
    if band == BAND_BEHIND:
        return pct < 50
    if band == BAND_OVERDUE:
        return progress["overdue"] > 0
    return True


def portion_view(portion, today):
    return {
        "id": field(portion, "id"),
        "name": field(portion, "name"),
        "sequence_order": field(portion, "sequence_order"),
        "planned_date": _iso(field(portion, "planned_date")),
        "completed_date": _iso(field(portion, "completed_date")),
        "is_completed": bool(field(portion, "is_completed")),
        "notes": field(portion, "notes"),
        "status": classify(portion, today).value,
    }


def upcoming_deadlines(subjects, today, window_days=UPCOMING_WINDOW_DAYS,
                       limit=UPCOMING_LIMIT, order_by="planned_date"):
    """
    Incomplete portions due within the window across ``subjects``.

    ``order_by`` is ``planned_date`` or ``days_until``; both ascending.
    """
    items = []
    for subject in subjects:
        for portion, planned, days in upcoming(field(subject, "portions") or [], today, window_days):
            items.append({
                "portion_id": field(portion, "id"),
                "portion_name": field(portion, "name"),
                "subject_id": field(subject, "id"),
                "subject_name": field(subject, "name"),
                "subject_code": field(subject, "code"),
                "planned_date": planned.isoformat(),
                "days_until": days,
                "label": deadline_label(days),
            })
    items.sort(key=lambda item: item[order_by])
    return items[:limit] if limit else items


# ==========================================
# ADMIN
# ==========================================

def institution_summary(departments, facilitators, subjects, today):
    return {
        "departments": len(departments),
        "facilitators": len(facilitators),
        "subjects": len(subjects),
        "progress": aggregate(portions_of(subjects), today),
    }


def department_progress(departments, subjects, facilitators, today):
    """Per-department progress; departments without any portions are left out."""
    progress_by_dept = aggregate_by(subjects, lambda s: field(s, "department_id"), today)
    subject_counts = map_values(group_by(subjects, lambda s: field(s, "department_id")), len)
    facilitator_counts = map_values(group_by(facilitators, lambda u: field(u, "department_id")), len)

    rows = []
    for dept in departments:
        dept_id = field(dept, "id")
        progress = progress_by_dept.get(dept_id)
        if not progress or not progress["total"]:
            continue
        rows.append({
            "id": dept_id,
            "name": field(dept, "name"),
            "code": field(dept, "code"),
            "subject_count": subject_counts.get(dept_id, 0),
            "facilitator_count": facilitator_counts.get(dept_id, 0),
            "progress": progress,
        })
    return by_percentage(rows)


def facilitator_progress(facilitators, subjects, today):
    """Per-facilitator progress over their subjects; inactive facilitators and those without portions are left out."""
    subjects_by_facilitator = group_by(subjects, lambda s: field(s, "facilitator_id"))
    rows = []
    for user in facilitators:
        if not field(user, "is_active", True):
            continue
        own = subjects_by_facilitator.get(field(user, "id"), [])
        progress = _with_progress(portions_of(own), today)
        if not progress["total"]:
            continue
        rows.append({
            "id": field(user, "id"),
            "name": display_name(user),
            "email": field(user, "email"),
            "department_name": _name(field(user, "department"), "N/A"),
            "subjects_count": len(own),
            "progress": progress,
        })
    return by_percentage(rows)


def subject_progress(subjects, today, band=None):
    rows = []
    for subject in subjects:
        progress = aggregate(field(subject, "portions") or [], today)
        if band and not in_band(progress, band):
            continue
        rows.append({
            "id": field(subject, "id"),
            "name": field(subject, "name"),
            "code": field(subject, "code"),
            "department_name": _name(field(subject, "department"), "N/A"),
            "facilitator_name": display_name(field(subject, "facilitator"), "Unassigned"),
            "progress": progress,
        })
    return by_percentage(rows)


def overdue_portions(subjects, today):
    rows = []
    for subject in subjects:
        for portion in field(subject, "portions") or []:
            if classify(portion, today) is not PortionStatus.OVERDUE:
                continue
            rows.append({
                "id": field(portion, "id"),
                "name": field(portion, "name"),
                "planned_date": _iso(field(portion, "planned_date")),
                "subject_id": field(subject, "id"),
                "subject_name": field(subject, "name"),
                "subject_code": field(subject, "code"),
                "department_name": _name(field(subject, "department"), "N/A"),
                "facilitator_name": display_name(field(subject, "facilitator"), "Unassigned"),
                "days_overdue": days_overdue(portion, today),
            })
    return sort_desc(rows, lambda r: r["days_overdue"])


def super_admin_summary(departments, users, subjects, today, recent_limit=5):
    facilitators = [u for u in users if Role.parse(field(u, "role")) is Role.FACILITATOR]
    summary = institution_summary(departments, facilitators, subjects, today)

    counts = {role.value: 0 for role in Role}
    counts.update(map_values(group_by(users, lambda u: Role.parse(field(u, "role")).value), len))
    summary["users"] = {"total": len(users), "by_role": counts}

    recent = sorted(
        users,
        key=lambda u: (field(u, "created_at") is not None, field(u, "created_at")),
        reverse=True,
    )[:recent_limit]
    summary["recent_users"] = [
        {
            "id": field(u, "id"),
            "name": display_name(u),
            "email": field(u, "email"),
            "role": Role.parse(field(u, "role")).value,
        }
        for u in recent
    ]
    return summary


def department_directory(departments, users, subjects):
    """Every department with its people and subject counts, by primary department."""
    by_role = group_by(users, lambda u: Role.parse(field(u, "role")))
    facilitator_counts = map_values(
        group_by(by_role.get(Role.FACILITATOR, []), lambda u: field(u, "department_id")), len
    )
    student_counts = map_values(
        group_by(by_role.get(Role.STUDENT, []), lambda u: field(u, "department_id")), len
    )
    subject_counts = map_values(group_by(subjects, lambda s: field(s, "department_id")), len)
    return [
        {
            "id": field(d, "id"),
            "name": field(d, "name"),
            "code": field(d, "code"),
            "facilitator_count": facilitator_counts.get(field(d, "id"), 0),
            "student_count": student_counts.get(field(d, "id"), 0),
            "subject_count": subject_counts.get(field(d, "id"), 0),
        }
        for d in departments
    ]


# ==========================================
# FACILITATOR & STUDENT
# ==========================================

def facilitator_dashboard(subjects, today, window_days=UPCOMING_WINDOW_DAYS, limit=UPCOMING_LIMIT):
    return {
        "progress": _with_progress(portions_of(subjects), today),
        "subjects": [
            {
                "id": field(s, "id"),
                "name": field(s, "name"),
                "code": field(s, "code"),
                "department_name": _name(field(s, "department"), "N/A"),
                "progress": aggregate(field(s, "portions") or [], today),
                "portions": [portion_view(p, today) for p in field(s, "portions") or []],
            }
            for s in subjects
        ],
        "upcoming": upcoming_deadlines(subjects, today, window_days, limit, order_by="planned_date"),
    }


def student_dashboard(subjects, today, window_days=UPCOMING_WINDOW_DAYS, limit=UPCOMING_LIMIT):
    rows = [
        {
            "id": field(s, "id"),
            "name": field(s, "name"),
            "code": field(s, "code"),
            "facilitator_name": display_name(field(s, "facilitator"), "Unassigned"),
            "progress": aggregate(field(s, "portions") or [], today),
        }
        for s in subjects
    ]
    return {
        "progress": aggregate(portions_of(subjects), today),
        "subjects": by_percentage(rows),
        "upcoming": upcoming_deadlines(subjects, today, window_days, limit, order_by="days_until"),
    }
