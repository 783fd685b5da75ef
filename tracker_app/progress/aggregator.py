import math
from itertools import chain

from .classifier import PortionStatus, classify
from .grouping import field, group_by, map_values, sort_desc


def round_half_up(value):
    return int(math.floor(value + 0.5))


def completion_percentage(completed, total):
    if not total:
        return 0
    return round_half_up(completed / total * 100)


def aggregate(portions, today):
    """Fold one group's portions into total/completed/overdue counts and an integer percentage."""
    total = completed = overdue = 0
    for portion in portions:
        total += 1
        status = classify(portion, today)
        if status is PortionStatus.COMPLETED:
            completed += 1
        elif status is PortionStatus.OVERDUE:
            overdue += 1
    return {
        "total": total,
        "completed": completed,
        "overdue": overdue,
        "percentage": completion_percentage(completed, total),
    }


def portions_of(subjects):
    return list(chain.from_iterable(field(s, "portions") or [] for s in subjects))


def aggregate_by(subjects, key_fn, today):
    """Group subjects by ``key_fn`` and aggregate the union of each group's portions."""
    return map_values(group_by(subjects, key_fn), lambda subs: aggregate(portions_of(subs), today))


def by_percentage(rows):
    return sort_desc(rows, lambda row: row["progress"]["percentage"])
