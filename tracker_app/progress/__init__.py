"""Pure progress engine: portion classification, aggregation, leaderboards and report builders."""
from .aggregator import aggregate, aggregate_by, completion_percentage, round_half_up
from .classifier import PortionStatus, classify, days_overdue, days_until, deadline_label, upcoming
from .grouping import group_by, map_values, sort_desc
from .leaderboard import Scoreable, display_entry, from_assessment_mark, from_project_submission, my_rank, rank

__all__ = [
    "PortionStatus",
    "Scoreable",
    "aggregate",
    "aggregate_by",
    "classify",
    "completion_percentage",
    "days_overdue",
    "days_until",
    "deadline_label",
    "display_entry",
    "from_assessment_mark",
    "from_project_submission",
    "group_by",
    "map_values",
    "my_rank",
    "rank",
    "round_half_up",
    "sort_desc",
    "upcoming",
]
