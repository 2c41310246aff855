"""Opening-hours evaluation and restaurant ranking."""

from forkfinder.ranking.comparator import compare, rank
from forkfinder.ranking.hours import closing_info, closing_time_label, parse_time

__all__ = ["closing_info", "closing_time_label", "compare", "parse_time", "rank"]
