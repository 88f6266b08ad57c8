"""
Expand weekly schedule rules into dated session records.
"""

from typing import Sequence

from .models import DateRange, MatchPolicy, ScheduleRule, SessionRecord, weekday_index


def materialize(
    rules: Sequence[ScheduleRule],
    date_range: DateRange,
    policy: MatchPolicy = MatchPolicy.ALL,
) -> list[SessionRecord]:
    """
    Enumerate every date in the range and emit a record per matching rule.

    Dates are visited in ascending order, so the output is sorted by
    scheduled_date. With MatchPolicy.FIRST only the first rule in
    `rules` for a given weekday is used; with MatchPolicy.ALL every
    matching rule contributes, in rule order.

    An inverted range or an empty rule list yields an empty list.
    """
    if not rules:
        return []

    records: list[SessionRecord] = []

    for day in date_range.days():
        weekday = weekday_index(day)
        matching = [rule for rule in rules if rule.day_of_week == weekday]

        if policy is MatchPolicy.FIRST:
            matching = matching[:1]

        for rule in matching:
            records.append(SessionRecord(
                scheduled_date=day.isoformat(),
                start_time=rule.start_time,
                end_time=rule.end_time,
                session_type=rule.session_type,
            ))

    return records
