import logging
from datetime import date, timedelta
from typing import List

from dateutil.relativedelta import relativedelta

from models.schemas import RecurrenceFrequency, ScheduleIn
from services.errors import ValidationFailure

log = logging.getLogger(__name__)

MAX_OCCURRENCES = 52 # One year of weekly repeats

def _step(start: date, frequency: RecurrenceFrequency, index: int) -> date:
    if frequency is RecurrenceFrequency.WEEKLY:
        return start + timedelta(weeks=index)
    if frequency is RecurrenceFrequency.BIWEEKLY:
        return start + timedelta(weeks=2 * index)
    if frequency is RecurrenceFrequency.MONTHLY:
        # Anchored on the first occurrence; day 31 clamps to the month end
        return start + relativedelta(months=index)
    raise ValueError(f"Unknown recurrence frequency: {frequency!r}")

def expand_recurrence(schedule: ScheduleIn, frequency: RecurrenceFrequency, until: date) -> List[ScheduleIn]:
    """
    Expands a department schedule into its repeated occurrences.

    Each occurrence keeps the original duration (end - start). The series
    stops at `until` (inclusive) or after MAX_OCCURRENCES entries.

    Raises:
        ValidationFailure: if `until` is not after the start date, or the
            schedule ends before it starts.
    """
    start = schedule.start_date
    end = schedule.end_date or start
    if end < start:
        raise ValidationFailure(f"End date {end} is before start date {start}")
    if until <= start:
        raise ValidationFailure(f"Recurrence end {until} must be after start date {start}")

    duration = end - start
    occurrences = []
    for index in range(MAX_OCCURRENCES):
        occurrence_start = _step(start, frequency, index)
        if occurrence_start > until:
            break
        occurrences.append(schedule.model_copy(update={
            "start_date": occurrence_start,
            "end_date": occurrence_start + duration,
        }))

    log.debug("Expanded %r into %d %s occurrence(s)", schedule.title, len(occurrences), frequency.value)
    return occurrences
