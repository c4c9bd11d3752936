#Purpose: Surcharge gates and stacking.
#Typical responsibilities:
#decide whether a surcharge is live at the pickup moment
#  (date range, daily time window incl. overnight wrap, day of week)
#add PERCENT (of the running total) or FLAT amounts in repository order

from datetime import datetime, time
from decimal import Decimal
from typing import Iterable, List, Tuple

from .models import Surcharge, SurchargeKind, SurchargeLine


def _parse_hhmm(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M").time()


def _day_of_week(moment: datetime) -> int:
    # 0 = Sunday ... 6 = Saturday
    return (moment.weekday() + 1) % 7


def in_time_window(moment: datetime, start: str, end: str) -> bool:
    current = moment.time().replace(second=0, microsecond=0)
    start_at, end_at = _parse_hhmm(start), _parse_hhmm(end)

    if end_at < start_at:
        #overnight window e.g. 22:00 -> 06:00
        return current >= start_at or current <= end_at
    return start_at <= current <= end_at


def surcharge_applies(surcharge: Surcharge, moment: datetime) -> bool:
    """
    A surcharge applies when any of its gates matches. One without
    any gate never applies.
    """
    has_date_gate = surcharge.start_date is not None and surcharge.end_date is not None
    has_time_gate = bool(surcharge.start_time) and bool(surcharge.end_time)
    has_day_gate = bool(surcharge.days_of_week)

    if not (has_date_gate or has_time_gate or has_day_gate):
        return False

    if has_date_gate and surcharge.start_date <= moment <= surcharge.end_date:
        return True

    if has_time_gate and in_time_window(moment, surcharge.start_time, surcharge.end_time):
        return True

    if has_day_gate and _day_of_week(moment) in surcharge.days_of_week:
        return True

    return False


def apply_surcharges(
    total: Decimal,
    surcharges: Iterable[Surcharge],
    moment: datetime,
) -> Tuple[Decimal, List[SurchargeLine]]:
    """
    Returns the new running total and one breakdown line per applied surcharge.
    PERCENT surcharges compound on whatever has been added before them.
    """
    lines: List[SurchargeLine] = []
    for surcharge in surcharges:
        if not surcharge_applies(surcharge, moment):
            continue

        if surcharge.kind == SurchargeKind.PERCENT:
            extra = total * surcharge.value / Decimal(100)
        else:
            extra = surcharge.value

        total += extra
        lines.append(SurchargeLine(name=surcharge.name, amount=extra))

    return total, lines
