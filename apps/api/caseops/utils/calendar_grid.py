"""Month grid for the calendar view."""

from datetime import date, timedelta

GRID_DAYS = 42  # 6 rows x 7 days, regardless of month length


def build_month_grid(anchor: date) -> list[date]:
    """
    42 consecutive dates starting on the Sunday on/before the 1st of
    ``anchor``'s month.
    """
    first = anchor.replace(day=1)
    # date.weekday(): Monday=0 .. Sunday=6
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    return [start + timedelta(days=offset) for offset in range(GRID_DAYS)]


def shift_month(anchor: date, delta: int) -> date:
    """First day of the month ``delta`` months away (prev/next navigation)."""
    index = anchor.year * 12 + (anchor.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)
