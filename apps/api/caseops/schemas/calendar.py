"""Calendar month view schemas."""

import datetime as dt

from pydantic import BaseModel

from caseops.schemas.event import EnrichedEvent


class CalendarDay(BaseModel):
    date: dt.date
    in_month: bool
    is_today: bool
    events: list[EnrichedEvent]


class CalendarMonthResponse(BaseModel):
    anchor: dt.date
    timezone: str
    days: list[CalendarDay]
