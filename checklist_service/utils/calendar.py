# checklist_service/utils/calendar.py
from calendar import monthrange
from datetime import date, timedelta

from checklist_service.core.exceptions import ValidationError

MIN_YEAR = 2000
MAX_YEAR = 2100


def validate_period(month: int, year: int) -> None:
    if not (1 <= month <= 12):
        raise ValidationError(f"Invalid month: {month}")
    if not (MIN_YEAR <= year <= MAX_YEAR):
        raise ValidationError(f"Invalid year: {year}")


def days_in_month(month: int, year: int) -> int:
    validate_period(month, year)
    return monthrange(year, month)[1]


def validate_day(day: int, month: int, year: int) -> None:
    last = days_in_month(month, year)
    if not (1 <= day <= last):
        raise ValidationError(f"Invalid day {day} for {year}-{month:02d} (1-{last})")


def deadline_for(assessment_date: date, days: int) -> date:
    return assessment_date + timedelta(days=days)
