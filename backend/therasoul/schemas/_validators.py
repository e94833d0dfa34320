"""Shared field validators for slot date/time strings."""

from datetime import datetime
import re

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_REGEX = re.compile(r"^\d{2}:\d{2}$")


def ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        try:
            datetime.strptime(candidate, "%Y-%m-%d")
        except ValueError:
            raise ValueError(f"{field_name} is not a valid calendar date")
        return candidate
    return value


def ensure_time_of_day(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not TIME_REGEX.fullmatch(candidate):
            raise ValueError(f"Invalid time format for {field_name}: {value}. Expected HH:MM format.")
        try:
            datetime.strptime(candidate, "%H:%M")
        except ValueError:
            raise ValueError(f"{field_name} is not a valid time of day")
        return candidate
    return value
