"""Pure helpers that turn free-text labels and timestamps into names.

Everything here is deterministic and side-effect free, so the same labels
always map to the same object key, drive folders and filename.
"""

import re
from datetime import date, datetime, timedelta

UNTITLED = "Untitled"

_ILLEGAL_CHARS = re.compile(r'[\\/:*?"<>|]')
_WHITESPACE = re.compile(r"\s+")


def sanitize(label: str) -> str:
    """Make a label safe to use as a filename or folder name.

    Drops ``\\ / : * ? " < > |``, collapses whitespace runs to one space and
    trims. Returns ``"Untitled"`` when nothing is left.
    """
    cleaned = _ILLEGAL_CHARS.sub("", label)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned or UNTITLED


def format_timestamp(instant: datetime) -> str:
    """Format as ``YYYY-MM-DD_HH-MM`` in the local time zone.

    Aware datetimes are converted to local time first; naive ones are
    assumed to already be local.
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone()
    return (
        f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"
        f"_{instant.hour:02d}-{instant.minute:02d}"
    )


def build_filename(class_name: str, topic: str, stamp: str, extension: str) -> str:
    """Build ``"{class} - {topic} - {stamp}.{ext}"`` from sanitized labels."""
    extension = extension.lstrip(".")
    return f"{sanitize(class_name)} - {sanitize(topic)} - {stamp}.{extension}"


def derive_semester(day: date, term: str = "Spring") -> str:
    """Semester folder name for a commit date, e.g. ``"2024_Spring"``."""
    return f"{day.year}_{term}"


def folder_path(
    root: str,
    day: date,
    class_name: str,
    topic: str,
    term: str = "Spring",
) -> tuple[str, ...]:
    """Drive folder path ``(root, semester, class, topic)`` for a lecture."""
    return (root, derive_semester(day, term), sanitize(class_name), sanitize(topic))


def lecture_title(day: date) -> str:
    """Human title stored on the index record, e.g. ``"Lecture 1/3/2024"``."""
    return f"Lecture {day.day}/{day.month}/{day.year}"


def object_key(uploader_id: str, derived_name: str, prefix: str = "audio") -> str:
    """Object store key scoped by uploader: ``"audio/{uid}/{name}"``."""
    return f"{prefix}/{uploader_id}/{derived_name}"


def format_duration(elapsed: timedelta) -> str:
    """Display string ``MM:SS``; minutes keep growing past 99."""
    total = max(int(elapsed.total_seconds()), 0)
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"
