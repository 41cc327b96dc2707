"""
Provides UTC timestamped logging helpers used across the import pipeline.
"""

from datetime import datetime, UTC
from typing import Optional


def _utc_timestamp() -> str:
    """
    Generate the current UTC timestamp string.

    Returns:
        str: Timestamp formatted as YYYY-MM-DD HH:MM:SS in UTC.
    """
    return datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")


def log_section_start(section: str) -> None:
    """
    Log the start of a section.

    Args:
        section (str): Description of the section that is beginning.
    """
    print(f"[{_utc_timestamp()}] Starting: {section}")


def log_section_complete(section: str, details: Optional[str] = None) -> None:
    """
    Log the completion of a section.

    Args:
        section (str): Description of the section that finished.
        details (Optional[str]): Optional extra context to append to the message.
    """
    suffix = f" - {details}" if details else ""
    print(f"[{_utc_timestamp()}] Completed: {section}{suffix}")


def log_progress(
    section: str,
    message: str,
    *,
    end: str = "\n",
    flush: bool = False,
) -> None:
    """
    Log an in-progress update for a section.

    Args:
        section (str): Description of the section that is running.
        message (str): Progress message to display for the section.
        end (str): Print function end parameter for controlling newline behavior.
        flush (bool): Whether to force flush the output buffer.
    """
    print(f"[{_utc_timestamp()}] {section}: {message}", end=end, flush=flush)


def log_warning(section: str, message: str) -> None:
    """
    Log a recoverable problem: the record or batch keeps going with a default.

    Args:
        section (str): Description of the section where the problem was seen.
        message (str): What was defaulted or skipped.
    """
    print(f"[{_utc_timestamp()}] Warning in {section}: {message}")


def log_error(section: str, error: Exception | str) -> None:
    """
    Log an error that occurred during a section.

    Args:
        section (str): Description of the section where the error occurred.
        error (Exception | str): Exception instance or error message to record.
    """
    print(f"[{_utc_timestamp()}] Error in {section}: {error}")
