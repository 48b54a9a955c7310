"""
Utility functions for Furfolio analytics.
"""
import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, TypeVar

import pandas as pd
from loguru import logger

K = TypeVar('K')


def clean_column_names(columns: List[str]) -> List[str]:
    """
    Clean column names by removing special characters and converting to lowercase.

    Args:
        columns: List of column names

    Returns:
        List[str]: List of cleaned column names
    """
    return [
        re.sub(r'[^a-zA-Z0-9_]', '', str(col).strip().lower().replace(' ', '_'))
        for col in columns
    ]


def standardize_datetime(date_value: Any) -> Optional[datetime]:
    """
    Standardize a date or datetime value to a naive datetime.

    Args:
        date_value: A date or datetime value in various formats

    Returns:
        Optional[datetime]: Standardized datetime object, or None if invalid
    """
    if date_value is None:
        return None

    if isinstance(date_value, pd.Timestamp):
        if pd.isna(date_value):
            return None
        return date_value.to_pydatetime().replace(tzinfo=None)

    if isinstance(date_value, datetime):
        return date_value.replace(tzinfo=None)

    if isinstance(date_value, date):
        return datetime(date_value.year, date_value.month, date_value.day)

    if isinstance(date_value, float) and pd.isna(date_value):
        return None

    if isinstance(date_value, str) and not date_value.strip():
        return None

    try:
        result = pd.to_datetime(date_value)
        if pd.isna(result):
            return None
        return result.to_pydatetime().replace(tzinfo=None)
    except (ValueError, TypeError):
        formats = [
            '%m/%d/%Y %I:%M %p',
            '%m/%d/%Y %I:%M:%S %p',
            '%d/%m/%Y',
            '%d-%m-%Y',
        ]

        if isinstance(date_value, str):
            for fmt in formats:
                try:
                    return datetime.strptime(date_value.strip(), fmt)
                except ValueError:
                    continue

        logger.warning(f"Could not parse date value: {date_value}")
        return None


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed between two datetimes (negative if ``later`` is earlier)."""
    return (later - earlier).days


def top_n(values: Dict[K, Any], limit: int, order: Optional[Iterable[K]] = None) -> List[Tuple[K, Any]]:
    """
    Return the ``limit`` largest entries of a mapping, largest first.

    Ties keep the position of the key in ``order`` (or insertion order).
    """
    if limit <= 0:
        return []
    rank = {key: i for i, key in enumerate(order if order is not None else values.keys())}
    ranked = sorted(values.items(), key=lambda item: (-item[1], rank.get(item[0], len(rank))))
    return ranked[:limit]


def format_error_message(message: str, entity: str, id_value: str) -> str:
    """
    Format an error message with entity and ID information.

    Args:
        message: Error message
        entity: Entity type
        id_value: Entity ID

    Returns:
        str: Formatted error message
    """
    return f"{entity}:{id_value} - {message}"
