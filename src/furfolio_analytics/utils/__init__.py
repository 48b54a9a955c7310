"""
Utilities package for Furfolio analytics.
"""
from furfolio_analytics.utils.utils import (
    clean_column_names,
    standardize_datetime,
    days_between,
    top_n,
    format_error_message
)

__all__ = [
    'clean_column_names',
    'standardize_datetime',
    'days_between',
    'top_n',
    'format_error_message'
]
