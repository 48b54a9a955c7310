"""
Data ingestion for Furfolio CSV exports.
"""
from furfolio_analytics.data_ingestion.parsers import CSVParser
from furfolio_analytics.data_ingestion.resolver import OwnerMatch, OwnerResolver
from furfolio_analytics.data_ingestion.loader import (
    AnalyticsDataset,
    DataLoader,
    parse_service_type,
    parse_status
)

__all__ = [
    'CSVParser',
    'OwnerMatch',
    'OwnerResolver',
    'AnalyticsDataset',
    'DataLoader',
    'parse_service_type',
    'parse_status'
]
