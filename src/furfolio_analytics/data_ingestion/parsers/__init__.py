from furfolio_analytics.data_ingestion.parsers.csv_parser import CSVParser

__all__ = ['CSVParser']
