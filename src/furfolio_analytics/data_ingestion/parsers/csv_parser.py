# src/furfolio_analytics/data_ingestion/parsers/csv_parser.py
import csv
from typing import Optional

import chardet
import pandas as pd
from loguru import logger


class CSVParser:
    """
    Utility class for parsing exported Furfolio CSV files.
    """

    def __init__(self, sample_size: int = 10000):
        self.sample_size = sample_size

    def detect_encoding(self, file_path: str) -> str:
        """
        Detect the encoding of a CSV file.

        Args:
            file_path: Path to the CSV file

        Returns:
            Detected encoding, utf-8 when detection is inconclusive
        """
        with open(file_path, 'rb') as f:
            result = chardet.detect(f.read(self.sample_size))
        return result.get('encoding') or 'utf-8'

    def detect_delimiter(self, file_path: str, encoding: str = 'utf-8') -> str:
        """
        Detect the delimiter used in a CSV file.

        Args:
            file_path: Path to the CSV file
            encoding: File encoding

        Returns:
            Detected delimiter, comma when the sample is ambiguous
        """
        with open(file_path, 'r', encoding=encoding) as f:
            sample = f.read(4096)
        try:
            return csv.Sniffer().sniff(sample, delimiters=',;\t|').delimiter
        except csv.Error:
            logger.debug(f"Could not sniff delimiter of {file_path}, using comma")
            return ','

    def parse_csv(self, file_path: str, encoding: Optional[str] = None,
                  delimiter: Optional[str] = None, **kwargs) -> pd.DataFrame:
        """
        Parse a CSV file into a pandas DataFrame with every column read as text.

        Args:
            file_path: Path to the CSV file
            encoding: File encoding, detected when omitted
            delimiter: Column delimiter, detected when omitted
            **kwargs: Additional arguments to pass to pd.read_csv

        Returns:
            Pandas DataFrame with the CSV data
        """
        try:
            if encoding is None:
                encoding = self.detect_encoding(file_path)
            if delimiter is None:
                delimiter = self.detect_delimiter(file_path, encoding)

            df = pd.read_csv(
                file_path,
                encoding=encoding,
                delimiter=delimiter,
                dtype=str,
                keep_default_na=True,
                na_values=['NULL', 'null', 'N/A', 'n/a', '', ' '],
                skipinitialspace=True,
                **kwargs
            )

            logger.info(f"Successfully parsed {file_path}, shape: {df.shape}")
            return df

        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
            logger.error(f"Error parsing {file_path}: {e}")
            raise
