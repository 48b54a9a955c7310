from datetime import date, datetime

import pandas as pd

from furfolio_analytics.utils import clean_column_names, days_between, standardize_datetime, top_n


def test_clean_column_names():
    assert clean_column_names(["Owner Name", " Email ", "Amount ($)"]) == ["owner_name", "email", "amount_"]


def test_standardize_datetime_variants():
    assert standardize_datetime("2024-05-01 14:30") == datetime(2024, 5, 1, 14, 30)
    assert standardize_datetime(date(2024, 5, 1)) == datetime(2024, 5, 1)
    assert standardize_datetime(pd.Timestamp("2024-05-01")) == datetime(2024, 5, 1)
    assert standardize_datetime(None) is None
    assert standardize_datetime("") is None
    assert standardize_datetime(float("nan")) is None


def test_days_between():
    assert days_between(datetime(2024, 1, 1), datetime(2024, 1, 31, 23)) == 30
    assert days_between(datetime(2024, 1, 10), datetime(2024, 1, 1)) == -9


def test_top_n_tie_order():
    values = {"b": 1, "a": 1, "c": 5}
    assert top_n(values, 2) == [("c", 5), ("b", 1)]
    assert top_n(values, 2, order=["a", "b", "c"]) == [("c", 5), ("a", 1)]
    assert top_n(values, 0) == []
