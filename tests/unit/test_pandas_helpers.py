# Copyright (c) Apptio Targetprocess Client contributors.
# Licensed under the MIT license.

"""Tests for the DataFrame conversion helpers."""

import pandas as pd
import pytest

from Apptio.Targetprocess.utils._pandas import parse_tp_date, records_to_dataframe


class TestParseTpDate:
    @pytest.mark.parametrize(
        "value",
        ["/Date(1700000000000)/", "/Date(1700000000000+0100)/", "/Date(1700000000000-0500)/"],
    )
    def test_offset_ignored(self, value):
        assert parse_tp_date(value) == pd.Timestamp("2023-11-14 22:13:20", tz="UTC")

    def test_before_epoch(self):
        assert parse_tp_date("/Date(-86400000)/") == pd.Timestamp("1969-12-31", tz="UTC")

    @pytest.mark.parametrize("value", [None, 5, "2024-01-01", "/Date(abc)/", "Date(1700000000000)"])
    def test_other_values(self, value):
        assert parse_tp_date(value) is None


class TestRecordsToDataframe:
    def test_empty(self):
        df = records_to_dataframe([])
        assert isinstance(df, pd.DataFrame)
        assert df.empty

    def test_flattens_nested_and_drops_resource_type(self, sample_items):
        df = records_to_dataframe(sample_items)
        assert list(df.columns) == ["Id", "Name", "CreateDate", "Project.Id", "Project.Name"]
        assert df["Project.Name"].tolist() == ["Portal", "Portal"]
        assert df["Name"].tolist() == ["Login page", "O'Brien's report"]

    def test_date_columns_converted(self, sample_items):
        df = records_to_dataframe(sample_items)
        assert pd.api.types.is_datetime64_any_dtype(df["CreateDate"])
        assert df["CreateDate"].iloc[1] == pd.Timestamp(1700086400000, unit="ms", tz="UTC")

    def test_missing_dates_stay_missing(self):
        df = records_to_dataframe([{"Id": 1, "EndDate": "/Date(1700000000000)/"}, {"Id": 2, "EndDate": None}])
        assert pd.api.types.is_datetime64_any_dtype(df["EndDate"])
        assert pd.isna(df["EndDate"].iloc[1])

    def test_mixed_column_left_alone(self):
        df = records_to_dataframe([{"Note": "/Date(1700000000000)/"}, {"Note": "tomorrow"}])
        assert df["Note"].tolist() == ["/Date(1700000000000)/", "tomorrow"]
