"""
Tests for data acquisition and reshaping.

Verifies that:
1. fetch_observations returns monthly long-format observations
2. pivot_wide gives one row per month, columns in request order
3. unknown series, empty ranges and network failures fail explicitly
4. the CSV cache applies the same checks
"""

import pandas as pd
import pytest

from leadlag_data import (fetch_observations, load_observations_csv,
                          pivot_wide, save_observations_csv)
from leadlag_errors import DataAcquisitionError, LeadLagError


class TestFetchObservations:

    def test_long_format(self, fake_reader):
        long = fetch_observations(["DSPI", "PMSAVE"], "1995-01-01", reader=fake_reader)

        assert list(long.columns) == ["period", "series_id", "value"]
        assert set(long["series_id"]) == {"DSPI", "PMSAVE"}
        assert long["period"].dtype == pd.PeriodDtype("M")
        assert long.groupby("series_id").size().tolist() == [300, 300]

    def test_start_date_truncates(self, fake_reader):
        long = fetch_observations(["DSPI", "PMSAVE"], "2010-01-01", reader=fake_reader)
        assert long["period"].min() == pd.Period("2010-01", freq="M")

    def test_end_date_truncates(self, fake_reader):
        long = fetch_observations(["DSPI"], "1995-01-01", end="1999-12-31", reader=fake_reader)
        assert long["period"].max() == pd.Period("1999-12", freq="M")
        assert len(long) == 60

    def test_unknown_series_fails(self, fake_reader):
        with pytest.raises(DataAcquisitionError, match="NOPE"):
            fetch_observations(["DSPI", "NOPE"], "1995-01-01", reader=fake_reader)

    def test_start_after_last_observation_fails(self, fake_reader):
        with pytest.raises(DataAcquisitionError, match="no data in range"):
            fetch_observations(["DSPI", "PMSAVE"], "2100-01-01", reader=fake_reader)

    def test_network_error_is_chained(self):
        def broken(series_ids, start, end=None):
            raise ConnectionError("connection refused")

        with pytest.raises(DataAcquisitionError) as excinfo:
            fetch_observations(["DSPI"], "1995-01-01", reader=broken)
        assert isinstance(excinfo.value.__cause__, ConnectionError)
        assert excinfo.value.stage == "fetch"
        assert str(excinfo.value).startswith("[fetch]")

    def test_missing_column_is_unknown_series(self, income_savings_wide):
        def partial(series_ids, start, end=None):
            return income_savings_wide[["DSPI"]].to_timestamp()

        with pytest.raises(DataAcquisitionError, match="unknown series"):
            fetch_observations(["DSPI", "PMSAVE"], "1995-01-01", reader=partial)

    def test_series_without_observation_fails(self, income_savings_wide):
        def half_empty(series_ids, start, end=None):
            frame = income_savings_wide.to_timestamp()
            frame["PMSAVE"] = float("nan")
            return frame

        with pytest.raises(DataAcquisitionError, match="PMSAVE"):
            fetch_observations(["DSPI", "PMSAVE"], "1995-01-01", reader=half_empty)

    def test_no_series_given(self, fake_reader):
        with pytest.raises(LeadLagError):
            fetch_observations([], "1995-01-01", reader=fake_reader)


class TestPivotWide:

    def test_one_row_per_month(self, long_observations):
        wide = pivot_wide(long_observations, ["DSPI", "PMSAVE"])

        months = pd.period_range(wide.index.min(), wide.index.max(), freq="M")
        assert len(wide) == len(months) == 300
        assert wide.index.is_unique
        assert wide.index.is_monotonic_increasing
        assert wide.index.name == "period"

    def test_columns_follow_request_order(self, long_observations):
        assert list(pivot_wide(long_observations, ["PMSAVE", "DSPI"]).columns) == ["PMSAVE", "DSPI"]
        assert list(pivot_wide(long_observations, ["DSPI", "PMSAVE"]).columns) == ["DSPI", "PMSAVE"]

    def test_values_unchanged(self, long_observations, income_savings_wide):
        wide = pivot_wide(long_observations, ["DSPI", "PMSAVE"])
        pd.testing.assert_frame_equal(wide, income_savings_wide, check_freq=False)

    def test_ragged_edge_dropped(self, long_observations):
        # last month of saving not published yet
        last = long_observations["period"].max()
        long = long_observations[
            ~((long_observations["series_id"] == "PMSAVE") & (long_observations["period"] == last))
        ]
        wide = pivot_wide(long, ["DSPI", "PMSAVE"])
        assert wide.index.max() == last - 1
        assert not wide.isna().any().any()

    def test_interior_gap_fails(self, long_observations):
        hole = pd.Period("2000-06", freq="M")
        long = long_observations[long_observations["period"] != hole]
        with pytest.raises(DataAcquisitionError, match="missing months"):
            pivot_wide(long, ["DSPI", "PMSAVE"])

    def test_duplicate_period_fails(self, long_observations):
        long = pd.concat([long_observations, long_observations.iloc[[0]]], ignore_index=True)
        with pytest.raises(DataAcquisitionError, match="duplicate"):
            pivot_wide(long, ["DSPI", "PMSAVE"])

    def test_missing_series_fails(self, long_observations):
        with pytest.raises(DataAcquisitionError):
            pivot_wide(long_observations, ["DSPI", "GDP"])


class TestCsvCache:

    def test_cache_matches_download(self, fake_reader, tmp_path):
        fetched = fetch_observations(["DSPI", "PMSAVE"], "1995-01-01", reader=fake_reader)
        path = save_observations_csv(fetched, tmp_path / "fred.csv")

        cached = load_observations_csv(path, ["DSPI", "PMSAVE"], "1995-01-01")
        pd.testing.assert_frame_equal(
            pivot_wide(cached, ["DSPI", "PMSAVE"]),
            pivot_wide(fetched, ["DSPI", "PMSAVE"]),
        )

    def test_cache_filters_dates(self, long_observations, tmp_path):
        path = save_observations_csv(long_observations, tmp_path / "fred.csv")
        cached = load_observations_csv(path, ["DSPI"], "2000-01-01", end="2000-12-01")
        assert len(cached) == 12

    def test_cache_unknown_series(self, long_observations, tmp_path):
        path = save_observations_csv(long_observations, tmp_path / "fred.csv")
        with pytest.raises(DataAcquisitionError, match="unknown series"):
            load_observations_csv(path, ["DSPI", "NOPE"], "1995-01-01")

    def test_cache_empty_range(self, long_observations, tmp_path):
        path = save_observations_csv(long_observations, tmp_path / "fred.csv")
        with pytest.raises(DataAcquisitionError, match="no data in range"):
            load_observations_csv(path, ["DSPI", "PMSAVE"], "2100-01-01")

    def test_cache_missing_file(self, tmp_path):
        with pytest.raises(DataAcquisitionError):
            load_observations_csv(tmp_path / "absent.csv", ["DSPI"], "1995-01-01")

    def test_cache_empty_file(self, tmp_path):
        path = tmp_path / "fred.csv"
        path.write_text("")
        with pytest.raises(DataAcquisitionError, match="could not read cache") as excinfo:
            load_observations_csv(path, ["DSPI"], "1995-01-01")
        assert isinstance(excinfo.value.__cause__, pd.errors.EmptyDataError)

    def test_cache_malformed_file(self, tmp_path):
        path = tmp_path / "fred.csv"
        path.write_text('period,series_id,value\n"2000-01,DSPI,1.0\n')
        with pytest.raises(DataAcquisitionError, match="could not read cache") as excinfo:
            load_observations_csv(path, ["DSPI"], "1995-01-01")
        assert isinstance(excinfo.value.__cause__, pd.errors.ParserError)
