"""Tests for CSV export."""

import math

from collector.export import export_filename, to_csv, to_frame
from collector.models import Candle, Timeframe

JAN_1_2023_MS = 1_672_531_200_000


def _series() -> list[Candle]:
    return [
        Candle(JAN_1_2023_MS, 16541.77, 16545.7, 16508.39, 16529.67, 4364.83),
        Candle(JAN_1_2023_MS + 3_600_000, 16529.59, 16556.8, 16525.78, 16551.47, 3590.06),
        Candle(JAN_1_2023_MS + 7_200_000 + 30 * 60_000, 16551.47, 16559.0, 16540.0, 16550.0, 12.0),
    ]


class TestToCsv:
    def test_three_candles_give_four_lines(self) -> None:
        lines = to_csv(_series()).split("\n")

        assert len(lines) == 4
        assert lines[0] == "date,time,open,high,low,close,volume"

    def test_row_format(self) -> None:
        lines = to_csv(_series()).split("\n")

        assert lines[1] == "2023-01-01,00:00,16541.77,16545.7,16508.39,16529.67,4364.83"
        assert lines[3].startswith("2023-01-01,02:30,")
        assert all(len(line.split(",")) == 7 for line in lines)

    def test_empty_series_is_header_only(self) -> None:
        assert to_csv([]) == "date,time,open,high,low,close,volume"

    def test_nan_fields_are_written_as_nan(self) -> None:
        candle = Candle(JAN_1_2023_MS, math.nan, 2.0, 0.5, 1.5, 10.0)

        assert to_csv([candle]).split("\n")[1] == "2023-01-01,00:00,NaN,2.0,0.5,1.5,10.0"


class TestToFrame:
    def test_columns_and_utc_times(self) -> None:
        df = to_frame(_series())

        assert list(df.columns) == ["date", "time", "open", "high", "low", "close", "volume"]
        assert list(df["time"]) == ["00:00", "01:00", "02:30"]
        assert df["close"].iloc[1] == 16551.47


class TestFilename:
    def test_enum_timeframe(self) -> None:
        assert export_filename("BTCUSDT", Timeframe.ONE_HOUR) == "BTCUSDT_1h_dataset.csv"

    def test_string_timeframe(self) -> None:
        assert export_filename("ETHUSDT", "1d") == "ETHUSDT_1d_dataset.csv"
