"""CSV export of a collected candle series."""

from collections.abc import Iterable
from dataclasses import astuple

import pandas as pd

from collector.models import Candle, Timeframe

CSV_HEADER = ("date", "time", "open", "high", "low", "close", "volume")
CANDLE_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


def export_filename(symbol: str, timeframe: Timeframe | str) -> str:
    """Download filename for a dataset, e.g. ``BTCUSDT_1h_dataset.csv``."""
    interval = timeframe.value if isinstance(timeframe, Timeframe) else timeframe
    return f"{symbol}_{interval}_dataset.csv"


def to_frame(candles: Iterable[Candle]) -> pd.DataFrame:
    """Candles as a DataFrame with UTC ``date``/``time`` columns in export order."""
    df = pd.DataFrame([astuple(c) for c in candles], columns=CANDLE_COLUMNS)
    if df.empty:
        return pd.DataFrame(columns=list(CSV_HEADER))

    opened = pd.to_datetime(df["timestamp"], unit="ms", utc=True)
    df.insert(0, "date", opened.dt.strftime("%Y-%m-%d"))
    df.insert(1, "time", opened.dt.strftime("%H:%M"))
    return df[list(CSV_HEADER)]


def to_csv(candles: Iterable[Candle]) -> str:
    """Serialize candles to CSV text: header plus one row per candle, UTC times.

    Unparsable prices (NaN) are written as ``NaN``. No trailing newline.
    """
    text = to_frame(candles).to_csv(index=False, na_rep="NaN", lineterminator="\n")
    return text.rstrip("\n")
