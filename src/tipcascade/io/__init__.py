"""Input/Output operations for tipcascade."""

from tipcascade.io.csv_writer import write_csv, write_events_csv

__all__ = [
    "write_csv",
    "write_events_csv",
]
