"""
CSV recording sessions.
"""

from .csv_logger import CsvLogger, SessionState, format_row, read_rows, split_row

__all__ = ["CsvLogger", "SessionState", "format_row", "read_rows", "split_row"]
