"""
Delimited Ingestor - Lap tables from semicolon/comma separated exports

Cells are read as text (no type inference) and parsed by the record parser.
The delimiter is chosen per export: the first configured delimiter wins unless
its header yields a single field, or a later delimiter resolves more of the
required columns.
"""

from io import StringIO
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from config.settings import get_settings
from data_pipeline.base.base_ingestor import BaseIngestor
from data_pipeline.base.column_normalizer import clean_header, normalize_columns
from data_pipeline.base.exceptions import EmptyDatasetError
from data_pipeline.base.qa_engine import LapValidator
from data_pipeline.base.record_parser import parse_records
from data_pipeline.schemas.lap_schema import ParsedLap, SessionMeta


TableInput = Union[str, pd.DataFrame, Sequence[Mapping[str, Any]]]


def read_delimited(content: str, delimiter: str) -> pd.DataFrame:
    """
    Read delimited text into an all-string DataFrame.

    Rows with more fields than the header are truncated, shorter rows are
    padded with empty cells; no row is dropped.

    Raises:
        EmptyDatasetError: If the text has no header line
    """
    try:
        header = pd.read_csv(StringIO(content), sep=delimiter, nrows=0, engine="python")
    except pd.errors.EmptyDataError as e:
        raise EmptyDatasetError("No rows found in file") from e

    width = len(header.columns)
    frame = pd.read_csv(
        StringIO(content),
        sep=delimiter,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
        on_bad_lines=lambda fields: fields[:width],
    )
    frame.columns = [clean_header(column) for column in frame.columns]
    return frame.fillna("")


def frame_to_rows(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    """Row dicts with missing cells as None."""
    cleaned = frame.astype(object).where(frame.notna(), None)
    return cleaned.to_dict("records")


class DelimitedIngestor(BaseIngestor):
    """
    Ingestor for delimited text exports and pre-split row tables.

    Features:
    - Delimiter auto-detection with required-column fallback
    - Alias and dialect resolution through the column normalizer
    - Millisecond conversion for the alternate timing dialect
    """

    def __init__(
        self,
        validator: Optional[LapValidator] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        super().__init__("delimited", validator=validator, config=config)
        self.delimiters: List[str] = list(
            self.config.get("delimiters") or get_settings().ingestion.delimiters
        )

    def choose_frame(self, content: str) -> pd.DataFrame:
        """
        Parse ``content`` with each configured delimiter and keep the best table.

        A delimiter whose header yields at most one field is never chosen over
        another; among the rest, a later delimiter replaces an earlier one only
        when it leaves strictly fewer required columns missing.
        """
        best: Optional[pd.DataFrame] = None
        best_missing: Optional[int] = None
        fallback: Optional[pd.DataFrame] = None

        for delimiter in self.delimiters:
            frame = read_delimited(content, delimiter)
            if fallback is None:
                fallback = frame
            if len(frame.columns) <= 1:
                continue

            missing = len(normalize_columns(frame.columns).missing_columns())
            if best is None or missing < best_missing:
                best, best_missing = frame, missing
                self.logger.debug(
                    f"Delimiter {delimiter!r}: {len(frame.columns)} columns, {missing} missing"
                )
            if missing == 0:
                break

        return best if best is not None else fallback

    def to_frame(self, table: TableInput) -> pd.DataFrame:
        if isinstance(table, str):
            return self.choose_frame(table)
        if isinstance(table, pd.DataFrame):
            frame = table.copy()
            frame.columns = [clean_header(column) for column in frame.columns]
            return frame
        return pd.DataFrame(list(table))

    def ingest(self, table: TableInput) -> Tuple[List[ParsedLap], SessionMeta]:
        """
        Parse one exported session.

        Args:
            table: Delimited text, a DataFrame, or a list of row dicts

        Returns:
            Tuple of (parsed laps, session metadata)

        Raises:
            MissingColumnsError: If required columns cannot be resolved
            EmptyDatasetError: If no row carries a time signal
        """
        frame = self.to_frame(table)
        mapping = normalize_columns(frame.columns)

        self.logger.info(
            f"Read {len(frame)} rows with {len(frame.columns)} columns",
            extra={"extra_data": {"data_mode": mapping.data_mode.value}},
        )

        return parse_records(frame_to_rows(frame), mapping)
