"""Load labeled and unlabeled issue records from delimited text files.

The expected layout is the one used by the GitHub issue datasets: a
header row followed by one issue per line with the columns

    ID <TAB> Area <TAB> Title <TAB> Description

The label column may also be called ``label``.  Records are produced
lazily; use :func:`read_records` when the data has to be traversed more
than once (fitting, cross-validation).
"""

from __future__ import annotations

import csv
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

import pandas as pd

from ..errors import NotFoundError, ParseError, SchemaError

LOG = logging.getLogger(__name__)

COLUMNS = ("id", "label", "title", "description")

# Accepted header names per column position
COLUMN_ALIASES = (
    {"id"},
    {"label", "area"},
    {"title"},
    {"description"},
)

FIELD_SIZE_LIMIT = min(sys.maxsize, 2**31 - 1)

# Lone surrogates left by the surrogateescape error handler
_UNDECODABLE = re.compile("[\udc80-\udcff]")


@dataclass(frozen=True)
class Record:
    """One issue: free-text fields plus an optional label."""

    title: str
    description: str
    label: Optional[str] = None
    id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.title, str) or not isinstance(self.description, str):
            raise TypeError("title and description must be strings")


def validate_header(header: Sequence[str]) -> None:
    """Raise `SchemaError` unless `header` names the four expected columns."""
    if len(header) != len(COLUMNS):
        raise SchemaError(
            f"expected {len(COLUMNS)} columns {list(COLUMNS)}, header has {len(header)}: {list(header)}"
        )
    for position, (name, aliases) in enumerate(zip(header, COLUMN_ALIASES)):
        cleaned = name.strip().lower()
        if cleaned not in aliases:
            raise SchemaError(
                f"column {position} should be {COLUMNS[position]!r}, found {name.strip()!r}"
            )


def _check_decoded(row: Sequence[str], line_number: int) -> None:
    for value in row:
        match = _UNDECODABLE.search(value)
        if match:
            byte = ord(match.group()) - 0xDC00
            raise ParseError(f"invalid UTF-8 byte 0x{byte:02x}", line_number)


def _iter_records(
    path: Path, require_label: bool, delimiter: str, allow_quoting: bool
) -> Iterator[Record]:
    # Issue descriptions can be long; the csv default limit is 128 KiB
    if csv.field_size_limit() < FIELD_SIZE_LIMIT:
        csv.field_size_limit(FIELD_SIZE_LIMIT)
    quoting = csv.QUOTE_MINIMAL if allow_quoting else csv.QUOTE_NONE
    # surrogateescape keeps undecodable bytes so they are reported per line
    with path.open("r", encoding="utf-8-sig", errors="surrogateescape", newline="") as f:
        reader = csv.reader(f, delimiter=delimiter, quoting=quoting)
        header = next(reader, None)
        if header is None:
            raise SchemaError(f"{path} is empty; a header row is required")
        _check_decoded(header, reader.line_num)
        validate_header(header)

        count = 0
        for row in reader:
            if not row:
                continue
            _check_decoded(row, reader.line_num)
            if len(row) != len(COLUMNS):
                raise ParseError(
                    f"expected {len(COLUMNS)} fields, found {len(row)}", reader.line_num
                )
            issue_id, label, title, description = row
            label = label.strip()
            if not label:
                if require_label:
                    raise ParseError("label is required for training and test data", reader.line_num)
                label = None
            count += 1
            yield Record(
                title=title,
                description=description,
                label=label,
                id=issue_id.strip() or None,
            )
        LOG.debug("Read %d records from %s", count, path)


def load_records(
    path,
    require_label: bool = True,
    delimiter: str = "\t",
    allow_quoting: bool = False,
) -> Iterator[Record]:
    """Return a lazy, single-pass iterator over the records in `path`.

    Parameters
    ----------
    path : Path or str
        Delimited text file with a header row.
    require_label : bool
        When true (training and test data) every row must carry a label;
        when false (inference data) empty labels become ``None``.
    delimiter : str
        Field separator, tab by default.
    allow_quoting : bool
        Honour double-quoted fields.  Off by default because issue text
        routinely contains unbalanced quotes.

    Raises
    ------
    NotFoundError
        Immediately, if `path` does not exist.
    SchemaError, ParseError
        While iterating, on a bad header or a malformed row.
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"input file not found: {path}")
    return _iter_records(path, require_label, delimiter, allow_quoting)


def read_records(path, require_label: bool = True, **kwargs) -> List[Record]:
    """Load every record in `path` into a list."""
    records = list(load_records(path, require_label=require_label, **kwargs))
    LOG.info("Loaded %d records from %s", len(records), path)
    return records


def records_to_frame(records: Iterable[Record]) -> pd.DataFrame:
    """Convert records to a DataFrame with the canonical column order."""
    rows = [
        {"id": r.id, "label": r.label, "title": r.title, "description": r.description}
        for r in records
    ]
    return pd.DataFrame(rows, columns=list(COLUMNS))


def label_distribution(records: Iterable[Record]) -> pd.Series:
    """Count records per label, most frequent first."""
    frame = records_to_frame(records)
    return frame["label"].value_counts()
