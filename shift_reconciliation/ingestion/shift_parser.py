"""
Shift CSV ingestion - Parse canonical-header CSV text into typed shift rows.
Missing required columns are fatal; incomplete data rows are dropped.
"""

import os
import logging
from typing import Dict, List

import pandas as pd

from config.constants import CanonicalColumns, PARSER_REQUIRED_COLUMNS
from shift_reconciliation.ingestion.column_mapper import clean_header, find_header_line, split_csv_line
from shift_reconciliation.models.data_models import RawShiftRow
from shift_reconciliation.utils.error_handlers import EmptyCsvError, MissingColumnError


logger = logging.getLogger(__name__)

# Leading numeric prefix, as JavaScript parseFloat reads it ("8.5 hrs" -> 8.5)
FLOAT_PREFIX_PATTERN = r'^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)'

# Rows missing any of these are dropped
KEY_FIELDS = ['employee_id', 'date', 'in_time', 'out_time']

# Output field -> lower-cased canonical column
FIELD_COLUMNS: Dict[str, str] = {
    'employee_id': CanonicalColumns.EMPLOYEE_ID.lower(),
    'date': CanonicalColumns.DATE.lower(),
    'first_name': CanonicalColumns.FIRST.lower(),
    'last_name': CanonicalColumns.LAST.lower(),
    'location': CanonicalColumns.LOCATION.lower(),
    'in_time': CanonicalColumns.IN_TIME.lower(),
    'out_time': CanonicalColumns.OUT_TIME.lower(),
    'role': CanonicalColumns.ROLE.lower(),
}

HOURS_COLUMNS: Dict[str, str] = {
    'regular_hours': CanonicalColumns.REGULAR_HOURS.lower(),
    'ot_hours': CanonicalColumns.OT_HOURS.lower(),
}


def load_shifts_file(file_path: str) -> str:
    """
    Read a shift CSV export as text, preserving line endings.

    Args:
        file_path: Path to the CSV file

    Returns:
        File content without a UTF-8 byte-order mark

    Raises:
        FileNotFoundError: If the file does not exist
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Shift data file not found: {file_path}")

    logger.info(f"Loading shift data from: {file_path}")
    with open(file_path, 'r', encoding='utf-8-sig', newline='') as handle:
        return handle.read()


def clean_cells(series: pd.Series) -> pd.Series:
    """Strip surrounding whitespace and quote characters from every cell."""
    return series.fillna('').astype(str).str.strip().str.strip('"\'').str.strip()


def parse_float_cells(series: pd.Series) -> pd.Series:
    """
    Parse hours cells the way parseFloat does: leading number, 0 when there is none.

    Args:
        series: Cleaned string cells

    Returns:
        Float series, never containing NaN
    """
    numeric_prefix = series.str.extract(FLOAT_PREFIX_PATTERN, expand=False)
    return pd.to_numeric(numeric_prefix, errors='coerce').fillna(0.0).astype(float)


def _read_records(csv_text: str, header_index: int, width: int) -> List[List[str]]:
    """
    Tokenize the data rows one physical line at a time, padded or truncated to the
    header width. Blank lines are skipped.

    An unbalanced quote only affects its own line; the rows after it are read normally.
    """
    records = []

    for line_number, line in enumerate(csv_text.splitlines()[header_index + 1:], start=header_index + 2):
        cells = split_csv_line(line)
        if not any(cell.strip() for cell in cells):
            continue
        if line.count('"') % 2:
            logger.warning(f"Line {line_number} has an unbalanced quote; its cells may be misread")
        records.append((cells + [''] * width)[:width])

    return records


def parse_shifts_csv(csv_text: str) -> List[RawShiftRow]:
    """
    Parse canonical-header CSV text into shift rows.

    Args:
        csv_text: CSV text whose header uses the canonical column names (any case)

    Returns:
        List of RawShiftRow in file order; rows missing employee id, date, in time
        or out time are dropped

    Raises:
        EmptyCsvError: If there is no header or no data rows
        MissingColumnError: If a required canonical column is absent
    """
    lines = csv_text.splitlines()
    header_index = find_header_line(lines)
    if header_index is None:
        raise EmptyCsvError()

    headers = [clean_header(cell).lower() for cell in split_csv_line(lines[header_index])]

    # Later duplicates overwrite earlier ones
    column_index: Dict[str, int] = {}
    for index, header in enumerate(headers):
        if header in column_index and header in FIELD_COLUMNS.values():
            logger.warning(f"Duplicate '{header}' column; using column {index + 1}")
        column_index[header] = index

    # CRITICAL: Validate all required columns exist
    for column in PARSER_REQUIRED_COLUMNS:
        if column not in column_index:
            raise MissingColumnError(column)

    records = _read_records(csv_text, header_index, len(headers))
    if not records:
        raise EmptyCsvError()

    raw_df = pd.DataFrame(records, columns=range(len(headers)), dtype=object)
    logger.debug(f"Read {len(raw_df)} data rows across {len(headers)} columns")

    shifts_df = pd.DataFrame(index=raw_df.index)
    for field, column in FIELD_COLUMNS.items():
        if column in column_index:
            shifts_df[field] = clean_cells(raw_df[column_index[column]])
        else:
            shifts_df[field] = ''

    for field, column in HOURS_COLUMNS.items():
        if column in column_index:
            shifts_df[field] = parse_float_cells(clean_cells(raw_df[column_index[column]]))
        else:
            shifts_df[field] = 0.0

    # Trailing blank rows and partial exports are expected - drop, don't fail
    complete_mask = (shifts_df[KEY_FIELDS] != '').all(axis=1)
    dropped = int((~complete_mask).sum())
    if dropped:
        logger.debug(f"Dropped {dropped} rows missing employee id, date, in time or out time")

    shifts_df = shifts_df[complete_mask]

    rows = [RawShiftRow(**record) for record in shifts_df.to_dict('records')]
    logger.info(f"Parsed {len(rows)} shift rows ({dropped} incomplete rows dropped)")

    return rows
