"""
Column normalization - Map scheduling-platform CSV headers onto the canonical schema.

Three mapping strategies, tried in order:
  1. Saved custom mapping (recorded header strings, matched case-insensitively)
  2. Known platform template (ordered alias lists per field)
  3. Unknown platform: union of every template's aliases

Only the header row is ever rewritten; data rows pass through untouched.
"""

import csv
import logging
from typing import Dict, List, Optional, Union

from config.constants import (
    ALL_FIELDS,
    CANONICAL_HEADERS,
    PLATFORM_DETECTION_MIN_SCORE,
    REQUIRED_FIELDS,
)
from config.platforms import PLATFORM_IDS, build_mega_alias_map, get_csv_template
from shift_reconciliation.models.data_models import ColumnMapping, SavedColumnMapping
from shift_reconciliation.utils.error_handlers import ColumnMappingError


logger = logging.getLogger(__name__)


def split_csv_line(line: str) -> List[str]:
    """Split one CSV line into raw cells, respecting double-quoted fields containing commas."""
    if not line:
        return []
    return next(csv.reader([line]))


def clean_header(value: str) -> str:
    """Strip quote characters, a byte-order mark and surrounding whitespace from a header cell."""
    return value.replace('\ufeff', '').replace('"', '').replace("'", '').strip()


def find_header_line(lines: List[str]) -> Optional[int]:
    """Index of the first non-empty line, or None when every line is blank."""
    for index, line in enumerate(lines):
        if line.replace('\ufeff', '').strip():
            return index
    return None


def extract_csv_headers(csv_text: str) -> List[str]:
    """
    Extract the header row from raw CSV content.

    Args:
        csv_text: Raw CSV string; only the first non-empty line is read

    Returns:
        Cleaned, trimmed header strings (empty list when the CSV is blank)
    """
    lines = csv_text.splitlines()
    header_index = find_header_line(lines)
    if header_index is None:
        return []

    return [clean_header(cell) for cell in split_csv_line(lines[header_index])]


def _missing_required(unmapped_fields: List[str]) -> List[str]:
    return [field for field in unmapped_fields if field in REQUIRED_FIELDS]


def _find_unclaimed(normalized_headers: List[str], target: str, claimed: Dict[int, str]) -> Optional[int]:
    """First column whose header equals target and is not yet claimed by another field."""
    for index, header in enumerate(normalized_headers):
        if header == target and index not in claimed:
            return index
    return None


def _resolve_aliases(headers: List[str], alias_source: Dict[str, List[str]]) -> Dict[str, object]:
    """First-match-wins resolution of every field against its ordered alias list."""
    normalized_headers = [header.lower().strip() for header in headers]

    mapping: Dict[str, int] = {}
    mapping_labels: Dict[str, str] = {}
    unmapped_fields: List[str] = []
    claimed: Dict[int, str] = {}

    for field in ALL_FIELDS:
        found = False

        for alias in alias_source.get(field, []):
            index = _find_unclaimed(normalized_headers, alias.lower().strip(), claimed)
            if index is not None:
                mapping[field] = index
                mapping_labels[field] = headers[index]
                claimed[index] = field
                found = True
                break

        if not found:
            unmapped_fields.append(field)

    return {
        'success': not _missing_required(unmapped_fields),
        'mapping': mapping,
        'mapping_labels': mapping_labels,
        'unmapped_fields': unmapped_fields,
    }


def _apply_saved_mapping(headers: List[str], saved: SavedColumnMapping) -> Dict[str, object]:
    """Resolve each field by exact case-insensitive match of its recorded header."""
    normalized_headers = [header.lower().strip() for header in headers]

    mapping: Dict[str, int] = {}
    mapping_labels: Dict[str, str] = {}
    unmapped_fields: List[str] = []
    claimed: Dict[int, str] = {}

    for field in ALL_FIELDS:
        saved_header = saved.header_map.get(field)
        index = None
        if saved_header:
            index = _find_unclaimed(normalized_headers, saved_header.lower().strip(), claimed)

        if index is None:
            unmapped_fields.append(field)
            continue

        mapping[field] = index
        mapping_labels[field] = headers[index]
        claimed[index] = field

    return {
        'success': not _missing_required(unmapped_fields),
        'mapping': mapping,
        'mapping_labels': mapping_labels,
        'unmapped_fields': unmapped_fields,
    }


def auto_map_columns(csv_text: str, platform: Optional[str] = None,
                     saved_mapping: Optional[SavedColumnMapping] = None) -> ColumnMapping:
    """
    Attempt to map CSV columns onto the canonical fields.

    Args:
        csv_text: Raw CSV string (only the header row is read)
        platform: Known platform id; None or "other" uses the union of all aliases
        saved_mapping: Optional saved custom mapping to try first

    Returns:
        ColumnMapping; success is False when any required field stays unmapped
    """
    headers = extract_csv_headers(csv_text)

    if saved_mapping is not None:
        resolved = _apply_saved_mapping(headers, saved_mapping)
        if resolved['success']:
            logger.info(f"Applied saved column mapping '{saved_mapping.name}'")
            return ColumnMapping(original_headers=headers, template_used=None, **resolved)

        logger.info(f"Saved column mapping '{saved_mapping.name}' no longer matches "
                    f"(unmapped: {resolved['unmapped_fields']}) - falling back to platform aliases")

    template = get_csv_template(platform)
    if template is None and platform is not None:
        logger.debug(f"No template for platform '{platform}' - using combined aliases of all platforms")

    alias_source = template['columns'] if template else build_mega_alias_map()
    resolved = _resolve_aliases(headers, alias_source)

    result = ColumnMapping(
        original_headers=headers,
        template_used=template['platform'] if template else None,
        **resolved
    )

    if result.success:
        logger.info(f"Mapped {len(result.mapping)} of {len(ALL_FIELDS)} fields "
                    f"using {result.template_used or 'combined aliases'}")
    else:
        logger.warning(f"Column mapping incomplete - missing required fields: "
                       f"{_missing_required(result.unmapped_fields)}")

    return result


def apply_manual_mapping(csv_headers: List[str], manual_map: Dict[str, Optional[int]]) -> ColumnMapping:
    """
    Build a ColumnMapping from human-supplied column assignments.

    Args:
        csv_headers: Headers as returned by extract_csv_headers
        manual_map: Field -> column index; missing, None or out-of-range indices leave the field unmapped

    Returns:
        ColumnMapping with template_used set to None

    Raises:
        ColumnMappingError: If two fields are assigned the same column
    """
    unknown = [field for field in manual_map if field not in ALL_FIELDS]
    if unknown:
        raise ColumnMappingError(f"Unknown fields in manual mapping: {unknown}")

    mapping: Dict[str, int] = {}
    mapping_labels: Dict[str, str] = {}
    unmapped_fields: List[str] = []
    claimed: Dict[int, str] = {}

    for field in ALL_FIELDS:
        index = manual_map.get(field)
        if index is None or index < 0 or index >= len(csv_headers):
            unmapped_fields.append(field)
            continue

        if index in claimed:
            raise ColumnMappingError(
                f"Column {index} ('{csv_headers[index]}') is assigned to both {claimed[index]} and {field}"
            )

        mapping[field] = index
        mapping_labels[field] = csv_headers[index]
        claimed[index] = field

    return ColumnMapping(
        success=not _missing_required(unmapped_fields),
        mapping=mapping,
        mapping_labels=mapping_labels,
        unmapped_fields=unmapped_fields,
        original_headers=list(csv_headers),
        template_used=None,
    )


def detect_platform(csv_text: str) -> Optional[str]:
    """
    Guess the source platform from header fingerprints.

    Each platform scores one point per field with at least one alias present in the
    header set. The best score wins only when it reaches the high-confidence threshold.

    Returns:
        Platform id, or None when no platform scores high enough
    """
    normalized_headers = {header.lower().strip() for header in extract_csv_headers(csv_text)}

    best_match: Optional[str] = None
    best_score = 0

    for platform_id in PLATFORM_IDS:
        template = get_csv_template(platform_id)
        if template is None:
            continue

        score = 0
        for aliases in template['columns'].values():
            if any(alias.lower() in normalized_headers for alias in aliases):
                score += 1

        if score > best_score:
            best_score = score
            best_match = platform_id

    if best_score >= PLATFORM_DETECTION_MIN_SCORE:
        logger.info(f"Detected platform '{best_match}' ({best_score}/{len(ALL_FIELDS)} fields)")
        return best_match

    logger.info(f"No platform detected (best score {best_score}/{len(ALL_FIELDS)})")
    return None


def _quote_if_needed(value: str) -> str:
    if ',' in value or '"' in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def _mapping_items(mapping: Union[ColumnMapping, Dict[str, int]]) -> Dict[str, int]:
    return mapping.mapping if isinstance(mapping, ColumnMapping) else mapping


def normalize_csv(csv_text: str, mapping: Union[ColumnMapping, Dict[str, int]]) -> str:
    """
    Rewrite the header row so mapped columns carry the canonical header names.

    Only the header line changes; every data row, blank line and line ending is
    returned byte-for-byte as it was.

    Args:
        csv_text: Raw CSV string from the platform export
        mapping: Resolved mapping (ColumnMapping or field -> column index)

    Returns:
        CSV string ready for the row parser
    """
    lines = csv_text.splitlines(keepends=True)
    header_index = find_header_line(lines)
    if header_index is None:
        return csv_text

    header_line = lines[header_index]
    header_body = header_line.rstrip('\r\n')
    line_ending = header_line[len(header_body):]

    new_headers = split_csv_line(header_body)
    renamed: Dict[int, str] = {}
    for field, column_index in _mapping_items(mapping).items():
        if column_index < len(new_headers):
            renamed[column_index] = CANONICAL_HEADERS[field]

    # An unmapped column must not shadow a canonical name written elsewhere
    canonical_written = {header.lower() for header in renamed.values()}
    for column_index, header in enumerate(new_headers):
        if column_index not in renamed and clean_header(header).lower() in canonical_written:
            logger.warning(f"Unmapped column '{clean_header(header)}' collides with a mapped column; "
                           f"renaming it to '{clean_header(header)} (unmapped)'")
            new_headers[column_index] = f"{clean_header(header)} (unmapped)"

    for column_index, header in renamed.items():
        new_headers[column_index] = header

    lines[header_index] = ','.join(_quote_if_needed(header) for header in new_headers) + line_ending
    return ''.join(lines)


def generate_mapping_preview(csv_text: str, mapping: Union[ColumnMapping, Dict[str, int]],
                             max_rows: int = 3) -> List[Dict[str, str]]:
    """
    Preview the first data rows as field -> value, for human confirmation of a mapping.

    Args:
        csv_text: Raw CSV string
        mapping: Resolved mapping
        max_rows: Number of data rows to include

    Returns:
        List of dictionaries keyed by logical field
    """
    lines = csv_text.splitlines()
    header_index = find_header_line(lines)
    if header_index is None:
        return []

    items = _mapping_items(mapping)
    preview: List[Dict[str, str]] = []

    for line in lines[header_index + 1:]:
        if len(preview) >= max_rows:
            break
        if not line.strip():
            continue

        cells = split_csv_line(line)
        preview.append({
            field: clean_header(cells[index]) if index < len(cells) else ''
            for field, index in items.items()
        })

    return preview


def ensure_mapping_success(mapping: ColumnMapping, source_name: str) -> ColumnMapping:
    """
    Raise when a mapping is missing required fields, so callers can ask for a manual mapping.

    Raises:
        ColumnMappingError: If mapping.success is False
    """
    if not mapping.success:
        missing = _missing_required(mapping.unmapped_fields)
        raise ColumnMappingError(
            f"Could not map required columns for {source_name} CSV",
            unmapped_fields=missing,
            headers=", ".join(mapping.original_headers)
        )
    return mapping
