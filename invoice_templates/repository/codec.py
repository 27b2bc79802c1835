"""
Region codec: template <-> stored JSON blob.

Blob format (must stay readable by every older writer):

    {"regions": [{"field": "vat", "l": 0.1, "t": 0.2, "r": 0.3, "b": 0.25, "c": 1.0, "n": 1}]}

"c" (confidence) and "n" (sample count) were added after the first
templates were written. They are always written and default to 1.0 and 1
when missing on read. New optional attributes follow the same
absent => default rule; there is no version field.
"""

import json
from typing import Any, Dict, List

from pydantic import ValidationError

from invoice_templates.errors import TemplateDecodeError
from invoice_templates.models.region import FieldRegion

REGIONS_KEY = "regions"

DEFAULT_CONFIDENCE = 1.0
DEFAULT_SAMPLE_COUNT = 1

_REQUIRED_KEYS = ("field", "l", "t", "r", "b")
_NUMBER_KEYS = ("l", "t", "r", "b", "c")


def encode(regions: List[FieldRegion]) -> str:
    """Serialize a template to its compact JSON blob."""
    return json.dumps({
        REGIONS_KEY: [
            {
                "field": region.field,
                "l": region.left,
                "t": region.top,
                "r": region.right,
                "b": region.bottom,
                "c": region.confidence,
                "n": region.sample_count,
            }
            for region in regions
        ]
    })


def decode(blob: str) -> List[FieldRegion]:
    """
    Parse a stored blob back into field regions.

    A document without a usable "regions" array is an empty template.
    Anything that is not a JSON object, a region entry that cannot be
    read, or a field stored twice raises TemplateDecodeError.
    """
    try:
        document = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise TemplateDecodeError(f"Template blob is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise TemplateDecodeError(
            f"Template blob must be a JSON object, got {type(document).__name__}"
        )

    entries = document.get(REGIONS_KEY)
    if not isinstance(entries, list):
        return []

    regions: List[FieldRegion] = []
    seen = set()
    for index, entry in enumerate(entries):
        region = _decode_region(entry, index)
        if region.field in seen:
            raise TemplateDecodeError(f"Duplicate field '{region.field}' at region #{index}")
        seen.add(region.field)
        regions.append(region)
    return regions


def _decode_region(entry: Any, index: int) -> FieldRegion:
    if not isinstance(entry, dict):
        raise TemplateDecodeError(f"Region #{index} is not an object")

    missing = [key for key in _REQUIRED_KEYS if key not in entry]
    if missing:
        raise TemplateDecodeError(f"Region #{index} is missing {', '.join(missing)}")

    # Stored values are not coerced; a string or boolean number is corruption.
    if not isinstance(entry["field"], str):
        raise TemplateDecodeError(f"Region #{index} has invalid field: {entry['field']!r}")
    for key in _NUMBER_KEYS:
        value = entry.get(key)
        if value is not None and not _is_number(value):
            raise TemplateDecodeError(f"Region #{index} has invalid {key}: {value!r}")
    count = entry.get("n")
    if count is not None and (isinstance(count, bool) or not isinstance(count, int)):
        raise TemplateDecodeError(f"Region #{index} has invalid n: {count!r}")

    try:
        return FieldRegion(
            field=entry["field"],
            left=entry["l"],
            top=entry["t"],
            right=entry["r"],
            bottom=entry["b"],
            confidence=_optional(entry, "c", DEFAULT_CONFIDENCE),
            sample_count=_optional(entry, "n", DEFAULT_SAMPLE_COUNT),
        )
    except ValidationError as e:
        raise TemplateDecodeError(f"Region #{index} is invalid: {e}") from e


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional(entry: Dict[str, Any], key: str, default: Any) -> Any:
    value = entry.get(key)
    return default if value is None else value
