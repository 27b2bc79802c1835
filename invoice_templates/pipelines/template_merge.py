"""
Incremental template learning.

Each confirmed invoice is a new noisy observation of where an issuer
puts its fields. Merging blends it into the stored template:
- fields seen again move towards the new box, weighted by how many
  invoices the stored position already represents
- newly discovered fields are added as observed
- fields missing from this invoice keep their position but lose 5% confidence
"""

import logging
import math
from typing import Dict, List

from invoice_templates.models.region import FieldRegion

logger = logging.getLogger(__name__)

DEFAULT_DECAY_FACTOR = 0.95

# Confidence the incoming observation is assumed to carry when blended
OBSERVATION_CONFIDENCE = 1.0


def merge_regions(
    existing: List[FieldRegion],
    new_regions: List[FieldRegion],
    decay: float = DEFAULT_DECAY_FACTOR,
) -> List[FieldRegion]:
    """
    Merge a new observation into an existing template.

    Args:
        existing: Stored template (may be empty)
        new_regions: Regions observed on the current invoice
        decay: Confidence multiplier for stored fields not observed this time

    Returns:
        Merged template, one region per field name
    """
    check_unique_fields(new_regions)

    if not existing:
        return list(new_regions)

    existing_by_field: Dict[str, FieldRegion] = {r.field: r for r in existing}
    merged: List[FieldRegion] = []

    for region in new_regions:
        stored = existing_by_field.get(region.field)
        if stored is None:
            merged.append(region)
            logger.debug(f"Added new field {region.field}")
            continue

        merged.append(_blend(stored, region))
        logger.debug(
            f"Merged {region.field}: {stored.sample_count} -> {stored.sample_count + 1} samples"
        )

    observed = {r.field for r in new_regions}
    for stored in existing:
        if stored.field in observed:
            continue
        merged.append(stored.model_copy(update={"confidence": stored.confidence * decay}))
        logger.debug(f"Field {stored.field} not observed, confidence decayed to {stored.confidence * decay:.3f}")

    return merged


def _blend(stored: FieldRegion, observed: FieldRegion) -> FieldRegion:
    total = stored.sample_count + 1
    stored_weight = stored.sample_count / total
    new_weight = 1.0 / total

    return FieldRegion(
        field=observed.field,
        left=stored.left * stored_weight + observed.left * new_weight,
        top=stored.top * stored_weight + observed.top * new_weight,
        right=stored.right * stored_weight + observed.right * new_weight,
        bottom=stored.bottom * stored_weight + observed.bottom * new_weight,
        confidence=(stored.confidence + OBSERVATION_CONFIDENCE) / 2.0,
        sample_count=total,
    )


def check_unique_fields(regions: List[FieldRegion]) -> None:
    seen = set()
    for region in regions:
        if region.field in seen:
            raise ValueError(f"Duplicate field '{region.field}' in template regions")
        seen.add(region.field)


def region_distance(a: FieldRegion, b: FieldRegion) -> float:
    """
    How far apart two placements of the same field are.

    0.7 * distance between centers + 0.3 * relative area difference,
    all in normalized page units.
    """
    (ax, ay), (bx, by) = a.center, b.center
    center_distance = math.hypot(ax - bx, ay - by)

    size_diff = abs(a.area - b.area) / max(a.area, b.area, 0.001)

    return center_distance * 0.7 + size_diff * 0.3
