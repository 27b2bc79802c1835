"""
Template learning from confirmed invoices.

Once the user confirms an invoice, the caller knows which OCR box holds
which field. The learner turns those boxes into normalized regions,
drops observations that land far from where the issuer usually puts the
field, and merges the rest under every key the issuer is known by so
the template is found whichever identity is recognized next time.
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from invoice_templates.config.store_config import StoreConfig
from invoice_templates.models.region import FieldObservation, FieldRegion
from invoice_templates.pipelines.template_merge import region_distance
from invoice_templates.repository.template_store import get_template_store

logger = logging.getLogger(__name__)

DEFAULT_OUTLIER_THRESHOLD = 0.15
DEFAULT_MIN_MATCH_QUALITY = 0.5

Observation = Union[FieldRegion, FieldObservation]


class LearningResult(BaseModel):
    """Outcome of learning one confirmed invoice."""
    keys: List[str] = Field(default_factory=list, description="Issuer keys the template was merged under")
    accepted: List[str] = Field(default_factory=list, description="Fields merged into the template")
    low_quality: List[str] = Field(default_factory=list, description="Fields rejected for a weak OCR match")
    outliers: List[str] = Field(default_factory=list, description="Fields rejected as positional outliers")
    skipped: bool = Field(False, description="Nothing was written")


class TemplateLearner:
    """
    Learns issuer templates from confirmed field positions.

    Observations whose match quality (confidence) is below min_match_quality
    are dropped. Outlier detection compares the rest with the template
    stored under the first issuer key, under that key's merge lock.
    """

    def __init__(
        self,
        store,
        outlier_threshold: float = DEFAULT_OUTLIER_THRESHOLD,
        min_match_quality: float = DEFAULT_MIN_MATCH_QUALITY,
    ):
        self.store = store
        self.outlier_threshold = outlier_threshold
        self.min_match_quality = min_match_quality

    async def learn(
        self,
        keys: Sequence[str],
        observations: Sequence[Observation],
        image_width: Optional[int] = None,
        image_height: Optional[int] = None,
    ) -> LearningResult:
        """
        Learn from one confirmed invoice.

        Args:
            keys: Normalized issuer keys (see issuer_keys())
            observations: Normalized regions or pixel observations
            image_width: Page width in pixels, required for pixel observations
            image_height: Page height in pixels, required for pixel observations

        Returns:
            LearningResult listing accepted and rejected fields
        """
        if not keys:
            logger.warning("No issuer keys provided, skipping template learning")
            return LearningResult(skipped=True)
        if not observations:
            logger.warning(f"No fields observed, skipping template update for keys: {list(keys)}")
            return LearningResult(keys=list(keys), skipped=True)

        regions = [self._to_region(o, image_width, image_height) for o in observations]

        low_quality: List[str] = []
        candidates: List[FieldRegion] = []
        for region in regions:
            if region.confidence < self.min_match_quality:
                logger.warning(
                    f"Low quality match for {region.field} (quality: {region.confidence}), skipping"
                )
                low_quality.append(region.field)
                continue
            candidates.append(region)

        outliers: List[str] = []
        accepted: List[FieldRegion] = []

        def screen(existing: List[FieldRegion], new_regions: List[FieldRegion]) -> List[FieldRegion]:
            kept, rejected = self._split_outliers(existing, new_regions)
            accepted.extend(kept)
            outliers.extend(rejected)
            return kept

        if candidates:
            await self.store.merge(keys[0], candidates, screen=screen)

        if not accepted:
            logger.warning(f"No usable fields observed, skipping template update for keys: {list(keys)}")
            return LearningResult(keys=list(keys), low_quality=low_quality, outliers=outliers, skipped=True)

        for key in keys[1:]:
            await self.store.merge(key, accepted)
        logger.info(
            f"Template merged under {len(keys)} keys with {len(accepted)} fields: "
            f"{', '.join(r.field for r in accepted)}"
        )
        return LearningResult(
            keys=list(keys),
            accepted=[r.field for r in accepted],
            low_quality=low_quality,
            outliers=outliers,
        )

    def _split_outliers(
        self, existing: List[FieldRegion], regions: List[FieldRegion]
    ) -> Tuple[List[FieldRegion], List[str]]:
        existing_by_field = {r.field: r for r in existing}
        kept: List[FieldRegion] = []
        outliers: List[str] = []
        for region in regions:
            stored = existing_by_field.get(region.field)
            if stored is not None:
                distance = region_distance(stored, region)
                if distance > self.outlier_threshold:
                    logger.warning(
                        f"Outlier detected for {region.field}: distance={distance:.3f} "
                        f"(threshold={self.outlier_threshold}), skipping update"
                    )
                    outliers.append(region.field)
                    continue
                logger.debug(f"Position for {region.field} is consistent (distance={distance:.3f})")
            kept.append(region)
        return kept, outliers

    @staticmethod
    def _to_region(
        observation: Observation,
        image_width: Optional[int],
        image_height: Optional[int],
    ) -> FieldRegion:
        if isinstance(observation, FieldRegion):
            return observation
        if image_width is None or image_height is None:
            raise ValueError(f"Image size required to normalize pixel box for {observation.field}")
        return observation.to_region(image_width, image_height)


def get_template_learner() -> TemplateLearner:
    """Learner bound to the global template store."""
    config = StoreConfig.from_env()
    return TemplateLearner(
        get_template_store(),
        outlier_threshold=config.outlier_threshold,
        min_match_quality=config.min_match_quality,
    )
