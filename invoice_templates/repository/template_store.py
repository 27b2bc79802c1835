"""
Issuer template store.

Keeps one template per issuer key on top of a key-value backend and
applies incremental learning on merge.

Merges and saves for the same issuer key are serialized with a per-key
asyncio lock, so two invoices from one issuer processed at the same time
cannot overwrite each other's update. The lock only covers callers that
share this TemplateStore instance (one process). Different keys never
wait on each other.
"""

import asyncio
import logging
import re
import weakref
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from invoice_templates.config.store_config import StoreConfig, build_backend
from invoice_templates.errors import TemplateDecodeError
from invoice_templates.models.region import FieldRegion
from invoice_templates.pipelines.template_merge import (
    DEFAULT_DECAY_FACTOR,
    merge_regions,
    check_unique_fields,
)
from invoice_templates.repository import codec
from invoice_templates.repository.backends import TemplateBackend

logger = logging.getLogger(__name__)

_NON_KEY_CHARS = re.compile(r"[^a-z0-9]")

Screen = Callable[[List[FieldRegion], List[FieldRegion]], List[FieldRegion]]


def normalize_issuer_key(raw: Optional[str]) -> Optional[str]:
    """
    Normalize an issuer identity for template storage.

    'UAB "Acme" LT-1234' -> 'uabacmelt1234'. Blank input gives None.
    """
    if raw is None or not raw.strip():
        return None
    key = _NON_KEY_CHARS.sub("", raw.strip().lower())
    return key or None


def issuer_keys(*candidates: Optional[str]) -> List[str]:
    """Normalized, de-duplicated keys for every known issuer identity."""
    keys: List[str] = []
    for candidate in candidates:
        key = normalize_issuer_key(candidate)
        if key and key not in keys:
            keys.append(key)
    return keys


class TemplateStore:
    """
    Per-issuer field templates with incremental learning.

    All operations are coroutines; the backend decides whether they
    actually suspend.
    """

    def __init__(self, backend: TemplateBackend, decay_factor: float = DEFAULT_DECAY_FACTOR):
        self.backend = backend
        self.decay_factor = decay_factor
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, issuer_key: str) -> asyncio.Lock:
        lock = self._locks.get(issuer_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[issuer_key] = lock
        return lock

    async def load(self, issuer_key: str) -> List[FieldRegion]:
        """Load the template for an issuer; an unknown issuer has an empty one."""
        blob = await self.backend.get(issuer_key)
        if blob is None:
            logger.debug(f"No template found for issuer key: '{issuer_key}'")
            return []

        try:
            regions = codec.decode(blob)
        except TemplateDecodeError as e:
            raise TemplateDecodeError(str(e), issuer_key=issuer_key) from e

        logger.debug(f"Loaded template for '{issuer_key}': {len(regions)} regions")
        return regions

    async def save(self, issuer_key: str, regions: List[FieldRegion]) -> None:
        """Replace the template for an issuer."""
        check_unique_fields(regions)
        async with self._lock_for(issuer_key):
            await self._write(issuer_key, regions)

    async def merge(
        self,
        issuer_key: str,
        new_regions: List[FieldRegion],
        screen: Optional[Screen] = None,
    ) -> List[FieldRegion]:
        """
        Merge regions observed on one invoice into the issuer's template.

        Args:
            issuer_key: Normalized issuer key
            new_regions: Regions observed on the invoice
            screen: Optional filter called as screen(existing, new_regions)
                under the key lock, so it judges the template that is
                actually merged into. If it keeps nothing, nothing is written.

        Returns:
            The merged template as stored
        """
        check_unique_fields(new_regions)
        async with self._lock_for(issuer_key):
            existing = await self.load(issuer_key)
            if screen is not None:
                new_regions = screen(existing, new_regions)
                if not new_regions:
                    logger.debug(f"No regions left to merge for '{issuer_key}'")
                    return existing
            merged = merge_regions(existing, new_regions, decay=self.decay_factor)
            await self._write(issuer_key, merged)

        if existing:
            logger.info(f"Merged template for '{issuer_key}': {len(merged)} regions")
        else:
            logger.info(f"Created template for '{issuer_key}': {len(merged)} regions")
        return merged

    async def _write(self, issuer_key: str, regions: List[FieldRegion]) -> None:
        # A backend write may run on in a worker thread after its caller is
        # cancelled; the key lock must stay held until it has landed.
        write = asyncio.ensure_future(self.backend.set(issuer_key, codec.encode(regions)))
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            while not write.done():
                try:
                    await asyncio.wait([write])
                except asyncio.CancelledError:
                    continue
            if not write.cancelled() and write.exception() is not None:
                logger.warning(f"Write for '{issuer_key}' failed after cancellation: {write.exception()}")
            raise

    async def load_first(self, keys: Iterable[str]) -> Tuple[Optional[str], List[FieldRegion]]:
        """
        Load the first non-empty template among several issuer keys.

        Returns:
            (matched key, regions), or (None, []) when no key has a template
        """
        for key in keys:
            regions = await self.load(key)
            if regions:
                logger.debug(f"Template found for key '{key}': {len(regions)} regions")
                return key, regions
        return None, []

    async def merge_all(
        self, keys: Iterable[str], new_regions: List[FieldRegion]
    ) -> Dict[str, List[FieldRegion]]:
        """Merge the same observation under every key of one issuer."""
        results: Dict[str, List[FieldRegion]] = {}
        for key in keys:
            results[key] = await self.merge(key, new_regions)
        return results


# Global store instance
_template_store: Optional[TemplateStore] = None


def get_template_store() -> TemplateStore:
    """Get or create global template store instance."""
    global _template_store
    if _template_store is None:
        config = StoreConfig.from_env()
        _template_store = TemplateStore(build_backend(config), decay_factor=config.decay_factor)
    return _template_store


def reset_template_store() -> None:
    """Reset the global store (for testing)."""
    global _template_store
    if _template_store is not None:
        _template_store.backend.close()
    _template_store = None
