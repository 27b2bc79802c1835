"""
Invoice Issuer Templates

Remembers, per issuer (company number, name or VAT number), where each
invoice field sits on the page, and refines that memory as more invoices
from the same issuer are confirmed.

Usage:
    from invoice_templates import FieldRegion, TemplateStore, MemoryBackend

    store = TemplateStore(MemoryBackend())
    merged = await store.merge("acme", [FieldRegion(field="total", left=0.6, top=0.8, right=0.9, bottom=0.85)])
"""

from .errors import TemplateStoreError, TemplateDecodeError, TemplateBackendError
from .models.region import FieldRegion, FieldObservation
from .repository.codec import encode, decode
from .repository.backends import TemplateBackend, MemoryBackend, SQLiteBackend
from .repository.template_store import (
    TemplateStore,
    normalize_issuer_key,
    issuer_keys,
    get_template_store,
    reset_template_store,
)
from .pipelines.template_merge import merge_regions, region_distance
from .pipelines.template_learner import TemplateLearner, LearningResult

__all__ = [
    "TemplateStoreError",
    "TemplateDecodeError",
    "TemplateBackendError",
    "FieldRegion",
    "FieldObservation",
    "encode",
    "decode",
    "TemplateBackend",
    "MemoryBackend",
    "SQLiteBackend",
    "TemplateStore",
    "normalize_issuer_key",
    "issuer_keys",
    "get_template_store",
    "reset_template_store",
    "merge_regions",
    "region_distance",
    "TemplateLearner",
    "LearningResult",
]
