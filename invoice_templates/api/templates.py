"""
Template API endpoints.

Lets the review/extraction layer read an issuer's template to highlight
or re-extract fields, replace it, or merge a confirmed invoice into it.
"""

from typing import List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from invoice_templates.errors import TemplateBackendError, TemplateDecodeError
from invoice_templates.models.region import FieldRegion
from invoice_templates.repository.template_store import get_template_store


router = APIRouter(prefix="/templates", tags=["templates"])


class TemplateUpdate(BaseModel):
    """Regions submitted for an issuer."""
    regions: List[FieldRegion] = Field(default_factory=list)


class TemplateResponse(BaseModel):
    """Template stored for an issuer."""
    issuer_key: str
    regions: List[FieldRegion] = Field(default_factory=list)


def _to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, TemplateDecodeError):
        return HTTPException(status_code=409, detail=f"Stored template is corrupt: {e}")
    if isinstance(e, TemplateBackendError):
        return HTTPException(status_code=503, detail=f"Template storage unavailable: {e}")
    return HTTPException(status_code=422, detail=str(e))


@router.get("/{issuer_key}", response_model=TemplateResponse)
async def get_template(issuer_key: str):
    """Get the template for an issuer (empty when none has been learned yet)."""
    try:
        regions = await get_template_store().load(issuer_key)
    except (TemplateDecodeError, TemplateBackendError) as e:
        raise _to_http_error(e)
    return TemplateResponse(issuer_key=issuer_key, regions=regions)


@router.put("/{issuer_key}", response_model=TemplateResponse)
async def replace_template(issuer_key: str, update: TemplateUpdate):
    """Replace the template for an issuer."""
    try:
        await get_template_store().save(issuer_key, update.regions)
    except (TemplateBackendError, ValueError) as e:
        raise _to_http_error(e)
    return TemplateResponse(issuer_key=issuer_key, regions=update.regions)


@router.post("/{issuer_key}/merge", response_model=TemplateResponse)
async def merge_template(issuer_key: str, update: TemplateUpdate):
    """
    Merge field regions from a confirmed invoice into the issuer's template.

    Fields seen again are averaged in, new fields are added and fields
    missing from this invoice lose some confidence.
    """
    try:
        merged = await get_template_store().merge(issuer_key, update.regions)
    except (TemplateDecodeError, TemplateBackendError, ValueError) as e:
        raise _to_http_error(e)
    return TemplateResponse(issuer_key=issuer_key, regions=merged)
