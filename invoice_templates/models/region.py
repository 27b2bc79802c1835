"""
Field region models for issuer templates.

A FieldRegion is one remembered field location for one issuer: a
bounding box in page fractions (0.0-1.0) plus how much we trust it and
how many confirmed invoices contributed to it.
"""

from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field


PixelBox = Tuple[int, int, int, int]


class FieldRegion(BaseModel):
    """
    Remembered location of one semantic field on an issuer's invoices.

    Coordinates are normalized to page width/height. left < right and
    top < bottom are expected but not validated here; callers validate
    what OCR hands them.
    """
    field: str = Field(min_length=1, description="Semantic field name, e.g. 'invoice_number'")
    left: float = Field(description="Left edge (fraction of page width)")
    top: float = Field(description="Top edge (fraction of page height)")
    right: float = Field(description="Right edge (fraction of page width)")
    bottom: float = Field(description="Bottom edge (fraction of page height)")
    confidence: float = Field(1.0, description="Heuristic reliability of this position (0.0-1.0)")
    sample_count: int = Field(1, ge=1, description="Invoices that contributed to this position")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "field": "invoice_number",
                "left": 0.10,
                "top": 0.05,
                "right": 0.40,
                "bottom": 0.08,
                "confidence": 1.0,
                "sample_count": 1,
            }
        }
    )

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    @property
    def area(self) -> float:
        return (self.right - self.left) * (self.bottom - self.top)

    @classmethod
    def from_pixels(
        cls,
        field: str,
        box: PixelBox,
        image_width: int,
        image_height: int,
        confidence: float = 1.0,
    ) -> "FieldRegion":
        """
        Build a region from an absolute pixel box.

        Args:
            field: Semantic field name
            box: (left, top, right, bottom) in pixels
            image_width: Page image width in pixels
            image_height: Page image height in pixels
            confidence: Match quality of the observation

        Returns:
            FieldRegion with normalized coordinates and a single sample
        """
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"Invalid image size {image_width}x{image_height}")

        left, top, right, bottom = box
        return cls(
            field=field,
            left=left / image_width,
            top=top / image_height,
            right=right / image_width,
            bottom=bottom / image_height,
            confidence=confidence,
            sample_count=1,
        )

    def to_pixels(self, image_width: int, image_height: int, padded: bool = True) -> PixelBox:
        """
        Map the region back onto a page image of the given size.

        With padded=True the box is widened by 10% of the page dimension
        (at least 20px), scaled up to 1.5x for low-confidence regions,
        and clipped to the image.
        """
        if image_width <= 0 or image_height <= 0:
            raise ValueError(f"Invalid image size {image_width}x{image_height}")

        pad_x = pad_y = 0
        if padded:
            multiplier = 1.0 + (1.0 - self.confidence) * 0.5
            pad_x = int(max(20, int(image_width * 0.10)) * multiplier)
            pad_y = int(max(20, int(image_height * 0.10)) * multiplier)

        return (
            max(0, int(self.left * image_width) - pad_x),
            max(0, int(self.top * image_height) - pad_y),
            min(image_width, int(self.right * image_width) + pad_x),
            min(image_height, int(self.bottom * image_height) + pad_y),
        )


class FieldObservation(BaseModel):
    """A field located on one scanned page, in absolute pixels."""
    field: str = Field(min_length=1)
    box: PixelBox = Field(description="(left, top, right, bottom) in pixels")
    confidence: float = Field(1.0, description="Match quality between confirmed value and OCR text")

    def to_region(self, image_width: int, image_height: int) -> FieldRegion:
        return FieldRegion.from_pixels(
            self.field, self.box, image_width, image_height, confidence=self.confidence
        )
