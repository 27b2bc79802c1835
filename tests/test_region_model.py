"""
Tests for FieldRegion / FieldObservation models.
"""

import pytest
from pydantic import ValidationError

from invoice_templates.models.region import FieldObservation, FieldRegion


class TestFieldRegion:
    def test_defaults(self):
        region = FieldRegion(field="vat", left=0.1, top=0.2, right=0.3, bottom=0.25)

        assert region.confidence == 1.0
        assert region.sample_count == 1

    def test_empty_field_rejected(self):
        with pytest.raises(ValidationError):
            FieldRegion(field="", left=0.1, top=0.2, right=0.3, bottom=0.25)

    def test_sample_count_at_least_one(self):
        with pytest.raises(ValidationError):
            FieldRegion(field="vat", left=0.1, top=0.2, right=0.3, bottom=0.25, sample_count=0)

    def test_confidence_not_clamped(self):
        region = FieldRegion(field="vat", left=0.1, top=0.2, right=0.3, bottom=0.25, confidence=1.4)

        assert region.confidence == 1.4

    def test_schema_carries_example(self):
        """The API docs show a filled-in region."""
        example = FieldRegion.model_json_schema()["example"]

        assert example["field"] == "invoice_number"
        assert FieldRegion(**example).sample_count == 1

    def test_center_and_area(self):
        region = FieldRegion(field="vat", left=0.1, top=0.2, right=0.5, bottom=0.4)

        assert region.center == pytest.approx((0.3, 0.3))
        assert region.area == pytest.approx(0.08)

    def test_from_pixels(self):
        region = FieldRegion.from_pixels("total", (500, 1000, 750, 1100), 1000, 2000, confidence=0.7)

        assert (region.left, region.top, region.right, region.bottom) == pytest.approx((0.5, 0.5, 0.75, 0.55))
        assert region.confidence == 0.7
        assert region.sample_count == 1

    def test_from_pixels_invalid_size(self):
        with pytest.raises(ValueError, match="Invalid image size"):
            FieldRegion.from_pixels("total", (1, 1, 2, 2), 0, 100)

    def test_to_pixels_unpadded(self):
        region = FieldRegion(field="vat", left=0.1, top=0.1, right=0.4, bottom=0.2)

        assert region.to_pixels(1000, 1000, padded=False) == (100, 100, 400, 200)

    def test_to_pixels_padding_grows_as_confidence_drops(self):
        sure = FieldRegion(field="vat", left=0.5, top=0.5, right=0.6, bottom=0.6, confidence=1.0)
        unsure = FieldRegion(field="vat", left=0.5, top=0.5, right=0.6, bottom=0.6, confidence=0.0)

        assert sure.to_pixels(1000, 1000) == (400, 400, 700, 700)
        assert unsure.to_pixels(1000, 1000) == (350, 350, 750, 750)

    def test_to_pixels_clipped_to_image(self):
        region = FieldRegion(field="vat", left=0.0, top=0.0, right=1.0, bottom=1.0)

        assert region.to_pixels(100, 100) == (0, 0, 100, 100)

    def test_small_images_use_minimum_padding(self):
        region = FieldRegion(field="vat", left=0.5, top=0.5, right=0.5, bottom=0.5)

        assert region.to_pixels(100, 100) == (30, 30, 70, 70)


class TestFieldObservation:
    def test_to_region(self):
        observation = FieldObservation(field="date", box=(200, 40, 400, 60), confidence=0.9)

        region = observation.to_region(1000, 1000)

        assert region.field == "date"
        assert (region.left, region.top, region.right, region.bottom) == pytest.approx((0.2, 0.04, 0.4, 0.06))
        assert region.confidence == 0.9
