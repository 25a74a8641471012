"""
Change detection processor tests.
"""

import numpy as np
import pytest

from core.models.enums import ChangeMethod
from exceptions import ValidationError
from infrastructure.raster_source import decode_raster
from services.processors.change_detection import ChangeDetectionProcessor, compute_change
from tests.factories.model_factories import StaticRasterSource, make_context, make_raster, square

CHANGE_MAP = "change-detection/job-1/change_map.tif"


def _after_with_growth():
    """Ones everywhere except the two northern rows, which hold 3."""
    after = np.ones((10, 10))
    after[:2, :] = 3.0
    return after


@pytest.fixture
def context():
    return make_context(job_type="change_detection")


@pytest.fixture
def raster_source():
    before_nodata = np.ones((10, 10))
    before_nodata[9, 9] = -9999.0
    return StaticRasterSource({
        "before": make_raster(np.ones((10, 10))),
        "after": make_raster(_after_with_growth()),
        "before-nodata": make_raster(before_nodata, nodata=-9999.0),
        "small": make_raster(np.ones((5, 5)), bounds=(0, 0, 5, 5)),
    })


@pytest.fixture
def processor(raster_source, storage):
    return ChangeDetectionProcessor(raster_source, storage)


class TestComputeChange:

    def test_simple_difference(self):
        change = compute_change(np.array([[1.0, 2.0]]), np.array([[1.05, 3.0]]),
                                ChangeMethod.SIMPLE_DIFFERENCE, 0.1)
        assert change.tolist() == [[0.0, 1.0]]

    def test_normalized_difference(self):
        change = compute_change(np.array([[0.0, 1.0]]), np.array([[0.0, 3.0]]),
                                ChangeMethod.NORMALIZED_DIFFERENCE, 0.1)
        assert change.tolist() == [[0.0, 0.5]]

    def test_ratio_with_zero_before(self):
        change = compute_change(np.array([[0.0, 0.0, 2.0]]), np.array([[0.0, 5.0, 1.0]]),
                                ChangeMethod.RATIO, 0.1)
        assert change.tolist() == [[0.0, 1.0, 0.5]]

    def test_threshold_is_inclusive(self):
        change = compute_change(np.array([[0.0]]), np.array([[0.25]]),
                                ChangeMethod.SIMPLE_DIFFERENCE, 0.25)
        assert change[0, 0] == 0.0

    def test_negative_change_kept(self):
        change = compute_change(np.array([[3.0]]), np.array([[1.0]]),
                                ChangeMethod.SIMPLE_DIFFERENCE, 0.1)
        assert change[0, 0] == -2.0


class TestChangeValidation:

    @pytest.mark.parametrize("params", [
        {},
        {"before_image": "before"},
        {"after_image": "after"},
        {"before_image": "", "after_image": "after"},
    ])
    def test_both_images_required(self, processor, context, params):
        with pytest.raises(ValidationError, match="Both before_image and after_image are required"):
            processor.process(params, context)

    @pytest.mark.parametrize("threshold", [-0.1, "abc", True, float("nan")])
    def test_bad_threshold(self, processor, threshold):
        with pytest.raises(ValidationError, match="Threshold must be a non-negative number"):
            processor.validate({"before_image": "before", "after_image": "after", "threshold": threshold})

    def test_threshold_defaults(self, processor):
        params = processor.validate({"before_image": "before", "after_image": "after"})
        assert params.threshold == 0.1
        assert params.method == ChangeMethod.SIMPLE_DIFFERENCE

    def test_zero_threshold_allowed(self, processor):
        params = processor.validate({"before_image": "before", "after_image": "after", "threshold": 0})
        assert params.threshold == 0.0

    def test_unknown_method(self, processor):
        with pytest.raises(ValidationError, match="Unsupported method"):
            processor.validate({"before_image": "before", "after_image": "after", "method": "magic"})

    def test_bad_mask(self, processor):
        with pytest.raises(ValidationError, match="Invalid or missing geometry"):
            processor.validate({"before_image": "before", "after_image": "after", "mask_geometry": {}})


class TestChangeRun:

    def test_simple_difference(self, processor, storage, context):
        result = processor.process({"before_image": "before", "after_image": "after"}, context)

        assert result["method_used"] == "simple_difference"
        assert result["threshold_used"] == 0.1
        assert result["change_map_url"] == f"https://artifacts.test/{CHANGE_MAP}"
        assert storage.content_types[CHANGE_MAP] == "image/tiff"

        stats = result["statistics"]
        assert stats["total_pixels"] == 100
        assert stats["changed_pixels"] == 20
        assert stats["unchanged_pixels"] == 80
        assert stats["excluded_pixels"] == 0
        assert stats["change_percentage"] == pytest.approx(20.0)
        assert stats["change_areas"] == {
            "positive_change": pytest.approx(20.0),
            "negative_change": 0.0,
            "no_change": pytest.approx(80.0),
        }

        metadata = result["processing_metadata"]
        assert metadata["before_image_info"]["width"] == 10
        assert metadata["after_image_info"]["bounds"] == {"minX": 0, "minY": 0, "maxX": 10, "maxY": 10}
        assert metadata["processing_time"] >= 0

    def test_change_map_content(self, processor, storage, context):
        processor.process({"before_image": "before", "after_image": "after"}, context)
        change_map = decode_raster(storage.uploads[CHANGE_MAP])
        assert change_map.data[0, 0] == 2.0
        assert change_map.data[9, 9] == 0.0

    def test_reversed_images_give_negative_change(self, processor, context):
        result = processor.process({"before_image": "after", "after_image": "before"}, context)
        assert result["statistics"]["change_areas"]["negative_change"] == pytest.approx(20.0)

    def test_dimension_mismatch(self, processor, storage, context):
        with pytest.raises(ValidationError, match="Input images must have the same dimensions"):
            processor.process({"before_image": "before", "after_image": "small"}, context)
        assert storage.uploads == {}

    def test_nodata_pixels_excluded(self, processor, storage, context):
        result = processor.process({"before_image": "before-nodata", "after_image": "after"}, context)
        stats = result["statistics"]
        assert stats["total_pixels"] == 99
        assert stats["excluded_pixels"] == 1
        change_map = decode_raster(storage.uploads[CHANGE_MAP])
        assert change_map.data[9, 9] == -9999.0

    def test_mask_geometry_limits_comparison(self, processor, context):
        result = processor.process({
            "before_image": "before",
            "after_image": "after",
            "mask_geometry": square(0, 0, 5, 5),
        }, context)
        stats = result["statistics"]
        assert stats["total_pixels"] == 25
        assert stats["excluded_pixels"] == 75
        # the changed rows are in the north, outside the mask
        assert stats["changed_pixels"] == 0

    def test_high_threshold_hides_change(self, processor, context):
        result = processor.process(
            {"before_image": "before", "after_image": "after", "threshold": 5}, context
        )
        assert result["statistics"]["changed_pixels"] == 0

    def test_ratio_method(self, processor, context):
        result = processor.process(
            {"before_image": "before", "after_image": "after", "method": "ratio", "threshold": 2},
            context,
        )
        # ratio 3 on changed rows, 1 elsewhere (snapped to 0 by the threshold)
        assert result["statistics"]["changed_pixels"] == 20
        assert result["method_used"] == "ratio"

    @pytest.mark.parametrize("threshold", [0, 0.05, 0.1, 5])
    def test_identical_images_show_no_change(self, processor, storage, context, threshold):
        result = processor.process(
            {"before_image": "after", "after_image": "after", "threshold": threshold}, context
        )

        stats = result["statistics"]
        assert stats["changed_pixels"] == 0
        assert stats["unchanged_pixels"] == 100
        assert stats["change_areas"]["positive_change"] == 0.0
        assert stats["change_areas"]["negative_change"] == 0.0
        assert np.all(decode_raster(storage.uploads[CHANGE_MAP]).data == 0.0)
