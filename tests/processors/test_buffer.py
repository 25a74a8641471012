"""
Buffer processor tests.
"""

import logging
import math

import pytest

from exceptions import ValidationError
from services.processors.buffer import BufferProcessor
from tests.factories.model_factories import NYC_POINT, make_context, square


@pytest.fixture
def context():
    return make_context(job_type="buffer")


@pytest.fixture
def processor(geo_repo):
    return BufferProcessor(geo_repo)


class TestBufferValidation:

    def test_missing_geometry(self, processor, context):
        with pytest.raises(ValidationError, match="Invalid or missing geometry"):
            processor.process({"distance": 100}, context)

    @pytest.mark.parametrize("distance", [None, 0, -5, "abc", True, float("nan"), float("inf")])
    def test_bad_distance(self, processor, context, distance):
        with pytest.raises(ValidationError, match="Distance must be a positive number"):
            processor.process({"geometry": NYC_POINT, "distance": distance}, context)

    def test_numeric_string_distance_accepted(self, processor):
        assert processor.validate({"geometry": NYC_POINT, "distance": "250"}).distance_m == 250.0

    def test_unknown_units(self, processor, context):
        with pytest.raises(ValidationError, match="Unsupported units"):
            processor.process({"geometry": NYC_POINT, "distance": 1, "units": "furlongs"}, context)

    @pytest.mark.parametrize("steps", [0, -1, 2.5, "8", True])
    def test_bad_steps(self, processor, steps):
        with pytest.raises(ValidationError, match="Steps"):
            processor.validate({"geometry": NYC_POINT, "distance": 1, "steps": steps})

    def test_validation_happens_before_any_write(self, processor, geo_repo, context):
        with pytest.raises(ValidationError):
            processor.process({"geometry": None, "distance": 1}, context)
        assert geo_repo.geo_features == {}

    def test_failure_left_to_the_worker_to_log(self, processor, context, caplog):
        with caplog.at_level(logging.INFO, logger="processor.BufferProcessor"):
            with pytest.raises(ValidationError):
                processor.process({"geometry": NYC_POINT, "distance": -1}, context)

        records = [r for r in caplog.records if r.name == "processor.BufferProcessor"]
        assert [r.levelno for r in records] == [logging.INFO]
        assert records[0].getMessage().startswith("Starting buffer processing")


class TestBufferRun:

    def test_point_buffer(self, processor, geo_repo, context):
        result = processor.process(
            {"geometry": NYC_POINT, "distance": 1, "units": "kilometers"}, context
        )

        assert result["operation_type"] == "buffer"
        assert result["buffered_geometry"]["type"] == "Feature"
        assert result["buffered_geometry"]["geometry"]["type"] == "Polygon"

        stats = result["statistics"]
        assert stats["original_area"] == 0.0
        assert stats["buffered_area"] == pytest.approx(math.pi * 1000 ** 2, rel=0.01)
        assert stats["perimeter"] == pytest.approx(2 * math.pi * 1000, rel=0.01)
        assert stats["buffer_distance"] == 1
        assert stats["buffer_units"] == "kilometers"
        assert stats["bbox"]["minX"] < -74.0059 < stats["bbox"]["maxX"]
        assert result["processing_time"] >= 0

    def test_units_default_to_meters(self, processor, context):
        result = processor.process({"geometry": NYC_POINT, "distance": 500}, context)
        assert result["statistics"]["buffer_units"] == "meters"
        assert result["statistics"]["buffered_area"] == pytest.approx(math.pi * 500 ** 2, rel=0.01)

    def test_polygon_buffer_grows_area(self, processor, context):
        polygon = square(-74.01, 40.70, -74.00, 40.71)
        result = processor.process({"geometry": polygon, "distance": 100}, context)
        stats = result["statistics"]
        assert stats["original_area"] > 0
        assert stats["buffered_area"] > stats["original_area"]

    def test_feature_is_stored(self, processor, geo_repo, context):
        result = processor.process(
            {"geometry": NYC_POINT, "distance": 250, "units": "meters"}, context
        )

        stored = geo_repo.geo_features[result["stored_feature_id"]]
        assert stored["name"] == "Buffer 250meters"
        assert stored["feature_type"] == "Polygon"
        assert stored["session_id"] == "session-1"
        assert stored["project_id"] == "project-1"
        assert stored["properties"] == {
            "buffer_distance": 250,
            "buffer_units": "meters",
            "original_job_id": "job-1",
            "created_from": "buffer_operation",
        }

    def test_feature_name_without_units(self, processor, geo_repo, context):
        result = processor.process({"geometry": NYC_POINT, "distance": 2.5}, context)
        assert geo_repo.geo_features[result["stored_feature_id"]]["name"] == "Buffer 2.5m"

    def test_store_failure_is_not_fatal(self, failing_geo_repo, context):
        result = BufferProcessor(failing_geo_repo).process(
            {"geometry": NYC_POINT, "distance": 100}, context
        )
        assert result["stored_feature_id"] is None
        assert result["statistics"]["buffered_area"] > 0

    def test_steps_control_vertex_count(self, processor, context):
        coarse = processor.process({"geometry": NYC_POINT, "distance": 100, "steps": 8}, context)
        fine = processor.process({"geometry": NYC_POINT, "distance": 100, "steps": 64}, context)
        coarse_ring = coarse["buffered_geometry"]["geometry"]["coordinates"][0]
        fine_ring = fine["buffered_geometry"]["geometry"]["coordinates"][0]
        assert len(coarse_ring) < len(fine_ring)

    def test_polygon_buffer_bbox_contains_input(self, processor, context):
        polygon = square(-74.01, 40.70, -74.00, 40.71)
        result = processor.process({"geometry": polygon, "distance": 1000}, context)

        bbox = result["statistics"]["bbox"]
        assert bbox["minX"] < -74.01 and bbox["maxX"] > -74.00
        assert bbox["minY"] < 40.70 and bbox["maxY"] > 40.71
