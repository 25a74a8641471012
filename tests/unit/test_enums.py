"""
Enum vocabulary tests.

Values are part of the wire format (queue messages, job rows, result
payloads), so they are pinned here.
"""

import pytest

from core.models.enums import (
    ChangeMethod,
    DistanceUnit,
    JobStatus,
    JobType,
    LifecycleEventType,
    NdviOutputFormat,
    ReportFormat,
    ReportType,
)


class TestEnumValues:

    @pytest.mark.parametrize("enum_cls,expected", [
        (JobStatus, {"queued", "running", "completed", "failed"}),
        (JobType, {"buffer", "vegetation_index", "zonal_stats", "change_detection", "report_generation"}),
        (LifecycleEventType, {"waiting", "active", "completed", "failed"}),
        (ReportType, {"summary", "detailed", "spatial_analysis", "custom"}),
        (ReportFormat, {"json", "html", "pdf"}),
        (ChangeMethod, {"simple_difference", "normalized_difference", "ratio"}),
        (NdviOutputFormat, {"geotiff", "png"}),
        (DistanceUnit, {"meters", "kilometers", "miles", "feet"}),
    ], ids=lambda v: getattr(v, "__name__", "values"))
    def test_values(self, enum_cls, expected):
        assert {member.value for member in enum_cls} == expected

    def test_str_enums_compare_to_strings(self):
        assert JobStatus.COMPLETED == "completed"
        assert JobType("zonal_stats") is JobType.ZONAL_STATS

    def test_unknown_value_raises(self):
        with pytest.raises(ValueError):
            JobType("teleport")
