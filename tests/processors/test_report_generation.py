"""
Report generation processor tests.
"""

import json

import pytest

from config import __version__
from exceptions import PersistenceError, ResourceNotFoundError, ValidationError
from infrastructure.memory import InMemoryGeoDataRepository
from services.processors.report_generation import (
    SECTIONS_BY_REPORT_TYPE,
    ReportGenerationProcessor,
)
from tests.factories.model_factories import make_context, make_job_record, square

REPORT_JSON = "reports/job-1/report.json"


class DatasetListingFailsGeoRepo(InMemoryGeoDataRepository):
    def list_project_datasets(self, project_id):
        raise RuntimeError("datasets table unavailable")


@pytest.fixture
def context():
    return make_context(job_type="report_generation")


@pytest.fixture
def processor(seeded_geo_repo, storage):
    return ReportGenerationProcessor(seeded_geo_repo, storage)


@pytest.fixture
def project_history(seeded_geo_repo, job_repo):
    """Two completed buffer jobs, one failed NDVI job, one dataset, one NDVI result."""
    for area in (100.0, 250.0):
        job = make_job_record("buffer", project_id="project-1")
        job_repo.create_job(job)
        job_repo.mark_running(job.id)
        job_repo.mark_completed(job.id, {"statistics": {"buffered_area": area}})
    failed = make_job_record("vegetation_index", project_id="project-1")
    job_repo.create_job(failed)
    job_repo.mark_running(failed.id)
    job_repo.mark_failed(failed.id, "No raster data source provided")

    seeded_geo_repo.add_dataset("project-1", "scene", "/data/scene.tif", file_size=3 * 1024 * 1024)
    seeded_geo_repo.insert_ndvi_result({
        "project_id": "project-1",
        "raster_data_url": "https://artifacts.test/ndvi/x/ndvi.tif",
    })
    seeded_geo_repo.insert_geo_feature({
        "project_id": "project-1",
        "feature_type": "Polygon",
        "geometry": square(1, 2, 4, 6),
    })
    return seeded_geo_repo


def _uploaded_json(storage):
    return json.loads(storage.uploads[REPORT_JSON].decode("utf-8"))


class TestReportValidation:

    def test_project_required(self, processor, context):
        with pytest.raises(ValidationError, match="project_id is required"):
            processor.process({}, context)

    def test_unknown_report_type(self, processor):
        with pytest.raises(ValidationError, match="Unsupported report_type"):
            processor.validate({"project_id": "project-1", "report_type": "weekly"})

    def test_unknown_format(self, processor):
        with pytest.raises(ValidationError, match="Unsupported format"):
            processor.validate({"project_id": "project-1", "format": "docx"})

    def test_pdf_not_implemented(self, processor, storage, context):
        with pytest.raises(NotImplementedError, match="PDF report generation not yet implemented"):
            processor.process({"project_id": "project-1", "format": "pdf"}, context)
        assert storage.uploads == {}

    def test_bad_include_sections(self, processor):
        with pytest.raises(ValidationError, match="include_sections"):
            processor.validate({"project_id": "project-1", "include_sections": "overview"})

    def test_defaults(self, processor):
        params = processor.validate({"project_id": "project-1"})
        assert params.report_type.value == "summary"
        assert params.format.value == "json"


class TestReportRun:

    def test_summary_report(self, processor, seeded_geo_repo, storage, context):
        result = processor.process({"project_id": "project-1"}, context)

        assert result["title"] == "Summary Report - Wetlands"
        assert result["format"] == "json"
        assert result["sections_count"] == 3
        assert result["file_path"] == f"https://artifacts.test/{REPORT_JSON}"
        assert storage.content_types[REPORT_JSON] == "application/json"

        document = _uploaded_json(storage)
        assert [s["type"] for s in document["sections"]] == ["overview", "key_metrics", "recent_activity"]
        assert document["project_info"]["organization"] == "Acme Surveys"
        assert document["metadata"] == {
            "report_type": "summary",
            "generated_by": "geoai-worker",
            "version": __version__,
        }
        assert document["generated_at"] == result["generated_at"]

    def test_report_record_inserted(self, processor, seeded_geo_repo, context):
        result = processor.process({"project_id": "project-1"}, context)
        record = seeded_geo_repo.reports[result["report_id"]]
        assert record["project_id"] == "project-1"
        assert record["title"] == result["title"]
        assert record["generated_by"] == "user-1"
        assert record["file_path"] == result["file_path"]
        assert record["format"] == "json"
        assert len(record["content"]["sections"]) == 3

    @pytest.mark.parametrize("report_type", ["summary", "detailed", "spatial_analysis"])
    def test_section_presets(self, processor, storage, context, report_type):
        result = processor.process({"project_id": "project-1", "report_type": report_type}, context)
        expected = [s for t, sections in SECTIONS_BY_REPORT_TYPE.items() if t.value == report_type for s in sections]
        assert [s["type"] for s in _uploaded_json(storage)["sections"]] == expected
        assert result["sections_count"] == len(expected)

    def test_other_organization_cannot_see_project(self, processor, context):
        other = make_context(job_type="report_generation", organization_id="org-2")
        with pytest.raises(ResourceNotFoundError, match="Project not found or access denied"):
            processor.process({"project_id": "project-1"}, other)

    def test_missing_project(self, processor, context):
        with pytest.raises(ResourceNotFoundError):
            processor.process({"project_id": "nope"}, context)

    def test_custom_sections_skip_unknown(self, processor, storage, context):
        result = processor.process({
            "project_id": "project-1",
            "report_type": "custom",
            "include_sections": ["recommendations", "weather_forecast", "overview"],
        }, context)
        assert result["sections_count"] == 2
        assert result["title"] == "Custom Report - Wetlands"
        assert [s["type"] for s in _uploaded_json(storage)["sections"]] == ["recommendations", "overview"]

    def test_failing_section_is_omitted(self, job_repo, storage, context):
        geo_repo = DatasetListingFailsGeoRepo(jobs=job_repo)
        geo_repo.add_organization("Acme", organization_id="org-1")
        geo_repo.add_project("Wetlands", "org-1", project_id="project-1")

        result = ReportGenerationProcessor(geo_repo, storage).process({"project_id": "project-1"}, context)

        assert result["sections_count"] == 2
        assert [s["type"] for s in _uploaded_json(storage)["sections"]] == ["overview", "recent_activity"]

    def test_insert_failure_is_fatal(self, failing_geo_repo, storage, context):
        processor = ReportGenerationProcessor(failing_geo_repo, storage)
        with pytest.raises(PersistenceError, match="Failed to save report"):
            processor.process({"project_id": "project-1"}, context)

    def test_html_report(self, processor, storage, context):
        result = processor.process({"project_id": "project-1", "format": "html"}, context)

        path = "reports/job-1/report.html"
        assert result["file_path"].endswith(path)
        assert storage.content_types[path] == "text/html"
        html = storage.uploads[path].decode("utf-8")
        assert "<h1>Summary Report - Wetlands</h1>" in html
        assert "Project Overview" in html
        assert "Key Metrics" in html
        assert 'id="section-recent_activity"' in html
        assert "Coastal wetland survey" in html

    def test_html_escapes_project_text(self, seeded_geo_repo, storage, context):
        seeded_geo_repo.add_project("<script>x</script>", "org-1", project_id="project-x")
        ReportGenerationProcessor(seeded_geo_repo, storage).process(
            {"project_id": "project-x", "format": "html"}, context
        )
        html = storage.uploads["reports/job-1/report.html"].decode("utf-8")
        assert "<script>x</script>" not in html
        assert "&lt;script&gt;" in html


class TestReportSections:

    def _sections(self, processor, storage, context, report_type, **params):
        processor.process({"project_id": "project-1", "report_type": report_type, **params}, context)
        return {s["type"]: s["content"] for s in _uploaded_json(storage)["sections"]}

    def test_overview_default_description(self, seeded_geo_repo, storage, context):
        seeded_geo_repo.add_project("Bare", "org-1", project_id="project-2")
        ReportGenerationProcessor(seeded_geo_repo, storage).process({"project_id": "project-2"}, context)
        overview = _uploaded_json(storage)["sections"][0]["content"]
        assert overview["description"] == "No description provided."

    def test_key_metrics(self, processor, storage, context, project_history):
        metrics = self._sections(processor, storage, context, "summary")["key_metrics"]
        assert metrics == {
            "total_storage_mb": 3,
            "total_jobs": 3,
            "completed_jobs": 2,
            "failed_jobs": 1,
            "success_rate": 67,
        }

    def test_recent_activity(self, processor, storage, context, project_history):
        activity = self._sections(processor, storage, context, "summary")["recent_activity"]
        assert len(activity["recent_jobs"]) == 3
        assert {j["status"] for j in activity["recent_jobs"]} == {"completed", "failed"}

    def test_detailed_sections(self, processor, storage, context, project_history):
        sections = self._sections(processor, storage, context, "detailed")
        assert sections["datasets"]["total_datasets"] == 1
        assert sections["datasets"]["datasets"][0]["name"] == "scene"
        analysis = sections["analysis_results"]
        assert analysis["completed_jobs"] == 2
        assert analysis["job_types"] == {"buffer": 2}
        assert analysis["ndvi_analyses"] == 1
        assert len(analysis["latest_results"]) == 2
        assert sections["spatial_analysis"] == {"feature_count": 1, "feature_types": {"Polygon": 1}}
        assert sections["recommendations"]["priority"] == "medium"
        assert len(sections["recommendations"]["recommendations"]) == 3

    def test_spatial_analysis_sections(self, processor, storage, context, project_history):
        sections = self._sections(processor, storage, context, "spatial_analysis")
        metrics = sections["spatial_metrics"]
        assert metrics["feature_count"] == 1
        assert metrics["extent"] == {"minX": 1, "minY": 2, "maxX": 4, "maxY": 6}
        assert metrics["buffer_operations"] == 2
        assert metrics["total_buffered_area"] == pytest.approx(350.0)
        assert sections["maps"]["maps"][0]["url"] == "https://artifacts.test/ndvi/x/ndvi.tif"

    def test_empty_project(self, processor, storage, context):
        sections = self._sections(processor, storage, context, "spatial_analysis")
        assert sections["spatial_metrics"]["extent"] is None
        assert sections["spatial_metrics"]["total_buffered_area"] == 0
        assert sections["maps"]["maps"] == []
