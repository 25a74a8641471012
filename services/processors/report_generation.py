"""
Report Generation Processor.

Builds a project report from the geo data store: a fixed section list per
report type (or the caller's list for "custom"), each section generated
independently. A section that raises is logged and left out; the report
still completes. The rendered document is uploaded and a reports record is
inserted with the storage URL as its file path.

Formats:
    json: pretty-printed content document
    html: Jinja2 template, one block per section
    pdf:  rejected with NotImplementedError before any store access

Exports:
    ReportGenerationProcessor
    SECTIONS_BY_REPORT_TYPE
"""

import json
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import __version__
from core.models.enums import JobStatus, JobType, ReportFormat, ReportType
from exceptions import PersistenceError, ResourceNotFoundError, ValidationError
from interfaces.repository import IArtifactStorage, IGeoDataRepository
from .base import JobContext, Processor

SECTIONS_BY_REPORT_TYPE = {
    ReportType.SUMMARY: ["overview", "key_metrics", "recent_activity"],
    ReportType.DETAILED: ["overview", "datasets", "analysis_results", "spatial_analysis", "recommendations"],
    ReportType.SPATIAL_ANALYSIS: ["overview", "spatial_metrics", "analysis_results", "maps"],
}

RECOMMENDATIONS = [
    "Consider running NDVI analysis on recent satellite imagery to monitor vegetation health.",
    "Upload higher resolution imagery for more detailed spatial analysis.",
    "Set up automated monitoring for change detection analysis.",
]

_CONTENT_TYPES = {
    ReportFormat.JSON: "application/json",
    ReportFormat.HTML: "text/html",
}

_templates = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def _iso(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class ReportParams:
    project_id: str
    report_type: ReportType
    include_sections: List[str]
    format: ReportFormat


class ReportGenerationProcessor(Processor):
    job_type = JobType.REPORT_GENERATION

    def __init__(self, geo_repo: IGeoDataRepository, storage: IArtifactStorage, logger=None):
        super().__init__(logger)
        self.geo_repo = geo_repo
        self.storage = storage
        self._generators: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            "overview": self._overview,
            "datasets": self._datasets,
            "analysis_results": self._analysis_results,
            "key_metrics": self._key_metrics,
            "spatial_analysis": self._spatial_analysis,
            "spatial_metrics": self._spatial_metrics,
            "recent_activity": self._recent_activity,
            "recommendations": self._recommendations,
            "maps": self._maps,
        }

    def validate(self, parameters: Dict[str, Any]) -> ReportParams:
        project_id = parameters.get("project_id")
        if not project_id:
            raise ValidationError("project_id is required")

        report_type = parameters.get("report_type") or ReportType.SUMMARY.value
        try:
            report_type = ReportType(report_type)
        except ValueError:
            raise ValidationError(
                f"Unsupported report_type: {report_type}. Expected one of {[t.value for t in ReportType]}"
            )

        include_sections = parameters.get("include_sections") or []
        if not isinstance(include_sections, list) or not all(isinstance(s, str) for s in include_sections):
            raise ValidationError("include_sections must be a list of section names")

        report_format = parameters.get("format") or ReportFormat.JSON.value
        try:
            report_format = ReportFormat(report_format)
        except ValueError:
            raise ValidationError(
                f"Unsupported format: {report_format}. Expected one of {[f.value for f in ReportFormat]}"
            )
        if report_format == ReportFormat.PDF:
            raise NotImplementedError("PDF report generation not yet implemented")

        return ReportParams(
            project_id=str(project_id),
            report_type=report_type,
            include_sections=include_sections,
            format=report_format,
        )

    def run(self, params: ReportParams, context: JobContext) -> Dict[str, Any]:
        project = self.geo_repo.get_project(params.project_id, context.organization_id)
        if project is None:
            raise ResourceNotFoundError("Project not found or access denied")

        content = self._build_content(project, params, context)
        document = self._render(content, params.format)
        file_path = self.storage.upload(
            f"reports/{context.job_id}/report.{params.format.value}",
            document.encode("utf-8"),
            _CONTENT_TYPES[params.format],
        )

        try:
            report_id = self.geo_repo.insert_report({
                "project_id": params.project_id,
                "title": content["title"],
                "content": content,
                "generated_by": context.user_id,
                "file_path": file_path,
                "format": params.format.value,
            })
        except Exception as e:
            raise PersistenceError(f"Failed to save report: {e}") from e

        self.logger.info(
            f"Report {report_id} generated with {len(content['sections'])} sections",
            extra=context.log_extra(report_id=report_id),
        )
        return {
            "report_id": report_id,
            "title": content["title"],
            "file_path": file_path,
            "format": params.format.value,
            "sections_count": len(content["sections"]),
            "generated_at": content["generated_at"],
        }

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def _section_names(self, params: ReportParams) -> List[str]:
        if params.report_type == ReportType.CUSTOM:
            return params.include_sections
        return SECTIONS_BY_REPORT_TYPE[params.report_type]

    def _build_content(
        self, project: Dict[str, Any], params: ReportParams, context: JobContext
    ) -> Dict[str, Any]:
        report_type = params.report_type.value
        content = {
            "title": f"{report_type.capitalize()} Report - {project.get('title')}",
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "project_info": {
                "id": project.get("id"),
                "title": project.get("title"),
                "description": project.get("description"),
                "created_at": _iso(project.get("created_at")),
                "organization": project.get("organization_name"),
            },
            "sections": [],
            "metadata": {
                "report_type": report_type,
                "generated_by": "geoai-worker",
                "version": __version__,
            },
        }

        for name in self._section_names(params):
            generator = self._generators.get(name)
            if generator is None:
                self.logger.warning(
                    f"Unknown section type: {name}", extra=context.log_extra(section=name)
                )
                continue
            try:
                content["sections"].append(generator(project))
            except Exception as e:
                self.logger.warning(
                    f"Failed to generate section {name}: {e}",
                    exc_info=True,
                    extra=context.log_extra(section=name),
                )
        return content

    def _overview(self, project):
        return {
            "type": "overview",
            "title": "Project Overview",
            "content": {
                "description": project.get("description") or "No description provided.",
                "created_date": _iso(project.get("created_at")),
                "organization": project.get("organization_name"),
            },
        }

    def _datasets(self, project):
        datasets = self.geo_repo.list_project_datasets(project["id"])
        return {
            "type": "datasets",
            "title": "Project Datasets",
            "content": {
                "total_datasets": len(datasets),
                "datasets": [
                    {
                        "name": d.get("name"),
                        "type": d.get("data_type"),
                        "file_size": d.get("file_size"),
                        "created_at": _iso(d.get("created_at")),
                    }
                    for d in datasets
                ],
            },
        }

    def _analysis_results(self, project):
        completed = self.geo_repo.list_project_jobs(project["id"], status=JobStatus.COMPLETED.value)
        ndvi_results = self.geo_repo.list_ndvi_results(project["id"])
        return {
            "type": "analysis_results",
            "title": "Analysis Results",
            "content": {
                "completed_jobs": len(completed),
                "job_types": dict(Counter(job["job_type"] for job in completed)),
                "ndvi_analyses": len(ndvi_results),
                "latest_results": [
                    {"type": job["job_type"], "completed_at": _iso(job.get("completed_at"))}
                    for job in completed[:5]
                ],
            },
        }

    def _key_metrics(self, project):
        datasets = self.geo_repo.list_project_datasets(project["id"])
        jobs = self.geo_repo.list_project_jobs(project["id"])
        total_bytes = sum(d.get("file_size") or 0 for d in datasets)
        completed = sum(1 for j in jobs if j["status"] == JobStatus.COMPLETED.value)
        failed = sum(1 for j in jobs if j["status"] == JobStatus.FAILED.value)
        return {
            "type": "key_metrics",
            "title": "Key Metrics",
            "content": {
                "total_storage_mb": round(total_bytes / (1024 * 1024)),
                "total_jobs": len(jobs),
                "completed_jobs": completed,
                "failed_jobs": failed,
                "success_rate": round(completed / len(jobs) * 100) if jobs else 0,
            },
        }

    def _spatial_analysis(self, project):
        features = self.geo_repo.list_geo_features(project["id"])
        return {
            "type": "spatial_analysis",
            "title": "Spatial Analysis Summary",
            "content": {
                "feature_count": len(features),
                "feature_types": dict(Counter(f.get("feature_type") for f in features)),
            },
        }

    def _spatial_metrics(self, project):
        features = self.geo_repo.list_geo_features(project["id"])
        extent = None
        for f in features:
            bounds = _coordinate_bounds((f.get("geometry") or {}).get("coordinates"))
            if bounds is None:
                continue
            if extent is None:
                extent = list(bounds)
            else:
                extent = [
                    min(extent[0], bounds[0]), min(extent[1], bounds[1]),
                    max(extent[2], bounds[2]), max(extent[3], bounds[3]),
                ]
        buffer_areas = [
            (job.get("result_data") or {}).get("statistics", {}).get("buffered_area")
            for job in self.geo_repo.list_project_jobs(project["id"], status=JobStatus.COMPLETED.value)
            if job["job_type"] == JobType.BUFFER.value
        ]
        buffer_areas = [a for a in buffer_areas if a is not None]
        return {
            "type": "spatial_metrics",
            "title": "Spatial Metrics",
            "content": {
                "feature_count": len(features),
                "extent": (
                    {"minX": extent[0], "minY": extent[1], "maxX": extent[2], "maxY": extent[3]}
                    if extent else None
                ),
                "buffer_operations": len(buffer_areas),
                "total_buffered_area": sum(buffer_areas),
            },
        }

    def _recent_activity(self, project):
        jobs = self.geo_repo.list_project_jobs(project["id"], limit=10)
        return {
            "type": "recent_activity",
            "title": "Recent Activity",
            "content": {
                "recent_jobs": [
                    {
                        "type": job["job_type"],
                        "status": job["status"],
                        "started": _iso(job.get("started_at") or job.get("created_at")),
                        "completed": _iso(job.get("completed_at")),
                    }
                    for job in jobs
                ],
            },
        }

    def _recommendations(self, project):
        return {
            "type": "recommendations",
            "title": "Recommendations",
            "content": {
                "recommendations": list(RECOMMENDATIONS),
                "priority": "medium",
            },
        }

    def _maps(self, project):
        ndvi_results = self.geo_repo.list_ndvi_results(project["id"])
        return {
            "type": "maps",
            "title": "Maps",
            "content": {
                "maps": [
                    {
                        "type": "ndvi",
                        "url": r.get("raster_data_url"),
                        "created_at": _iso(r.get("created_at")),
                    }
                    for r in ndvi_results
                    if r.get("raster_data_url")
                ],
            },
        }

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @staticmethod
    def _render(content: Dict[str, Any], report_format: ReportFormat) -> str:
        if report_format == ReportFormat.HTML:
            return _templates.get_template("report.html").render(report=content)
        return json.dumps(content, indent=2, default=str)


def _coordinate_bounds(coordinates: Any) -> Optional[List[float]]:
    """(minX, minY, maxX, maxY) over arbitrarily nested GeoJSON coordinates."""
    if not coordinates:
        return None
    if isinstance(coordinates[0], (int, float)):
        x, y = coordinates[0], coordinates[1]
        return [x, y, x, y]
    bounds = None
    for part in coordinates:
        b = _coordinate_bounds(part)
        if b is None:
            continue
        bounds = b if bounds is None else [
            min(bounds[0], b[0]), min(bounds[1], b[1]),
            max(bounds[2], b[2]), max(bounds[3], b[3]),
        ]
    return bounds
