"""
Processor test fixtures: seeded project data and failing collaborators.
"""

import pytest

from infrastructure.memory import InMemoryGeoDataRepository


class InsertFailingGeoRepo(InMemoryGeoDataRepository):
    """Every insert fails as if the database dropped the connection."""

    def insert_geo_feature(self, feature):
        raise RuntimeError("connection lost")

    def insert_ndvi_result(self, record):
        raise RuntimeError("connection lost")

    def insert_report(self, record):
        raise RuntimeError("connection lost")


@pytest.fixture
def seeded_geo_repo(geo_repo):
    """org-1 owns project-1 (Wetlands); org-2 exists with no projects."""
    geo_repo.add_organization("Acme Surveys", organization_id="org-1")
    geo_repo.add_organization("Other Org", organization_id="org-2")
    geo_repo.add_project(
        "Wetlands", "org-1", project_id="project-1", description="Coastal wetland survey"
    )
    return geo_repo


@pytest.fixture
def failing_geo_repo(job_repo):
    repo = InsertFailingGeoRepo(jobs=job_repo)
    repo.add_organization("Acme Surveys", organization_id="org-1")
    repo.add_project("Wetlands", "org-1", project_id="project-1")
    return repo
