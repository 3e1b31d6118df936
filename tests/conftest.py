"""Pytest configuration and shared fixtures."""

import pytest

from field_exporter.asana.models import (
    CustomField,
    EnumOption,
    FieldAssociations,
    LastUsed,
    LastUsedStatus,
    ResourceRef,
)
from field_exporter.config import Settings
from tests.fakes import FakeAsanaClient


@pytest.fixture
def settings() -> Settings:
    """Settings with no pauses so tests run instantly."""
    return Settings(
        asana_access_token="test_token",
        asana_workspace_gid="ws_1",
        discovery_batch_pause=0,
        enrichment_batch_pause=0,
    )


@pytest.fixture
def fake_client() -> FakeAsanaClient:
    return FakeAsanaClient()


@pytest.fixture
def sample_field_data() -> dict:
    """Sample raw enum custom field from Asana API."""
    return {
        "gid": "cf_100",
        "name": "Priority",
        "type": "enum",
        "resource_subtype": "enum",
        "description": "Task priority",
        "is_global_to_workspace": True,
        "enabled": True,
        "created_by": {"gid": "u_1", "name": "Test User"},
        "created_at": "2025-01-01T12:00:00.000Z",
        "enum_options": [
            {"gid": "o_1", "name": "High", "color": "red", "enabled": True},
            {"gid": "o_2", "name": "Low", "color": "green", "enabled": False},
        ],
    }


@pytest.fixture
def sample_fields() -> list[CustomField]:
    """Small inventory covering global/local fields and each last-used state."""
    return [
        CustomField(
            gid="cf_1",
            name="Priority",
            kind="enum",
            is_global_to_workspace=True,
            created_by="Alice",
            enum_options=[
                EnumOption(name="High", color="dark-red"),
                EnumOption(name="Low", color="light-green", enabled=False),
            ],
            associations=FieldAssociations(
                projects=[
                    ResourceRef(gid="p_1", name="Roadmap", visibility="private"),
                    ResourceRef(gid="p_2", name="Launch, Q3", visibility="public_to_workspace"),
                ],
                goals=[ResourceRef(gid="g_1", name="Grow revenue")],
            ),
            last_used=LastUsed(
                status=LastUsedStatus.FOUND,
                modified_at="2025-03-05T10:00:00Z",
                task_gid="t_9",
            ),
        ),
        CustomField(
            gid="cf_2",
            name="estimate",
            kind="number",
            description="Story points",
            is_global_to_workspace=False,
            created_by="Zapier Bot",
            associations=FieldAssociations(
                portfolios=[ResourceRef(gid="pf_1", name="Engineering")],
            ),
            last_used=LastUsed(status=LastUsedStatus.NONE_FOUND),
        ),
        CustomField(
            gid="cf_3",
            name="Owner",
            kind="people",
            is_global_to_workspace=True,
            created_by="Bob",
        ),
    ]
