"""Unit tests for last-used enrichment."""

from datetime import datetime, timezone

import pytest

from field_exporter.asana.models import CustomField, LastUsedStatus
from field_exporter.discovery.batch import BatchRunner
from field_exporter.discovery.enrichment import LastUsedEnricher
from tests.fakes import FakeAsanaClient


@pytest.fixture
def enricher(fake_client: FakeAsanaClient) -> LastUsedEnricher:
    return LastUsedEnricher(fake_client, BatchRunner(width=3, pause=0))


@pytest.mark.asyncio
async def test_enrich_records_each_outcome(fake_client: FakeAsanaClient, enricher: LastUsedEnricher):
    fake_client.tasks = {
        "cf_found": {"gid": "t_1", "modified_at": "2025-04-01T09:30:00Z"},
        "cf_none": None,
        "cf_error": RuntimeError("search unavailable"),
    }
    fields = [
        CustomField(gid="cf_found", name="Found"),
        CustomField(gid="cf_none", name="None"),
        CustomField(gid="cf_error", name="Error"),
    ]

    await enricher.enrich("ws_1", fields)

    found, none, error = (f.last_used for f in fields)
    assert found.status == LastUsedStatus.FOUND
    assert found.task_gid == "t_1"
    assert found.modified_at == datetime(2025, 4, 1, 9, 30, tzinfo=timezone.utc)
    assert none.status == LastUsedStatus.NONE_FOUND
    assert none.modified_at is None
    assert error.status == LastUsedStatus.UNKNOWN
    assert error.error == "search unavailable"
    assert all(f.last_used.checked for f in fields)


@pytest.mark.asyncio
async def test_enrich_uses_batches(fake_client: FakeAsanaClient):
    runner = BatchRunner(width=3, pause=0)
    fields = [CustomField(gid=f"cf_{i}", name=str(i)) for i in range(7)]

    await LastUsedEnricher(fake_client, runner).enrich("ws_1", fields)

    assert runner.batches_completed == 3
    assert [call[1] for call in fake_client.search_calls] == [f"cf_{i}" for i in range(7)]


@pytest.mark.asyncio
async def test_check_field_scoped_to_project(fake_client: FakeAsanaClient, enricher: LastUsedEnricher):
    fake_client.tasks["cf_1"] = {"gid": "t_2", "modified_at": "2025-01-01T00:00:00Z"}

    result = await enricher.check_field("ws_1", "cf_1", project_gid="p_1")

    assert result.status == LastUsedStatus.FOUND
    assert fake_client.search_calls == [("ws_1", "cf_1", "p_1")]


@pytest.mark.asyncio
async def test_check_field_failure_is_unknown(fake_client: FakeAsanaClient, enricher: LastUsedEnricher):
    fake_client.tasks["cf_1"] = RuntimeError("timeout")

    result = await enricher.check_field("ws_1", "cf_1")

    assert result.status == LastUsedStatus.UNKNOWN
    assert result.error == "timeout"


def test_default_is_not_checked():
    """Fields start unchecked, distinct from none found."""
    field = CustomField(gid="cf_1", name="One")

    assert field.last_used.status == LastUsedStatus.NOT_CHECKED
    assert field.last_used.checked is False
