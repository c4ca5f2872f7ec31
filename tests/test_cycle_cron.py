"""Tests for the scheduled ranking and cycle job."""

from datetime import timedelta

import httpx
import pytest

from feedback_engine.core import Settings
from feedback_engine.jobs import cycle_cron
from feedback_engine.models import CycleStatus, FeedbackCycle, FeedbackRequest, RequestStatus
from feedback_engine.services import (
    CreateCycleInput,
    CycleManager,
    FeedbackAssigner,
    PeerRanker,
)
from seed_data import seed_database


@pytest.fixture
def job_settings() -> Settings:
    return Settings(ranking_concurrency=1, ALERT_WEBHOOK_URL="https://alerts.example.com/hook")


@pytest.fixture
def captured_alerts(monkeypatch) -> list[dict]:
    """Route webhook alerts to an in-memory transport."""
    alerts = []
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        import json

        alerts.append(json.loads(request.content))
        return httpx.Response(200)

    monkeypatch.setattr(
        cycle_cron.httpx,
        "AsyncClient",
        lambda *args, **kwargs: real_client(transport=httpx.MockTransport(handler)),
    )
    return alerts


class TestCycleJob:

    async def test_job_ranks_marks_overdue_and_closes(
        self,
        database_url,
        session_factory,
        clock,
        job_settings,
        captured_alerts,
    ):
        async with session_factory() as session:
            await seed_database(session, clock, seed=7)
            await PeerRanker(session, clock).rank_all_peers()
            cycle = await CycleManager(session, clock).create_cycle(
                CreateCycleInput(
                    name="Sprint retro",
                    start_date=clock.now() - timedelta(days=20),
                    end_date=clock.now() - timedelta(days=10),
                )
            )
            result = await FeedbackAssigner(session, clock).assign_feedback_requests(cycle.id)
            assert result.created_count > 0
            await session.commit()

        results = await cycle_cron.run_cycle_job(database_url, settings=job_settings, clock=clock)

        assert results["employees_ranked"] == 12
        assert results["ranking_failures"] == 0
        assert results["requests_marked_overdue"] == result.created_count
        assert results["cycles_closed"] == [str(cycle.id)]
        assert captured_alerts == []

        async with session_factory() as session:
            stored = await session.get(FeedbackCycle, cycle.id)
            assert stored.status == CycleStatus.COMPLETED
            request = await session.get(FeedbackRequest, result.created[0].id)
            assert request.status == RequestStatus.OVERDUE

    async def test_job_failure_alerts(
        self,
        database_url,
        engine,
        clock,
        job_settings,
        captured_alerts,
        monkeypatch,
    ):
        async def broken(*args, **kwargs):
            raise RuntimeError("connection refused")

        monkeypatch.setattr(cycle_cron, "rank_all_peers_concurrently", broken)

        with pytest.raises(RuntimeError):
            await cycle_cron.run_cycle_job(database_url, settings=job_settings, clock=clock)

        assert len(captured_alerts) == 1
        assert captured_alerts[0]["severity"] == "critical"
        assert captured_alerts[0]["details"]["error"] == "connection refused"


class TestSendAlert:

    async def test_without_webhook_only_logs(self, captured_alerts, caplog):
        await cycle_cron.send_alert("Title", "Something broke", severity="warning")
        assert captured_alerts == []
        assert "Something broke" in caplog.text

    async def test_webhook_payload(self, captured_alerts):
        await cycle_cron.send_alert(
            "Title",
            "Something broke",
            details={"employees": 3},
            webhook_url="https://alerts.example.com/hook",
        )
        assert captured_alerts[0]["title"] == "Title"
        assert captured_alerts[0]["source"] == "feedback-engine-cron"
        assert captured_alerts[0]["details"] == {"employees": 3}
