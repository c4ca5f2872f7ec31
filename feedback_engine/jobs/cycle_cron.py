"""
Cycle Cron Job: periodic ranking refresh and cycle housekeeping.

This module runs as a scheduled job (via cron, Kubernetes CronJob or similar):
1. Recomputes every employee's peer ranking, several employees at a time
2. Marks pending requests past their grace period as overdue
3. Completes active cycles that reached the completion threshold or ran
   past their end date

Typical cron schedule: 0 * * * * (hourly)
"""

import asyncio
import logging
import traceback
from datetime import datetime, timezone
from typing import Any

import httpx

from ..core import (
    Clock,
    Settings,
    SystemClock,
    build_engine,
    build_session_factory,
    get_session_context,
    get_settings,
)
from ..services import (
    ClosureConfig,
    CycleManager,
    FeedbackAssigner,
    rank_all_peers_concurrently,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ALERTING
# =============================================================================


async def send_alert(
    title: str,
    message: str,
    severity: str = "error",
    details: dict | None = None,
    webhook_url: str | None = None,
) -> None:
    """
    Send an alert when the job fails or degrades.

    Always logs; additionally POSTs to ``webhook_url`` (PagerDuty, Opsgenie,
    a chat relay) when one is configured. Delivery failures are logged only.
    """
    log_message = f"[CRON ALERT] {title}: {message}"
    if details:
        log_message += f" | Details: {details}"

    if severity == "critical":
        logger.critical(log_message)
    elif severity == "warning":
        logger.warning(log_message)
    else:
        logger.error(log_message)

    if webhook_url:
        try:
            await _send_webhook_alert(webhook_url, title, message, severity, details)
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook alert: {e}")


async def _send_webhook_alert(
    webhook_url: str,
    title: str,
    message: str,
    severity: str,
    details: dict | None,
) -> None:
    payload = {
        "title": title,
        "message": message,
        "severity": severity,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": "feedback-engine-cron",
        "details": details or {},
    }

    async with httpx.AsyncClient() as client:
        response = await client.post(webhook_url, json=payload, timeout=10)
        response.raise_for_status()


# =============================================================================
# JOB
# =============================================================================


async def run_cycle_job(
    database_url: str,
    settings: Settings | None = None,
    clock: Clock | None = None,
) -> dict[str, Any]:
    """
    Main entry point for the cycle cron job.

    Args:
        database_url: Async SQLAlchemy URL (postgresql+asyncpg://, sqlite+aiosqlite://)
        settings: Tunables; defaults to the environment
        clock: Time source; defaults to the system clock

    Returns:
        Job result summary
    """
    settings = settings or get_settings()
    clock = clock or SystemClock()

    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting cycle job at {start_time.isoformat()}")

    engine = build_engine(database_url)
    session_factory = build_session_factory(engine)

    results = {
        "started_at": start_time.isoformat(),
        "completed_at": None,
        "employees_ranked": 0,
        "rankings_written": 0,
        "ranking_failures": 0,
        "requests_marked_overdue": 0,
        "cycles_closed": [],
        "errors": [],
    }

    try:
        # Step 1: Refresh rankings (one session per employee)
        ranking = await rank_all_peers_concurrently(
            session_factory,
            clock=clock,
            concurrency=settings.ranking_concurrency,
        )
        results["employees_ranked"] = ranking.succeeded
        results["rankings_written"] = ranking.rankings_written
        results["ranking_failures"] = len(ranking.failed)
        results["errors"].extend(
            f"employee {f.employee_id}: {f.error}" for f in ranking.failed
        )

        # Step 2: Overdue requests and cycle closure (single transaction)
        async with get_session_context(session_factory) as session:
            assigner = FeedbackAssigner(session, clock)
            results["requests_marked_overdue"] = await assigner.mark_overdue_requests(
                grace_days=settings.overdue_grace_days,
            )

            manager = CycleManager(
                session,
                clock,
                ClosureConfig(
                    completion_threshold=settings.completion_threshold,
                    close_after_days=settings.close_after_days,
                ),
            )
            closed = await manager.close_eligible_cycles()
            results["cycles_closed"] = [str(cycle_id) for cycle_id in closed]

    except Exception as e:
        error_msg = f"Cycle job failed: {str(e)}"
        logger.error(error_msg)
        results["errors"].append(error_msg)

        await send_alert(
            title="Cycle Cron Job Failed",
            message="The scheduled ranking and cycle job crashed unexpectedly.",
            severity="critical",
            details={
                "error": str(e),
                "traceback": traceback.format_exc()[-500:],
                "started_at": results["started_at"],
                "employees_ranked_before_crash": results["employees_ranked"],
            },
            webhook_url=settings.alert_webhook_url,
        )
        raise

    finally:
        await engine.dispose()

    end_time = datetime.now(timezone.utc)
    results["completed_at"] = end_time.isoformat()
    results["duration_seconds"] = (end_time - start_time).total_seconds()

    logger.info(
        f"Cycle job completed in {results['duration_seconds']:.2f}s: "
        f"{results['employees_ranked']} employees ranked, "
        f"{results['requests_marked_overdue']} requests overdue, "
        f"{len(results['cycles_closed'])} cycles closed"
    )

    # Partial failure: some employees kept their previous ranking
    if results["ranking_failures"] > 0:
        await send_alert(
            title="Cycle Job Completed with Warnings",
            message=(
                f"Ranking failed for {results['ranking_failures']} employees; "
                f"their previous rankings were kept."
            ),
            severity="warning",
            details={"errors": results["errors"][:5]},
            webhook_url=settings.alert_webhook_url,
        )

    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for the cycle job."""
    import argparse

    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the peer ranking and cycle cron job")
    parser.add_argument(
        "--database-url",
        default=settings.database_url_async,
        help="Async database URL (defaults to DATABASE_URL)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.ranking_concurrency,
        help="Employees ranked in parallel",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    job_settings = settings.model_copy(update={"ranking_concurrency": args.concurrency})

    try:
        results = asyncio.run(run_cycle_job(args.database_url, settings=job_settings))
        logger.info(f"Job completed: {results}")
    except Exception as e:
        logger.error(f"Job failed: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
