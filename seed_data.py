#!/usr/bin/env python3
"""
Seed Data Script for the Peer Feedback Engine

Creates a small "Tech Company" org chart with a realistic collaboration graph:
- 1 CTO, 2 engineering managers and 9 individual contributors
- Interactions generated deterministically from a seed: teammates chat and
  meet a lot, cross-team pairs occasionally share files or tasks
- One active peer cycle, assigned from the freshly computed rankings

Run with: python seed_data.py [--seed 42]
"""

import argparse
import asyncio
import random
from datetime import timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from feedback_engine.core import (
    Clock,
    SystemClock,
    build_engine,
    build_session_factory,
    get_settings,
    init_db,
)
from feedback_engine.models import (
    Action,
    CycleType,
    Employee,
    FeedbackCycle,
    FeedbackRequest,
    FeedbackResponse,
    Interaction,
    InteractionType,
    PeerRanking,
)
from feedback_engine.services import (
    CreateCycleInput,
    CycleManager,
    FeedbackAssigner,
    InteractionLedger,
    PeerRanker,
)

settings = get_settings()

# (key, name, department, role, manager key)
ORG_CHART = [
    ("alice", "Alice Chen", "Engineering", "CTO", None),
    ("bob", "Bob Martinez", "Platform", "Engineering Manager", "alice"),
    ("priya", "Priya Natarajan", "Product Engineering", "Engineering Manager", "alice"),
    ("charlie", "Charlie Kim", "Platform", "Software Engineer", "bob"),
    ("dana", "Dana Okafor", "Platform", "Senior Software Engineer", "bob"),
    ("eli", "Eli Novak", "Platform", "Site Reliability Engineer", "bob"),
    ("fatima", "Fatima Haddad", "Platform", "Software Engineer", "bob"),
    ("gabe", "Gabe Lindqvist", "Product Engineering", "Frontend Engineer", "priya"),
    ("hana", "Hana Sato", "Product Engineering", "Product Designer", "priya"),
    ("ivan", "Ivan Petrov", "Product Engineering", "Senior Software Engineer", "priya"),
    ("jo", "Jo Mensah", "Product Engineering", "Software Engineer", "priya"),
    ("kai", "Kai Andersen", "Product Engineering", "QA Engineer", "priya"),
]

# Interactions per (same team, cross team) pair: (type, max count, minutes per interaction)
TEAM_PATTERNS = [
    (InteractionType.CHAT, 40, 0),
    (InteractionType.MEETING, 8, 30),
    (InteractionType.TASK, 6, 0),
    (InteractionType.FILE, 10, 0),
]
CROSS_TEAM_PATTERNS = [
    (InteractionType.CHAT, 6, 0),
    (InteractionType.FILE, 3, 0),
]


async def seed_database(
    session: AsyncSession,
    clock: Clock | None = None,
    seed: int = 42,
) -> dict[str, int]:
    """
    Populate employees and interactions.

    Deterministic for a given ``seed``: same org, same interaction counts,
    same last-interaction offsets relative to the clock.
    """
    clock = clock or SystemClock()
    rng = random.Random(seed)

    # =====================================================================
    # EMPLOYEES
    # =====================================================================
    employees: dict[str, Employee] = {}
    for key, name, department, role, manager_key in ORG_CHART:
        employee = Employee(
            azure_id=f"seed-{key}",
            email=f"{key}@acme.tech",
            name=name,
            department=department,
            role=role,
            manager_id=employees[manager_key].id if manager_key else None,
            is_manager=any(row[4] == key for row in ORG_CHART),
        )
        session.add(employee)
        await session.flush()
        employees[key] = employee

    # =====================================================================
    # INTERACTIONS
    # =====================================================================
    ledger = InteractionLedger(session, clock)
    keys = list(employees)
    recorded = 0

    for i, left in enumerate(keys):
        for right in keys[i + 1:]:
            a, b = employees[left], employees[right]
            same_team = a.department == b.department
            if not same_team and rng.random() > 0.3:
                continue

            for interaction_type, max_count, minutes_each in (
                TEAM_PATTERNS if same_team else CROSS_TEAM_PATTERNS
            ):
                count = rng.randint(0, max_count)
                if count == 0:
                    continue
                await ledger.record_interaction(
                    employee_id=a.id,
                    peer_id=b.id,
                    interaction_type=interaction_type,
                    count=count,
                    minutes=count * minutes_each,
                )
                recorded += 1

    # Backdate some pairs so recency decay shows up in the rankings
    result = await session.execute(
        Interaction.__table__.select().order_by(Interaction.id)
    )
    now = clock.now()
    for row in result.all():
        days_ago = rng.choice([0, 3, 14, 45, 120])
        if days_ago:
            await session.execute(
                Interaction.__table__.update()
                .where(
                    Interaction.employee_id.in_([row.employee_id, row.peer_id]),
                    Interaction.peer_id.in_([row.employee_id, row.peer_id]),
                    Interaction.interaction_type == row.interaction_type,
                )
                .values(last_interaction_at=now - timedelta(days=days_ago))
            )

    await session.flush()
    return {"employees": len(employees), "interactions": recorded}


async def clear_database(session: AsyncSession) -> None:
    """Clear all data (in correct order for FK constraints)."""
    for model in (
        Action,
        FeedbackResponse,
        FeedbackRequest,
        FeedbackCycle,
        PeerRanking,
        Interaction,
        Employee,
    ):
        await session.execute(delete(model))
    await session.flush()


async def main(seed: int = 42) -> None:
    engine = build_engine(settings.database_url_async)
    session_factory = build_session_factory(engine)
    clock = SystemClock()

    await init_db(engine)

    async with session_factory() as session:
        print("🌱 Starting database seed...")
        await clear_database(session)

        counts = await seed_database(session, clock, seed=seed)
        print(f"   ✓ {counts['employees']} employees, {counts['interactions']} interaction series")

        ranking = await PeerRanker(session, clock).rank_all_peers()
        print(f"   ✓ {ranking.rankings_written} peer rankings computed")

        now = clock.now()
        cycle = await CycleManager(session, clock).create_cycle(
            CreateCycleInput(
                name="Q4 Peer Feedback",
                cycle_type=CycleType.PEER,
                start_date=now,
                end_date=now + timedelta(days=14),
                config={"peers_per_employee": 2},
            )
        )
        assignment = await FeedbackAssigner(session, clock).assign_feedback_requests(
            cycle.id, peers_per_employee=2
        )
        print(f"   ✓ Cycle '{cycle.name}' with {assignment.created_count} feedback requests")

        await session.commit()

    await engine.dispose()
    print("\n✅ DATABASE SEEDED SUCCESSFULLY!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the peer feedback database")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for interactions")
    args = parser.parse_args()

    asyncio.run(main(seed=args.seed))
