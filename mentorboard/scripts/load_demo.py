"""
Demo Scenario Loader

Builds a demo programme from a YAML scenario: an active period, an admin,
tutors with their assistants and students, point reasons and awards,
attendance sessions, events, weekly report questions and a syllabus.
Names are generated with Faker.

Usage: python -m mentorboard.scripts.load_demo --scenario path/to/scenario.yaml --reset
"""
import asyncio
import argparse
import random
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List

import yaml
from faker import Faker

from mentorboard.clock import utcnow
from mentorboard.database import AsyncSessionLocal, Base
from mentorboard.models import User
from mentorboard.models.enums import QuestionType, UserRole
from mentorboard.services import attendance, events, ledger, periods, point_reasons, syllabus, users
from mentorboard.services.weekly_reports import create_question

DEFAULT_SCENARIO = Path(__file__).with_name("demo_scenario.yaml")


def read_scenario(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        scenario = yaml.safe_load(f) or {}
    if "period" not in scenario or "admin" not in scenario:
        raise ValueError(f"Scenario {path} needs at least 'period' and 'admin' sections")
    return scenario


async def clear_data():
    """Delete every row, children first"""
    async with AsyncSessionLocal() as session:
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    print("✓ Cleared existing data")


async def _create_account(db, fake: Faker, username: str, role: UserRole, password: str, **links) -> User:
    first_name = links.pop("first_name", None) or fake.first_name()
    last_name = links.pop("last_name", None) or fake.last_name()
    return await users.create_user(
        db,
        username=username,
        email=f"{username}@example.com",
        password=password,
        role=role,
        first_name=first_name,
        last_name=last_name,
        **links,
    )


async def load_scenario(path: Path = DEFAULT_SCENARIO, reset: bool = False) -> Dict[str, int]:
    """
    Load a demo scenario.

    Args:
        path: YAML scenario file
        reset: Clear all tables first

    Returns:
        Counts of what was created
    """
    scenario = read_scenario(Path(path))
    seed = scenario.get("seed", 0)
    fake = Faker()
    fake.seed_instance(seed)
    rng = random.Random(seed)
    password = scenario.get("password", "demo1234")
    now = utcnow()
    summary = {"users": 0, "awards": 0, "check_ins": 0, "events": 0, "questions": 0, "lessons": 0}

    if reset:
        await clear_data()

    async with AsyncSessionLocal() as db:
        # Period
        period_cfg = scenario["period"]
        period = await periods.create_period(
            db,
            name=period_cfg["name"],
            start_date=now - timedelta(days=period_cfg.get("started_days_ago", 0)),
            end_date=now + timedelta(weeks=period_cfg.get("weeks", 8)),
            description=period_cfg.get("description"),
            total_weeks=period_cfg.get("weeks"),
        )
        await periods.activate_period(db, period.id)
        print(f"  Created active period '{period.name}'")

        # Accounts
        admin_cfg = scenario["admin"]
        admin = await _create_account(
            db, fake, admin_cfg["username"], UserRole.ADMIN, password,
            first_name=admin_cfg.get("first_name"), last_name=admin_cfg.get("last_name"),
        )
        summary["users"] += 1

        groups: List[Dict[str, Any]] = []
        for tutor_cfg in scenario.get("tutors", []):
            tutor = await _create_account(db, fake, tutor_cfg["username"], UserRole.TUTOR, password)
            group = {"tutor": tutor, "students": []}
            for n in range(tutor_cfg.get("assistants", 0)):
                await _create_account(
                    db, fake, f"{tutor.username}.assistant{n + 1}", UserRole.ASSISTANT, password,
                    assisted_tutor_id=tutor.id,
                )
                summary["users"] += 1
            for n in range(tutor_cfg.get("students", 0)):
                student = await _create_account(
                    db, fake, f"{tutor.username}.student{n + 1}", UserRole.STUDENT, password,
                    tutor_id=tutor.id,
                )
                group["students"].append(student)
                summary["users"] += 1
            groups.append(group)
            summary["users"] += 1
        print(f"  Created {summary['users']} accounts (password '{password}')")

        # Points
        reasons = [
            await point_reasons.create_point_reason(db, admin, r["name"], r.get("description"))
            for r in scenario.get("point_reasons", [])
        ]
        amounts = scenario.get("award_points", [10])
        if reasons:
            for group in groups:
                for student in group["students"]:
                    for _ in range(scenario.get("awards_per_student", 0)):
                        await ledger.award_points(
                            db, group["tutor"], student.id, rng.choice(amounts),
                            point_reason_id=rng.choice(reasons).id,
                        )
                        summary["awards"] += 1
        print(f"  Recorded {summary['awards']} point awards")

        # Attendance
        for session_cfg in scenario.get("attendance_sessions", []):
            for group in groups:
                session = await attendance.create_session(
                    db, group["tutor"], session_cfg["title"],
                    now - timedelta(days=session_cfg.get("days_ago", 0)),
                    generate_qr=True,
                )
                rate = session_cfg.get("attendance_rate", 1.0)
                for student in group["students"]:
                    if rng.random() < rate:
                        await attendance.manual_check_in(db, group["tutor"], session.id, student.id)
                        summary["check_ins"] += 1
        print(f"  Recorded {summary['check_ins']} attendance check-ins")

        # Events
        types = {}
        for type_cfg in scenario.get("event_types", []):
            event_type = await events.create_event_type(db, admin, type_cfg["name"], type_cfg.get("description"))
            types[event_type.name] = event_type
        all_students = [s for group in groups for s in group["students"]]
        for event_cfg in scenario.get("events", []):
            event = await events.create_event(
                db, admin,
                title=event_cfg["title"],
                event_date=now + timedelta(days=event_cfg.get("days_from_now", 7)),
                event_type_id=types[event_cfg["type"]].id,
                capacity=event_cfg.get("capacity"),
                location=event_cfg.get("location"),
            )
            for student in rng.sample(all_students, min(len(all_students), event.capacity // 2)):
                await events.register(db, student, event.id)
            summary["events"] += 1
        print(f"  Created {summary['events']} events")

        # Weekly report questions
        for role, texts in scenario.get("questions", {}).items():
            for text in texts:
                await create_question(db, admin, text, QuestionType.FIXED, UserRole(role))
                summary["questions"] += 1

        # Syllabus
        syllabus_cfg = scenario.get("syllabus")
        if syllabus_cfg:
            lessons = [{"title": title} for title in syllabus_cfg.get("lessons", [])]
            await syllabus.create_syllabus(
                db, admin, syllabus_cfg["title"], syllabus_cfg.get("description"), lessons, is_global=True,
            )
            summary["lessons"] = len(lessons)
            for group in groups:
                await syllabus.create_classroom(db, group["tutor"], f"{group['tutor'].full_name}'s class")

    return summary


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Load a demo scenario")
    parser.add_argument(
        "--scenario",
        "-s",
        type=Path,
        default=DEFAULT_SCENARIO,
        help="YAML scenario file"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete all existing data first"
    )

    args = parser.parse_args()

    print(f"\nLoading scenario {args.scenario}...")
    summary = asyncio.run(load_scenario(args.scenario, reset=args.reset))
    print(f"\n✅ Scenario loaded: {summary}")


if __name__ == "__main__":
    main()
