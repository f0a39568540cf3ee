"""
Data Export Script

Exports one period's ledgers and attendance to CSV files, plus a per-student
balance summary recomputed from the ledger.
Usage: python -m mentorboard.scripts.data_export --output exports/ [--period-id UUID]
"""
import asyncio
import argparse
from pathlib import Path
from typing import Dict, Optional
from uuid import UUID

import pandas as pd
from sqlalchemy import select

from mentorboard.database import AsyncSessionLocal
from mentorboard.models import (
    AttendanceSession,
    ExperienceTransaction,
    PointsTransaction,
    StudentAttendance,
    User,
)
from mentorboard.models.enums import TransactionType
from mentorboard.services.periods import get_period, require_active_period

POINTS_COLUMNS = ["id", "student_id", "username", "type", "points", "reason", "rolled_back", "created_at"]
EXPERIENCE_COLUMNS = ["id", "student_id", "username", "amount", "rolled_back", "created_at"]
ATTENDANCE_COLUMNS = ["session_id", "title", "session_date", "student_id", "username", "check_in_method", "check_in_time"]


def summarize_balances(points: pd.DataFrame, experience: pd.DataFrame) -> pd.DataFrame:
    """
    Per-student balances from raw ledger rows.

    Rolled-back rows are ignored. Points are awards minus redemptions floored
    at zero; experience is explicit experience plus awarded points.
    """
    columns = ["student_id", "username", "awarded", "redeemed", "points", "experience"]
    live_points = points[~points["rolled_back"]] if not points.empty else points
    live_experience = experience[~experience["rolled_back"]] if not experience.empty else experience
    if live_points.empty and live_experience.empty:
        return pd.DataFrame(columns=columns)

    frames = []
    if not live_points.empty:
        signed = live_points.assign(
            awarded=live_points["points"].where(live_points["type"] == TransactionType.AWARD.value, 0),
            redeemed=live_points["points"].where(live_points["type"] == TransactionType.REDEEM.value, 0),
            extra_experience=0,
        )
        frames.append(signed[["student_id", "username", "awarded", "redeemed", "extra_experience"]])
    if not live_experience.empty:
        frames.append(
            live_experience.assign(awarded=0, redeemed=0, extra_experience=live_experience["amount"])[
                ["student_id", "username", "awarded", "redeemed", "extra_experience"]
            ]
        )

    summary = (
        pd.concat(frames, ignore_index=True)
        .groupby(["student_id", "username"], as_index=False)[["awarded", "redeemed", "extra_experience"]]
        .sum()
    )
    summary["points"] = (summary["awarded"] - summary["redeemed"]).clip(lower=0)
    summary["experience"] = summary["extra_experience"] + summary["awarded"]
    return (
        summary[columns]
        .sort_values(["experience", "username"], ascending=[False, True])
        .reset_index(drop=True)
    )


async def load_frames(period_id: Optional[UUID] = None) -> Dict[str, pd.DataFrame]:
    """Read the period's ledgers and attendance into DataFrames"""
    async with AsyncSessionLocal() as db:
        period = await get_period(db, period_id) if period_id else await require_active_period(db)

        points = await db.execute(
            select(
                PointsTransaction.id, PointsTransaction.student_id, User.username, PointsTransaction.type,
                PointsTransaction.points, PointsTransaction.reason, PointsTransaction.rolled_back,
                PointsTransaction.created_at,
            )
            .join(User, User.id == PointsTransaction.student_id)
            .where(PointsTransaction.period_id == period.id)
            .order_by(PointsTransaction.created_at)
        )
        experience = await db.execute(
            select(
                ExperienceTransaction.id, ExperienceTransaction.student_id, User.username,
                ExperienceTransaction.amount, ExperienceTransaction.rolled_back, ExperienceTransaction.created_at,
            )
            .join(User, User.id == ExperienceTransaction.student_id)
            .where(ExperienceTransaction.period_id == period.id)
            .order_by(ExperienceTransaction.created_at)
        )
        attendance = await db.execute(
            select(
                AttendanceSession.id, AttendanceSession.title, AttendanceSession.session_date,
                StudentAttendance.student_id, User.username, StudentAttendance.check_in_method,
                StudentAttendance.check_in_time,
            )
            .join(StudentAttendance, StudentAttendance.session_id == AttendanceSession.id)
            .join(User, User.id == StudentAttendance.student_id)
            .where(AttendanceSession.session_date >= period.start_date)
            .order_by(AttendanceSession.session_date, User.username)
        )

        return {
            "period": pd.DataFrame([{"id": period.id, "name": period.name}]),
            "points": pd.DataFrame(points.all(), columns=POINTS_COLUMNS),
            "experience": pd.DataFrame(experience.all(), columns=EXPERIENCE_COLUMNS),
            "attendance": pd.DataFrame(attendance.all(), columns=ATTENDANCE_COLUMNS),
        }


async def export_period(output_dir: str, period_id: Optional[UUID] = None):
    """
    Write points.csv, experience.csv, attendance.csv and balances.csv.

    Args:
        output_dir: Directory to write into (created if missing)
        period_id: Period to export (default: the active one)
    """
    frames = await load_frames(period_id)
    period_name = frames["period"].iloc[0]["name"]
    print(f"Exporting period '{period_name}' to {output_dir}...")

    target = Path(output_dir)
    target.mkdir(parents=True, exist_ok=True)

    frames["balances"] = summarize_balances(frames["points"], frames["experience"])
    for name in ("points", "experience", "attendance", "balances"):
        path = target / f"{name}.csv"
        frames[name].to_csv(path, index=False)
        print(f"  {name}: {len(frames[name])} rows -> {path}")

    print("\n✓ Export complete")


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Export a period's ledgers and attendance to CSV")
    parser.add_argument(
        "--output",
        "-o",
        default="exports",
        help="Output directory (default: exports)"
    )
    parser.add_argument(
        "--period-id",
        type=UUID,
        default=None,
        help="Period to export (default: active period)"
    )

    args = parser.parse_args()
    asyncio.run(export_period(args.output, args.period_id))


if __name__ == "__main__":
    main()
