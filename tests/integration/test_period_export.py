"""
Integration tests for the period CSV export
"""
import pandas as pd
import pytest

from mentorboard.clock import utcnow
from mentorboard.exceptions import NoActivePeriodError
from mentorboard.models.enums import LedgerKind
from mentorboard.scripts import data_export
from mentorboard.services import attendance, ledger

pytestmark = pytest.mark.integration


@pytest.fixture
def export_db(monkeypatch, session_factory):
    monkeypatch.setattr(data_export, "AsyncSessionLocal", session_factory)
    return session_factory


class TestExportPeriod:
    async def test_writes_csv_files(self, export_db, people, tmp_path):
        async with export_db() as db:
            kept, _ = await ledger.award_points(db, people.tutor, people.student.id, 20)
            dropped, _ = await ledger.award_points(db, people.tutor, people.student2.id, 50)
            await ledger.rollback_transaction(db, people.admin, dropped.id, LedgerKind.POINTS, "Wrong student")
            session = await attendance.create_session(db, people.tutor, "Lesson", utcnow())
            await attendance.manual_check_in(db, people.tutor, session.id, people.student.id)

        await data_export.export_period(str(tmp_path))

        for name in ("points", "experience", "attendance", "balances"):
            assert (tmp_path / f"{name}.csv").exists()

        points = pd.read_csv(tmp_path / "points.csv")
        assert len(points) == 3
        assert points["rolled_back"].sum() == 1

        attended = pd.read_csv(tmp_path / "attendance.csv")
        assert list(attended["username"]) == ["student"]

        balances = pd.read_csv(tmp_path / "balances.csv").set_index("username")
        assert balances.loc["student", "points"] == 50
        assert balances.loc["student", "experience"] == 50
        assert "student2" not in balances.index

    async def test_requires_active_period_by_default(self, export_db, tmp_path):
        with pytest.raises(NoActivePeriodError):
            await data_export.export_period(str(tmp_path))
