"""
Integration tests for the YAML demo scenario loader
"""
import pytest
from sqlalchemy import func, select

from mentorboard.models import Period, PointsTransaction, StudentAttendance, User
from mentorboard.scripts import load_demo

pytestmark = pytest.mark.integration

SMALL_SCENARIO = """
seed: 7
password: demo1234
period:
  name: Demo Term
  weeks: 6
  started_days_ago: 3
admin:
  username: boss
tutors:
  - username: tutor.one
    students: 3
    assistants: 1
point_reasons:
  - name: Homework
awards_per_student: 2
award_points: [5]
attendance_sessions:
  - title: First lesson
    days_ago: 0
    attendance_rate: 1.0
event_types:
  - name: Workshop
events:
  - title: Git basics
    type: Workshop
    capacity: 4
questions:
  TUTOR:
    - Prepared the lesson plan
syllabus:
  title: Python
  lessons:
    - Variables
    - Loops
"""


@pytest.fixture
def scenario_file(tmp_path):
    path = tmp_path / "scenario.yaml"
    path.write_text(SMALL_SCENARIO, encoding="utf-8")
    return path


@pytest.fixture
def loader_db(monkeypatch, session_factory):
    """Point the loader at the test database"""
    monkeypatch.setattr(load_demo, "AsyncSessionLocal", session_factory)
    return session_factory


class TestLoadScenario:
    async def test_builds_programme(self, loader_db, scenario_file):
        summary = await load_demo.load_scenario(scenario_file)

        assert summary == {
            "users": 6,
            "awards": 6,
            "check_ins": 3,
            "events": 1,
            "questions": 1,
            "lessons": 2,
        }

        async with loader_db() as db:
            active = (await db.execute(select(Period).where(Period.status == "ACTIVE"))).scalars().all()
            assert [p.name for p in active] == ["Demo Term"]
            assert await db.scalar(select(func.count(StudentAttendance.id))) == 3
            # Two awards of 5 plus the attendance award per student
            assert await db.scalar(select(func.count(PointsTransaction.id))) == 9
            student = await db.scalar(select(User).where(User.username == "tutor.one.student1"))
            assert student.points == 40

    async def test_reset_replaces_data(self, loader_db, scenario_file):
        await load_demo.load_scenario(scenario_file)
        await load_demo.load_scenario(scenario_file, reset=True)

        async with loader_db() as db:
            assert await db.scalar(select(func.count(User.id))) == 6

    async def test_demo_accounts_can_log_in(self, client, loader_db, scenario_file):
        await load_demo.load_scenario(scenario_file)

        response = await client.post("/api/v1/auth/login", json={"username": "boss", "password": "demo1234"})

        assert response.status_code == 200
        assert response.json()["user"]["role"] == "ADMIN"


class TestReadScenario:
    def test_missing_sections(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("seed: 1\n", encoding="utf-8")

        with pytest.raises(ValueError):
            load_demo.read_scenario(path)

    def test_bundled_scenario_is_valid(self):
        scenario = load_demo.read_scenario(load_demo.DEFAULT_SCENARIO)

        assert scenario["period"]["weeks"] == 8
        assert len(scenario["tutors"]) == 2
