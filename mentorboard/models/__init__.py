"""SQLAlchemy ORM Models for MentorBoard Database Schema"""
from mentorboard.models.user import User
from mentorboard.models.period import Period
from mentorboard.models.point_reason import PointReason
from mentorboard.models.ledger import PointsTransaction, ExperienceTransaction, TransactionRollback
from mentorboard.models.attendance import AttendanceSession, StudentAttendance
from mentorboard.models.event import EventType, Event, EventParticipant
from mentorboard.models.syllabus import Classroom, Syllabus, SyllabusLesson, ClassroomLessonProgress
from mentorboard.models.wish import Wish
from mentorboard.models.weekly_report import (
    WeeklyReportQuestion,
    WeeklyReport,
    WeeklyReportQuestionResponse,
)
from mentorboard.models.student_report import StudentReport

__all__ = [
    "User",
    "Period",
    "PointReason",
    "PointsTransaction",
    "ExperienceTransaction",
    "TransactionRollback",
    "AttendanceSession",
    "StudentAttendance",
    "EventType",
    "Event",
    "EventParticipant",
    "Classroom",
    "Syllabus",
    "SyllabusLesson",
    "ClassroomLessonProgress",
    "Wish",
    "WeeklyReportQuestion",
    "WeeklyReport",
    "WeeklyReportQuestionResponse",
    "StudentReport",
]
