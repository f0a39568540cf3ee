"""String enums stored in VARCHAR columns"""
import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    TUTOR = "TUTOR"
    ASSISTANT = "ASSISTANT"
    STUDENT = "STUDENT"


class PeriodStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class TransactionType(str, enum.Enum):
    AWARD = "AWARD"
    REDEEM = "REDEEM"


class LedgerKind(str, enum.Enum):
    POINTS = "POINTS"
    EXPERIENCE = "EXPERIENCE"


class AttendanceSessionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class CheckInMethod(str, enum.Enum):
    QR = "QR"
    MANUAL = "MANUAL"


class EventStatus(str, enum.Enum):
    UPCOMING = "UPCOMING"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ParticipantStatus(str, enum.Enum):
    REGISTERED = "REGISTERED"
    ATTENDED = "ATTENDED"


class WishStatus(str, enum.Enum):
    PENDING = "PENDING"
    REVIEWED = "REVIEWED"


class WeeklyReportStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class QuestionType(str, enum.Enum):
    FIXED = "FIXED"
    VARIABLE = "VARIABLE"


class QuestionResponse(str, enum.Enum):
    DONE = "DONE"
    NOT_DONE = "NOT_DONE"
