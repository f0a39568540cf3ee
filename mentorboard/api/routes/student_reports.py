"""
Student Report API Endpoints

GET /api/v1/student-reports?student_id= - Reports about a student in scope (staff)
POST /api/v1/student-reports - Write a report (staff)
PATCH|DELETE /api/v1/student-reports/{report_id} - Author edits / deletes
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from mentorboard.api.auth import require_staff
from mentorboard.api.schemas import MessageResponse, ORMModel
from mentorboard.database import get_db
from mentorboard.models import User
from mentorboard.services import student_reports as report_service

router = APIRouter(prefix="/api/v1/student-reports", tags=["student-reports"])


class StudentReportOut(ORMModel):
    id: UUID
    student_id: UUID
    tutor_id: UUID
    title: str
    content: str
    created_at: datetime
    updated_at: datetime


class StudentReportCreate(BaseModel):
    student_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)


class StudentReportUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)


@router.get("", response_model=List[StudentReportOut])
async def list_reports(
    student_id: UUID = Query(...),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.list_reports_for_student(db, user, student_id)


@router.post("", response_model=StudentReportOut, status_code=201)
async def create_report(
    body: StudentReportCreate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.create_report(db, user, body.student_id, body.title, body.content)


@router.patch("/{report_id}", response_model=StudentReportOut)
async def update_report(
    report_id: UUID,
    body: StudentReportUpdate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.update_report(db, user, report_id, body.title, body.content)


@router.delete("/{report_id}", response_model=MessageResponse)
async def delete_report(report_id: UUID, user: User = Depends(require_staff), db: AsyncSession = Depends(get_db)):
    await report_service.delete_report(db, user, report_id)
    return MessageResponse(message="Report deleted")
