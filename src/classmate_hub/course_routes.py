"""
Course listing route (public)
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from .db.engine import get_db
from .db.models import Course
from .schemas import CourseOut

router = APIRouter(prefix="/api/courses", tags=["courses"])


@router.get("", response_model=List[CourseOut])
def list_courses(db: Session = Depends(get_db)):
    """Active courses, most recent start date first"""
    courses = db.execute(
        select(Course)
        .where(Course.is_active.is_(True))
        .order_by(Course.start_date.desc(), Course.name.asc())
    ).scalars().all()
    return courses
