"""
Database module for Classmate Hub
"""
from .base import Base, utcnow
from .engine import Database, get_db
from .models import (
    User,
    UserRole,
    Photo,
    photo_likes,
    photo_tags,
    Course,
)

__all__ = [
    "Base",
    "utcnow",
    "Database",
    "get_db",
    "User",
    "UserRole",
    "Photo",
    "photo_likes",
    "photo_tags",
    "Course",
]
