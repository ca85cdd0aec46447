"""
Database models for Classmate Hub
"""
from .user import User, UserRole, PROFILE_FIELDS
from .photo import Photo, photo_likes, photo_tags
from .course import Course

__all__ = [
    "User",
    "UserRole",
    "PROFILE_FIELDS",
    "Photo",
    "photo_likes",
    "photo_tags",
    "Course",
]
