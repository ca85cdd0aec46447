"""
Photo gallery models
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Table, Index
from sqlalchemy.orm import relationship

from ..base import Base, utcnow


# A user likes a photo at most once: the pair is the primary key
photo_likes = Table(
    "photo_likes",
    Base.metadata,
    Column("photo_id", Integer, ForeignKey("photos.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=utcnow, nullable=False),
)

photo_tags = Table(
    "photo_tags",
    Base.metadata,
    Column("photo_id", Integer, ForeignKey("photos.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Photo(Base):
    """Gallery photo backed by an image host asset"""
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, index=True)
    uploaded_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    url = Column(String, nullable=False)
    public_id = Column(String, nullable=False)  # Image host identifier
    thumbnail_url = Column(String, nullable=True)
    title = Column(String(100), nullable=True)
    description = Column(String(500), nullable=True)
    location = Column(String(100), nullable=True)
    taken_at = Column(DateTime, nullable=True)
    is_public = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    uploaded_by = relationship("User", lazy="joined")
    tagged_users = relationship("User", secondary=photo_tags, order_by="User.name")
    liked_by = relationship("User", secondary=photo_likes, order_by="User.name", viewonly=True)

    __table_args__ = (
        Index("ix_photos_created_at", "created_at"),
        Index("ix_photos_uploaded_by_id", "uploaded_by_id"),
    )

    def __repr__(self):
        return f"<Photo id={self.id} public_id={self.public_id!r}>"
