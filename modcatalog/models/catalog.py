from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)

from .base import Base

class CategoryDB(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, index=True, nullable=False)
    icon = Column(String(50))
    description = Column(String(200))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class ModDB(Base):
    """
    Mods reference their category by name, not by foreign key.
    """
    __tablename__ = "mods"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), index=True, nullable=False)
    description = Column(Text)
    category = Column(String(50), index=True)
    tags = Column(Text)  # JSON array of strings: ["tech", "automation"]
    rating = Column(Float, index=True, server_default="0")
    downloads = Column(Integer, index=True, server_default="0", nullable=False)
    icon = Column(String(50))
    cloud_link = Column(String(1000))
    source_link = Column(String(1000))
    background_image = Column(String(1000))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

class RatingDB(Base):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("mod_id", "user_id", name="uq_ratings_mod_user"),
    )

    id = Column(Integer, primary_key=True)
    mod_id = Column(Integer, ForeignKey("mods.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    username = Column(String(20))
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
