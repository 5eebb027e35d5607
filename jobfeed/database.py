"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for the marketplace tables the job feed reads.
"""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from sqlalchemy import (
    create_engine,
    event,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from .geo import great_circle_miles

Base = declarative_base()

JOB_STATUSES = (
    "open",
    "in_progress",
    "booked",
    "completed",
    "cancelled",
    "expired",
    "closed",
)
FEED_STATUSES = ("open", "in_progress")
USER_TYPES = ("customer", "provider", "hybrid")
VIEWER_TYPES = ("provider", "customer", "guest")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(value: datetime) -> datetime:
    """
    Normalize a timestamp to naive UTC, the form every DateTime column stores.

    Aware values are converted to UTC; naive values are taken as UTC already.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class Profile(Base):
    """Marketplace user profile (customer side of a listing)."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_id)
    full_name = Column(String, nullable=False)
    avatar_url = Column(String)
    location = Column(String)
    user_type = Column(String, nullable=False, default="customer")
    id_verified = Column(Boolean, nullable=False, default=False)
    business_verified = Column(Boolean, nullable=False, default=False)
    rating_average = Column(Float)
    rating_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    jobs = relationship("Job", back_populates="customer")


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, unique=True)
    slug = Column(String)
    parent_id = Column(String(36), ForeignKey("categories.id"))


class Job(Base):
    """Job listing posted by a customer."""

    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=new_id)
    customer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    photos = Column(JSON, nullable=False, default=list)
    featured_image_url = Column(String)
    status = Column(String, nullable=False, default="open", index=True)
    city = Column(String)
    state = Column(String)
    latitude = Column(Float)
    longitude = Column(Float)
    deadline = Column(DateTime)
    fixed_price = Column(Float)
    budget_min = Column(Float)
    budget_max = Column(Float)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Profile", back_populates="jobs")
    applications = relationship("JobApplication", back_populates="job", cascade="all, delete-orphan")


class JobApplication(Base):
    """Provider application (quote) against a job; drives the popular sort."""

    __tablename__ = "job_applications"

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    message = Column(Text)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    job = relationship("Job", back_populates="applications")


class JobView(Base):
    __tablename__ = "job_views"

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    viewer_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), index=True)
    viewer_type = Column(String, nullable=False, default="guest")
    session_id = Column(String)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class JobViewer(Base):
    """First view of a job by a known viewer; one row per (job, viewer)."""

    __tablename__ = "job_viewers"
    __table_args__ = (UniqueConstraint("job_id", "viewer_id", name="uq_job_viewers_job_viewer"),)

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    viewer_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    first_viewed_at = Column(DateTime, nullable=False, default=utcnow)


class JobAnalytics(Base):
    """Per-job counters, one row per job, maintained by upsert."""

    __tablename__ = "job_analytics"

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, unique=True)
    customer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    total_views = Column(Integer, nullable=False, default=0)
    unique_viewers = Column(Integer, nullable=False, default=0)
    total_quotes = Column(Integer, nullable=False, default=0)
    avg_quote_amount = Column(Float)
    min_quote_amount = Column(Float)
    max_quote_amount = Column(Float)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


def fold_case(value):
    """Unicode case folding for SQL text; SQLite's lower() only folds ASCII."""
    if value is None:
        return None
    return value.casefold()


def _on_connect(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    dbapi_connection.create_function("great_circle_miles", 4, great_circle_miles, deterministic=True)
    dbapi_connection.create_function("fold_case", 1, fold_case, deterministic=True)


def get_engine(db_path: Path):
    """
    Create an engine for the SQLite file at db_path.

    Every pooled connection enforces foreign keys and gets the
    great_circle_miles() and fold_case() SQL functions.
    """
    engine = create_engine(f"sqlite:///{db_path}")
    event.listen(engine, "connect", _on_connect)
    return engine


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = get_engine(db_path)
    Session = sessionmaker(bind=engine)
    return Session()
