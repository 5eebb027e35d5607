"""
Job analytics counters.

Counters live in one job_analytics row per job and are only ever changed
through INSERT ... ON CONFLICT DO UPDATE, so concurrent writers increment
the stored value instead of overwriting each other. A viewer's first view
is claimed with INSERT ... ON CONFLICT DO NOTHING on job_viewers; only the
writer whose insert lands counts a unique viewer.
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from .database import VIEWER_TYPES, Job, JobAnalytics, JobView, JobViewer, new_id, utcnow
from .logger import get_logger


def _upsert(session, job: Job, insert_values: dict, update_values: dict) -> None:
    now = utcnow()
    stmt = sqlite_insert(JobAnalytics).values(
        id=new_id(),
        job_id=job.id,
        customer_id=job.customer_id,
        created_at=now,
        updated_at=now,
        **insert_values,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[JobAnalytics.job_id],
        set_={**update_values, "updated_at": now},
    )
    session.execute(stmt)


def record_job_view(
    session,
    job_id: str,
    viewer_id: Optional[str] = None,
    viewer_type: str = "guest",
    session_id: Optional[str] = None,
) -> bool:
    """
    Record one view of a job and bump its counters.

    A view is unique only for a known viewer seeing the job for the first
    time; guest views always count towards total_views only.

    Returns:
        False if the job does not exist, True otherwise
    """
    if viewer_type not in VIEWER_TYPES:
        raise ValueError(f"viewer_type must be one of {VIEWER_TYPES}, got {viewer_type!r}")

    logger = get_logger()
    job = session.get(Job, job_id)
    if job is None:
        logger.warning("View for unknown job ignored", job_id=job_id)
        return False

    session.add(JobView(job_id=job_id, viewer_id=viewer_id, viewer_type=viewer_type, session_id=session_id))
    session.flush()

    is_unique = False
    if viewer_id is not None:
        marker = (
            sqlite_insert(JobViewer)
            .values(id=new_id(), job_id=job_id, viewer_id=viewer_id, first_viewed_at=utcnow())
            .on_conflict_do_nothing(index_elements=[JobViewer.job_id, JobViewer.viewer_id])
        )
        is_unique = session.execute(marker).rowcount == 1

    unique_increment = 1 if is_unique else 0
    _upsert(
        session,
        job,
        insert_values={"total_views": 1, "unique_viewers": unique_increment, "total_quotes": 0},
        update_values={
            "total_views": JobAnalytics.total_views + 1,
            "unique_viewers": JobAnalytics.unique_viewers + unique_increment,
        },
    )
    session.commit()

    logger.record_view()
    logger.debug("Job view recorded", job_id=job_id, viewer_type=viewer_type, unique=is_unique)
    return True


def record_job_quote(session, job_id: str, amount: float) -> bool:
    """Add a quote amount to the job's running quote statistics."""
    if amount is None or amount < 0:
        raise ValueError(f"quote amount must be a non-negative number, got {amount!r}")

    logger = get_logger()
    job = session.get(Job, job_id)
    if job is None:
        logger.warning("Quote for unknown job ignored", job_id=job_id)
        return False

    _upsert(
        session,
        job,
        insert_values={
            "total_views": 0,
            "unique_viewers": 0,
            "total_quotes": 1,
            "avg_quote_amount": amount,
            "min_quote_amount": amount,
            "max_quote_amount": amount,
        },
        update_values={
            "total_quotes": JobAnalytics.total_quotes + 1,
            "avg_quote_amount": func.coalesce(
                (JobAnalytics.avg_quote_amount * JobAnalytics.total_quotes + amount)
                / (JobAnalytics.total_quotes + 1),
                amount,
            ),
            "min_quote_amount": func.min(func.coalesce(JobAnalytics.min_quote_amount, amount), amount),
            "max_quote_amount": func.max(func.coalesce(JobAnalytics.max_quote_amount, amount), amount),
        },
    )
    session.commit()
    logger.debug("Job quote recorded", job_id=job_id, amount=amount)
    return True


def get_job_analytics_summary(session, job_id: str) -> Optional[dict]:
    """Counters for one job, or None if it has never been viewed or quoted."""
    row = session.query(JobAnalytics).filter_by(job_id=job_id).first()
    if row is None:
        return None
    return {
        "job_id": row.job_id,
        "customer_id": row.customer_id,
        "total_views": row.total_views,
        "unique_viewers": row.unique_viewers,
        "total_quotes": row.total_quotes,
        "avg_quote_amount": round(row.avg_quote_amount, 2) if row.avg_quote_amount is not None else None,
        "min_quote_amount": row.min_quote_amount,
        "max_quote_amount": row.max_quote_amount,
        "updated_at": row.updated_at,
    }
