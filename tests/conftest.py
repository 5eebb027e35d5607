"""
Pytest configuration and shared fixtures.
"""

import pytest
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict

from jobfeed.database import Category, Job, JobApplication, Profile, init_database, get_session
from jobfeed.logger import get_logger, reset_logger

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def quiet_logger(tmp_path):
    """Fresh global logger per test, writing only to the test's tmp dir."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield logger
    reset_logger()


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "jobfeed.db"
    init_database(path)
    return path


@pytest.fixture
def db_session(db_path):
    """Create a temporary database and return a session."""
    session = get_session(db_path)
    yield session
    session.close()


@pytest.fixture
def customer(db_session) -> Profile:
    profile = Profile(
        id="cust-plain",
        full_name="Dana Customer",
        avatar_url="https://cdn.example.com/a/dana.png",
        location="Austin, TX",
        user_type="customer",
        rating_average=4.5,
        rating_count=12,
    )
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def verified_customer(db_session) -> Profile:
    profile = Profile(
        id="cust-verified",
        full_name="Vera Verified",
        location="Dallas, TX",
        user_type="customer",
        id_verified=True,
    )
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def provider(db_session) -> Profile:
    profile = Profile(id="prov-1", full_name="Pat Provider", user_type="provider")
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def categories(db_session) -> Dict[str, Category]:
    cats = {
        "plumbing": Category(id="cat-plumbing", name="Plumbing", slug="plumbing"),
        "cleaning": Category(id="cat-cleaning", name="Cleaning", slug="cleaning"),
    }
    db_session.add_all(cats.values())
    db_session.commit()
    return cats


@pytest.fixture
def make_job(db_session, customer):
    """Factory adding a job; created_at is BASE_TIME shifted by `hours`."""

    def _make(job_id: str, hours: float = 0, **fields) -> Job:
        values = {
            "id": job_id,
            "customer_id": customer.id,
            "title": f"Job {job_id}",
            "description": "Needs doing",
            "status": "open",
            "created_at": BASE_TIME + timedelta(hours=hours),
        }
        values.update(fields)
        job = Job(**values)
        db_session.add(job)
        db_session.commit()
        return job

    return _make


@pytest.fixture
def add_applications(db_session, provider):
    def _add(job_id: str, count: int) -> None:
        for i in range(count):
            db_session.add(JobApplication(id=f"{job_id}-app-{i}", job_id=job_id, provider_id=provider.id))
        db_session.commit()

    return _add


@pytest.fixture
def valid_listing() -> Dict[str, Any]:
    """Valid job listing payload."""
    return {
        "id": "job-100",
        "customer_id": "cust-plain",
        "title": "Fix leaking kitchen sink",
        "description": "Drip under the sink, probably the trap.",
        "status": "open",
        "fixed_price": 120.0,
        "latitude": 30.2672,
        "longitude": -97.7431,
        "created_at": "2026-03-01T12:00:00",
    }


@pytest.fixture
def fixture_document() -> Dict[str, Any]:
    return {
        "profiles": [
            {"id": "cust-1", "full_name": "Casey", "user_type": "customer", "business_verified": True},
            {"id": "prov-1", "full_name": "Pat", "user_type": "provider"},
        ],
        "categories": [{"id": "cat-1", "name": "Handyman", "slug": "handyman"}],
        "jobs": [
            {
                "id": "job-1",
                "customer_id": "cust-1",
                "category_id": "cat-1",
                "title": "Hang three shelves",
                "budget_min": 40,
                "budget_max": 80,
                "created_at": "2026-03-01T09:00:00",
            },
            {
                "id": "job-2",
                "customer_id": "cust-1",
                "title": "Assemble wardrobe",
                "fixed_price": 150,
                "created_at": "2026-03-01T10:00:00",
            },
            {"id": "job-bad", "customer_id": "cust-1", "title": "", "fixed_price": -1},
        ],
        "applications": [{"id": "app-1", "job_id": "job-1", "provider_id": "prov-1"}],
    }


@pytest.fixture
def fixture_file(tmp_path, fixture_document) -> Path:
    path = tmp_path / "fixtures.json"
    path.write_text(json.dumps(fixture_document, indent=2))
    return path


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME
