"""Shared pytest fixtures.

Points the application at a throwaway SQLite database before any
application module is imported, since the engines are created at import.
"""
import json
import os
import tempfile
import uuid

_TMP_DIR = tempfile.mkdtemp(prefix="mealplan-tests-")
os.environ["WRITE_DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP_DIR, "test.db")
os.environ["READ_DATABASE_URL"] = os.environ["WRITE_DATABASE_URL"]
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")

import pytest

from database import init_db
from database.database import WriteSessionLocal
from database.models import UserProfile


@pytest.fixture(scope="session", autouse=True)
def setup_db():
    """Initialize database before tests."""
    init_db()


@pytest.fixture
def db():
    session = WriteSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def profile(db):
    """A fresh user profile with positive targets and three meals a day."""
    user = UserProfile(
        id=f"user-{uuid.uuid4().hex[:12]}",
        name="Test Athlete",
        target_calories=2400,
        target_protein=180,
        target_carbs=250,
        target_fat=70,
        dietary_restrictions=json.dumps([]),
        meal_types=json.dumps(["breakfast", "lunch", "dinner"]),
        snack_count=0,
        meal_complexity=json.dumps({"dinner": "full_recipe"}),
        disliked_ingredients=json.dumps(["cilantro"]),
    )
    db.add(user)
    db.commit()
    return user
