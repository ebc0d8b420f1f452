"""
Pytest configuration and fixtures for testing.
The app runs against in-memory SQLite with the Redis cache disabled.
"""
import os

# Must be set before any app module reads settings
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['CACHE_ENABLED'] = 'false'
os.environ['LOG_LEVEL'] = 'WARNING'

import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401
from app.database import Base, SessionLocal, engine, get_db
from app.main import app as fastapi_app
from app.schemas.grading import GradingPolicy, QuestionDefinition


@pytest.fixture(autouse=True)
def database():
    """Create fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Database session bound to the in-memory test database."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """Create test client with the database dependency pointed at the test database."""
    def override_get_db():
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def policy():
    """Default grading policy: partial credit on, case-insensitive, 2 decimals."""
    return GradingPolicy()


@pytest.fixture
def no_partial_credit():
    """Grading policy with partial credit disabled."""
    return GradingPolicy(partial_credit_enabled=False)


@pytest.fixture
def dropdown_question():
    """Three-slot dropdown whose correct selections are A, B, C."""
    return QuestionDefinition(
        id='q-dropdown',
        type='dropdown',
        question='The ___ sat on the ___ with the ___.',
        data={
            'slots': [
                {'options': ['A', 'X']},
                {'options': ['B', 'X']},
                {'options': ['C', 'X']},
            ]
        },
        correct_answer=['A', 'B', 'C'],
        max_score=3,
    )


@pytest.fixture
def mixed_questions():
    """One question of each auto-gradable type, worth 1 point each."""
    return [
        QuestionDefinition(id='q1', type='true_false', correct_answer=True),
        QuestionDefinition(id='q2', type='fill_blank', correct_answer=['Paris', 'paris, france']),
        QuestionDefinition(
            id='q3', type='multiple_choice',
            data={'options': ['A', 'B', 'C', 'D']}, correct_answer='B',
        ),
        QuestionDefinition(
            id='q4', type='multiple_select',
            data={'options': ['A', 'B', 'C', 'D']}, correct_answer=['A', 'B'],
        ),
        QuestionDefinition(id='q5', type='numerical', data={'tolerance': 0.5}, correct_answer=9.8),
    ]

