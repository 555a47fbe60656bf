# conftest.py

import os

import pytest

# Set testing environment BEFORE importing app so app.py picks TestingConfig
os.environ["FLASK_ENV"] = "testing"

from app import app as flask_app  # noqa: E402
from roster_app.importer import init_roster_importer  # noqa: E402
from roster_app.models import Organization, db  # noqa: E402


@pytest.fixture(scope="function")
def app():
    """Create and configure a test Flask application"""
    flask_app.config.update(
        {
            "TESTING": True,
            "ROSTER_IMPORT_ENABLED": True,
            "ROSTER_METRICS_ENABLED": False,
            "ROSTER_DEPARTMENT_CODE_LENGTH": 2,
            "ROSTER_SECTION_CODE_LENGTH": 4,
            "ROSTER_MAX_UPLOAD_MB": 10,
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": True,
            "LOG_LEVEL": "DEBUG",
        }
    )
    # Re-register the CLI in case a previous test switched the flag off
    init_roster_importer(flask_app)

    with flask_app.app_context():
        # Drop any existing tables to ensure clean state
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def organization(app):
    """Create the organization rosters are imported into."""
    org = Organization(
        name="Test Organization",
        slug="test-organization",
        description="A test organization",
        is_active=True,
    )
    db.session.add(org)
    db.session.commit()
    return org


@pytest.fixture
def other_organization(app):
    org = Organization(name="Other Organization", slug="other-organization", is_active=True)
    db.session.add(org)
    db.session.commit()
    return org


def pytest_configure(config):
    """Register custom markers and make sure the testing environment is active."""
    os.environ["FLASK_ENV"] = "testing"

    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
