"""pytest configuration: path management and shared app fixtures."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the project root is available on sys.path so tests can import the package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from beautybook import create_app  # noqa: E402
from beautybook.config import TestingConfig  # noqa: E402
from beautybook.extensions import db  # noqa: E402
from beautybook.models import Provider  # noqa: E402


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def provider_id(app):
    provider = Provider(
        provider_id=1,
        name="Studio Lumi",
        timezone="UTC",
        slot_interval_minutes=30,
        restrict_to_business_hours=False,
    )
    db.session.add(provider)
    db.session.commit()
    return provider.provider_id
