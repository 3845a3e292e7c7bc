"""
Root pytest configuration and fixtures for photosync.

Provides common fixtures and test utilities for the client test suite.
"""

import os
from pathlib import Path
import sys

import pytest
import responses

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def api_key():
    """Test API key."""
    return "test-api-key-12345"


@pytest.fixture
def base_url():
    """Test base URL."""
    return "https://photos.test/api"


@pytest.fixture
def client(api_key, base_url):
    """PhotoSync client pointed at the test base URL."""
    from photosync import PhotoSync

    return PhotoSync(api_key=api_key, base_url=base_url)


@pytest.fixture
def sync_result_payload():
    """Payload of a typical sync ``complete`` event."""
    return {
        "summary": {"inserted": 2, "updated": 1, "conflicts": 0, "errors": 0},
        "actions": [
            {"type": "insert", "storageKey": "2024/a.jpg"},
            {"type": "update", "storageKey": "2024/b.jpg"},
        ],
    }


@pytest.fixture(autouse=True)
def clean_environment():
    """Clean environment variables before each test."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("PHOTOSYNC_"):
            del os.environ[key]

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_requests():
    """Mock HTTP requests using responses library."""
    with responses.RequestsMock() as rsps:
        yield rsps
