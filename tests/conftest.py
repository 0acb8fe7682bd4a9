"""
Pytest fixtures and configuration for the Submission Worker test suite.
"""

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

os.environ.setdefault("TESTING", "true")
os.environ.setdefault("LOG_DIR", "/tmp/linklaunch_test_logs")


# === Test Data Fixtures ===

@pytest.fixture
def sample_website():
    from core.models import Website
    return Website(
        id="w_acme",
        name="Acme Analytics",
        url="https://acme.example",
        tagline="Analytics for small teams",
        description_short="Simple product analytics.",
        description_medium="Acme gives small teams simple product analytics without the setup.",
        industry="SaaS",
        category="Analytics",
        twitter_url="https://twitter.com/acmehq",
        contact_email="hello@acme.example",
        founder_name="Sam Rivera",
    )


@pytest.fixture
def sample_directory():
    from core.models import Directory
    return Directory(
        id="d_launch",
        name="LaunchList",
        url="https://launchlist.example",
        submission_url="https://launchlist.example/submit",
    )


@pytest.fixture
def configured_directory():
    from core.models import Directory
    return Directory(
        id="d_conf",
        name="ConfiguredDir",
        url="https://configured.example",
        submission_url="https://configured.example/new",
        adapter_config={"form_fields": {"name": "#n", "url": "#u", "submit": "#s"}},
    )


@pytest.fixture
def sample_content(sample_website):
    from core.models import SubmissionContent
    return SubmissionContent.from_website(sample_website)


@pytest.fixture
def no_delays(monkeypatch):
    """Skip human-like pauses in adapters."""
    from adapters.base import SubmissionAdapter
    monkeypatch.setattr(SubmissionAdapter, "human_delay", AsyncMock())


@pytest_asyncio.fixture
async def store(tmp_path):
    """SubmissionStore on a fresh temp database."""
    from api.database import SubmissionStore
    db = SubmissionStore(str(tmp_path / "test.db"))
    await db.init_database()
    return db


@pytest.fixture
def mock_browser_manager():
    """Mock BrowserManager handing out a mock browser with closable pages."""
    page = MagicMock()
    page.close = AsyncMock()

    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.is_connected = MagicMock(return_value=True)

    mock = MagicMock()
    mock.browser = browser
    mock.page = page
    mock.ensure_browser = AsyncMock(return_value=browser)
    mock.cleanup = AsyncMock()
    mock.shutdown = AsyncMock()
    mock.force_kill = MagicMock()
    mock.is_shutting_down = False
    mock.get_status = MagicMock(return_value={
        "browser_connected": True,
        "process_running": True,
        "last_health_check": None,
        "is_shutting_down": False,
    })
    return mock


# === Markers ===

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "browser: Browser lifecycle tests")
    config.addinivalue_line("markers", "queue: Queue processor tests")
    config.addinivalue_line("markers", "adapters: Directory adapter tests")
