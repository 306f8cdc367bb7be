"""
Fixtures for unit tests: pure functions and models, no I/O.
"""

from datetime import datetime

import pytest


@pytest.fixture
def fixed_time():
    return datetime(2024, 1, 15, 12, 0, 0)


@pytest.fixture
def sample_data():
    """One agent as the broad extraction call returns it."""
    return {
        "agent_name": "Jane Doe",
        "agency_name": "Acme Lit",
        "email": "jane@acmelit.com",
        "contact_email": "jane@acmelit.com",
        "website": "https://acmelit.com",
        "is_open_to_submissions": True,
        "genres_fiction": ["Thriller"],
        "requires_bio": False,
        "source_url": "https://acmelit.com/jane",
    }
