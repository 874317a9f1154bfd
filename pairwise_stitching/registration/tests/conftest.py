"""Shared fixtures for the registration tests."""
from concurrent.futures import ThreadPoolExecutor

import pytest


@pytest.fixture
def executor():
    """A small thread pool, shut down after the test."""
    with ThreadPoolExecutor(max_workers=4) as pool:
        yield pool
