"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It seeds the environment so settings can be built without a .env file.
"""

import os

import pytest

# Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("DISPATCHER_TOPIC", "gitee-hook")
os.environ.setdefault("DISPATCHER_USER_AGENT", "Robot-Gitee-Access")
os.environ.setdefault("DISPATCHER_ACCESS_ENDPOINT", "http://hook-delivery.local/gitee-hook")
os.environ.setdefault("DISPATCHER_CONCURRENT_SIZE", "5")


class FakeClock:
    """Manually driven monotonic clock whose sleep advances time."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def advance_to(self, timestamp: float) -> None:
        self.now = max(self.now, timestamp)

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def valid_headers() -> dict[str, str]:
    return {
        "User-Agent": "Robot-Gitee-Access",
        "X-Gitee-Event": "Note Hook",
        "Content-Type": "application/json",
    }
