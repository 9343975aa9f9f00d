"""Pytest configuration and fixtures."""

import os

import pytest

from app.core.schemas_phase_gating import ProjectStateForActions
from tests.fixtures_phase_gating import complete_all_phases, make_state


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["GOVERNANCE_ENV"] = "test"


@pytest.fixture
def fresh_state() -> ProjectStateForActions:
    return make_state()


@pytest.fixture
def all_complete_state() -> ProjectStateForActions:
    return make_state(**complete_all_phases())
