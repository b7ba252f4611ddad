"""Pytest configuration shared by all test suites"""

import sys
from pathlib import Path

import pytest

# Add project root to path for taskrank imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Add tests directory to path for task_factory import
tests_dir = Path(__file__).parent
sys.path.insert(0, str(tests_dir))

from taskrank.config import RankingConfig
from task_factory import TODAY, make_synthetic_tasks


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def config():
    return RankingConfig()


@pytest.fixture
def synthetic_tasks():
    """200 synthetic tasks plus 3 duplicates"""
    return make_synthetic_tasks(200)
