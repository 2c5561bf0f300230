"""
Shared fixtures for the meta engine tests.

Logging to files is disabled before any tftmeta module is imported.
"""

import os

os.environ['LOG_DIR'] = ''
os.environ.setdefault('ENVIRONMENT', 'development')

import pytest
import pytest_asyncio

from tftmeta.constants import RankTier, Region
from tftmeta.data_models.composition import PartitionKey
from tftmeta.database.composition_operations import CompositionOperations
from tftmeta.database.database import Database
from tftmeta.database.memory_store import InMemoryRecordStore


@pytest.fixture
def partition():
    return PartitionKey("15.2c", Region.KR, RankTier.CHALLENGER)


@pytest.fixture
def memory_store():
    return InMemoryRecordStore()


@pytest_asyncio.fixture
async def database(tmp_path):
    db = Database(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def sql_store(database):
    return CompositionOperations(database)
