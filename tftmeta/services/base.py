"""
Base service class for the meta engine services.

Holds the record store and retries transient write conflicts.
"""

import asyncio
import logging
from typing import Callable, Any, Optional

from tftmeta.config import Config
from tftmeta.utils.exceptions import ConsistencyError, TransactionError

logger = logging.getLogger(__name__)


class BaseService:
    """Base class for services backed by a record store."""

    def __init__(self, store):
        """
        Args:
            store: RecordStore implementation (CompositionOperations or InMemoryRecordStore)
        """
        self.store = store

    async def execute_with_retry(self, func: Callable, operation: str,
                                 max_retries: Optional[int] = None) -> Any:
        """
        Run func, retrying write conflicts with exponential backoff.

        Only ConsistencyError is retried; anything else propagates immediately.

        Raises:
            TransactionError: every attempt conflicted
        """
        attempts = max_retries or Config.MERGE_MAX_RETRIES
        for attempt in range(attempts):
            try:
                return await func()
            except ConsistencyError as e:
                if attempt == attempts - 1:
                    logger.error(f"{operation} failed after {attempts} attempts: {e}")
                    raise TransactionError(operation, attempts) from e
                logger.warning(f"Retry attempt {attempt + 1} for {operation}: {e}")
                await asyncio.sleep(min(0.05 * (2 ** attempt), 1.0))
