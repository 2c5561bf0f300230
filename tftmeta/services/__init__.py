"""
Services package for the TFT composition meta engine.

Ingestion on the write side, meta queries and caching on the read side.
"""

from .base import BaseService
from .cache import MetaCache
from .ingestion import IngestionService, IngestionResult
from .meta import MetaService

__all__ = ['BaseService', 'MetaCache', 'IngestionService', 'IngestionResult', 'MetaService']
