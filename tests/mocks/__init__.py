"""
Test doubles shared by the cargokit test suite.
"""

from tests.mocks.cache import RecordingCacheStore
from tests.mocks.filesystem import make_executable

__all__ = ["RecordingCacheStore", "make_executable"]
