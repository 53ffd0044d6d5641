"""
Stark Message Core
==================

Configuration, database access, logging and error types shared by the modules.
"""

from .config import Config
from .database import Database
from .errors import StarkMessageError, ConfigUnavailable, InvalidPageIdList, MarkerWriteFailed
from .logging_service import LoggingService, db_log

__all__ = [
    'Config', 'Database', 'LoggingService', 'db_log',
    'StarkMessageError', 'ConfigUnavailable', 'InvalidPageIdList', 'MarkerWriteFailed',
]
