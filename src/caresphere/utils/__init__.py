"""
CareSphere Utils Package

Logging setup.
"""

from caresphere.utils.logger_manager import JSONLogFormatter, LoggerManager, TokenRedactionFilter

__all__ = [
    "LoggerManager",
    "JSONLogFormatter",
    "TokenRedactionFilter",
]
