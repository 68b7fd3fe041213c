# timebank/common/__init__.py
"""
Общие утилиты, константы, ошибки и логгер.
"""

from timebank.common.logger import get_logger, log_info, log_error, log_warning, log_debug
from timebank.common.constants import TypeMsg

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
]
