# timebank/config/__init__.py
"""
Модуль конфигурации.
Экспортирует настройки приложения.
"""

from timebank.config.loader import Settings, get_settings, settings, validate_environment

__all__ = ["Settings", "get_settings", "settings", "validate_environment"]
