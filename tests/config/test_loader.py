# tests/config/test_loader.py
"""
Тесты для модуля загрузки конфигурации.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from timebank.config.loader import (
    DEV_DATABASE_URL,
    DEV_JWT_SECRET,
    AuthSettings,
    BookingSettings,
    DatabaseSettings,
    ServerSettings,
    Settings,
    get_config_path,
    get_project_root,
    load_config_json,
    validate_environment,
)


class TestPaths:
    """Тесты путей проекта."""

    def test_root_contains_config_directory(self) -> None:
        assert (get_project_root() / "config").exists()

    def test_root_contains_schema(self) -> None:
        """Проверяет наличие схемы БД в корне."""
        assert (get_project_root() / "migrations" / "init.sql").exists()

    def test_config_path(self) -> None:
        path = get_config_path()
        assert isinstance(path, Path)
        assert path.name == "config.json"


class TestLoadConfigJson:
    def test_comments_stripped(self) -> None:
        """Проверяет удаление ключей _comment_*."""
        data = load_config_json()
        assert data["PROJECT_NAME"] == "timebank"
        assert not any(k.startswith("_comment_") for k in data)


class TestSectionModels:
    """Тесты отдельных секций настроек."""

    def test_cors_origins_deduplicated(self) -> None:
        server = ServerSettings(
            FRONTEND_URL="http://localhost:3000",
            DEV_ORIGINS=["http://localhost:3000", "http://127.0.0.1:3000"],
        )
        assert server.cors_origins == ["http://localhost:3000", "http://127.0.0.1:3000"]

    def test_auth_secret_fallback(self) -> None:
        """Без JWT_SECRET используется dev-секрет."""
        assert AuthSettings().secret == DEV_JWT_SECRET
        assert AuthSettings(JWT_SECRET="s3cret").secret == "s3cret"

    def test_database_dsn_fallback(self) -> None:
        assert DatabaseSettings().dsn == DEV_DATABASE_URL

    def test_booking_positive_values(self) -> None:
        """Проверяет валидацию положительных лимитов."""
        with pytest.raises(ValidationError):
            BookingSettings(MAX_HOURS=0)


class TestSettingsFromConfig:
    """Тесты сборки Settings из словаря конфигурации."""

    def test_values_from_config(self, mock_config: dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.delenv("HOST", raising=False)

        cfg = Settings.from_config_json(mock_config)

        assert cfg.system.PROJECT_NAME == "timebank_test"
        assert cfg.server.PORT == 4100
        assert cfg.auth.TOKEN_SALT == "test-salt"
        assert cfg.rate_limit.RATE_LIMIT_MAX_REQUESTS == 5
        assert cfg.booking.LIST_LIMIT == 50
        assert cfg.booking.MAX_CREDIT_PURCHASE == 500

    def test_env_overrides_config(self, mock_config: dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
        """Переменные окружения имеют приоритет над файлом."""
        monkeypatch.setenv("PORT", "5000")
        monkeypatch.setenv("FRONTEND_URL", "https://timebank.example.com")
        monkeypatch.setenv("JWT_SECRET", "env-secret")

        cfg = Settings.from_config_json(mock_config)

        assert cfg.server.PORT == 5000
        assert cfg.server.cors_origins[0] == "https://timebank.example.com"
        assert cfg.auth.secret == "env-secret"

    def test_defaults_for_missing_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PORT", raising=False)
        cfg = Settings.from_config_json({})
        assert cfg.server.PORT == 4000
        assert cfg.rate_limit.RATE_LIMIT_WINDOW_SECONDS == 900
        assert cfg.booking.PROVIDER_REPUTATION_BONUS == 10


class TestValidateEnvironment:
    def test_missing_variables_produce_warnings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Отсутствие переменных не ошибка, а предупреждения."""
        for name in ("JWT_SECRET", "DATABASE_URL", "SMTP_HOST", "SMTP_USER", "SMTP_PASS"):
            monkeypatch.delenv(name, raising=False)

        warnings = validate_environment(Settings.from_config_json({}))

        assert len(warnings) == 3
        assert any("JWT_SECRET" in w for w in warnings)
        assert any("DATABASE_URL" in w for w in warnings)

    def test_configured_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JWT_SECRET", "x")
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/timebank")
        monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
        monkeypatch.setenv("SMTP_USER", "user")
        monkeypatch.setenv("SMTP_PASS", "pass")

        assert validate_environment(Settings.from_config_json({})) == []
