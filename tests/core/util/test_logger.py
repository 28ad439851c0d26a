import logging
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from mcphost_core.util.logger import Logger, LoggerConfig, setup_logger


class TestLoggerConfig:
    """Tests for the LoggerConfig class."""

    def test_default_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that default values are set correctly."""
        monkeypatch.delenv("MCPHOST_LOG_DIR", raising=False)
        monkeypatch.delenv("MCPHOST_FILE_LOGGING", raising=False)

        config = LoggerConfig(name="test_logger")

        assert config.name == "test_logger"
        assert config.output_dir == "output"
        assert config.file_logging is True
        assert config.file_log_level == logging.DEBUG
        assert config.console_log_level == logging.INFO
        assert config.encoding == "utf-8"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that MCPHOST_* variables change the defaults."""
        monkeypatch.setenv("MCPHOST_LOG_DIR", "/var/log/mcphost")
        monkeypatch.setenv("MCPHOST_FILE_LOGGING", "off")

        config = LoggerConfig(name="env_logger")

        assert config.output_dir == "/var/log/mcphost"
        assert config.file_logging is False


class TestLogger:
    """Tests for the Logger class."""

    @pytest.fixture
    def logger_instance(self) -> Logger:
        return Logger(LoggerConfig(name="test_logger", output_dir="output", file_logging=True))

    @patch("os.makedirs", side_effect=OSError("Test error"))
    def test_create_output_directory_error(self, mock_makedirs: MagicMock, logger_instance: Logger) -> None:
        with pytest.raises(OSError) as excinfo:
            logger_instance._create_output_directory()

        assert "Failed to create output directory" in str(excinfo.value)

    @patch("mcphost_core.util.logger.datetime")
    def test_get_log_filename(self, mock_datetime: MagicMock, logger_instance: Logger) -> None:
        mock_now = MagicMock()
        mock_now.strftime.return_value = "20250620_123456"
        mock_datetime.now.return_value = mock_now

        filename = logger_instance._get_log_filename()

        assert filename == "output/test_logger_20250620_123456.log"

    @patch("logging.FileHandler", side_effect=IOError("Test error"))
    def test_create_file_handler_error(self, mock_file_handler: MagicMock, logger_instance: Logger) -> None:
        with pytest.raises(IOError) as excinfo:
            logger_instance._create_file_handler("test.log")

        assert "Failed to create file handler" in str(excinfo.value)

    def test_setup_without_file_logging(self) -> None:
        """File logging disabled - only the console handler is attached."""
        result = Logger(LoggerConfig(name="console_only_logger", file_logging=False)).setup()

        assert result is not None
        assert len(result.handlers) == 1
        assert not isinstance(result.handlers[0], logging.FileHandler)

    def test_setup_applies_propagate(self) -> None:
        result = Logger(LoggerConfig(name="quiet_logger", file_logging=False, propagate=False)).setup()

        assert result is not None
        assert result.propagate is False

    def test_setup_replaces_existing_handlers(self) -> None:
        """Calling setup twice does not duplicate handlers."""
        config = LoggerConfig(name="repeated_logger", file_logging=False)
        Logger(config).setup()
        result = Logger(config).setup()

        assert result is not None
        assert len(result.handlers) == 1

    @patch.object(Logger, "_create_output_directory", side_effect=Exception("Test error"))
    def test_setup_error(self, mock_create_output_directory: MagicMock, logger_instance: Logger, capsys: Any) -> None:
        result = logger_instance.setup()

        assert result is None
        captured = capsys.readouterr()
        assert "Error setting up logger: Test error" in captured.out


class TestSetupLogger:
    """Tests for the setup_logger function."""

    @patch.object(Logger, "setup")
    def test_setup_logger_ignores_invalid_params(self, mock_setup: MagicMock) -> None:
        mock_setup.return_value = MagicMock()

        result = setup_logger("test_logger", invalid_param="should be ignored")

        assert result == mock_setup.return_value
        assert mock_setup.call_count == 1


@pytest.mark.integration
class TestLoggerIntegration:
    """Integration tests for the logger module."""

    def test_logger_creates_files(self, tmp_path: Path) -> None:
        output_dir = tmp_path / "logs"

        logger = setup_logger("integration_test", output_dir=str(output_dir), file_logging=True)
        assert logger is not None
        logger.info("Test message")
        for handler in logger.handlers:
            handler.flush()

        log_files = list(output_dir.glob("integration_test_*.log"))
        assert len(log_files) == 1
        assert "Test message" in log_files[0].read_text(encoding="utf-8")

        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
