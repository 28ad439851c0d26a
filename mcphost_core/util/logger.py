"""
모듈별 로거 설정

``setup_logger(name) or logging.getLogger(name)`` 형태로 사용한다.
설정에 실패하면 None 을 돌려주므로 표준 로거로 대체할 수 있다.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


@dataclass
class LoggerConfig:
    """로거 설정

    출력 디렉터리와 파일 로그 사용 여부는 MCPHOST_LOG_DIR, MCPHOST_FILE_LOGGING 으로 바꿀 수 있다.
    """

    name: str
    output_dir: str = field(default_factory=lambda: os.environ.get("MCPHOST_LOG_DIR", "output"))
    file_logging: bool = field(default_factory=lambda: _env_flag("MCPHOST_FILE_LOGGING", True))
    file_log_level: int = logging.DEBUG
    console_log_level: int = logging.INFO
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    encoding: str = "utf-8"
    propagate: bool = True


class Logger:
    """LoggerConfig 에 따라 핸들러를 붙인 로거를 만든다."""

    def __init__(self, config: LoggerConfig):
        self.config = config
        self.logger: Optional[logging.Logger] = None

    def _create_output_directory(self) -> None:
        try:
            os.makedirs(self.config.output_dir, exist_ok=True)
        except OSError as exception:
            raise OSError(f"Failed to create output directory: {exception}") from exception

    def _get_log_filename(self) -> str:
        """``<output_dir>/<name>_<YYYYmmdd_HHMMSS>.log``"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return str(Path(self.config.output_dir) / f"{self.config.name}_{timestamp}.log")

    def _create_file_handler(self, log_filename: str) -> logging.FileHandler:
        try:
            file_handler = logging.FileHandler(log_filename, encoding=self.config.encoding)
        except OSError as exception:
            raise IOError(f"Failed to create file handler: {exception}") from exception
        file_handler.setLevel(self.config.file_log_level)
        return file_handler

    def _build_handlers(self) -> List[logging.Handler]:
        """콘솔 핸들러와 (설정된 경우) 파일 핸들러"""
        handlers: List[logging.Handler] = []
        if self.config.file_logging:
            self._create_output_directory()
            handlers.append(self._create_file_handler(self._get_log_filename()))

        console_handler = logging.StreamHandler()
        console_handler.setLevel(self.config.console_log_level)
        handlers.append(console_handler)

        formatter = logging.Formatter(self.config.log_format, datefmt=self.config.date_format)
        for handler in handlers:
            handler.setFormatter(formatter)
        return handlers

    def setup(self) -> Optional[logging.Logger]:
        """로거 설정

        같은 이름으로 다시 호출하면 기존 핸들러를 닫고 교체한다.

        Returns:
            설정된 로거, 실패하면 None
        """
        try:
            handlers = self._build_handlers()
        except Exception as exception:  # pylint: disable=broad-except
            print(f"Error setting up logger: {exception}")
            return None

        logger = logging.getLogger(self.config.name)
        logger.setLevel(logging.DEBUG)
        logger.propagate = self.config.propagate
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        for handler in handlers:
            logger.addHandler(handler)

        self.logger = logger
        return logger


def setup_logger(logger_name: str, **kwargs) -> Optional[logging.Logger]:
    """이름으로 로거를 만든다. LoggerConfig 에 없는 키워드 인자는 무시한다."""
    config_params = {k: v for k, v in kwargs.items() if k in LoggerConfig.__dataclass_fields__}
    return Logger(LoggerConfig(name=logger_name, **config_params)).setup()
