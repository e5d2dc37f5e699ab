import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from dotenv import load_dotenv
from requests.adapters import BaseAdapter

from .core.transport import RetryPolicy

DEFAULT_BASE_URL = "https://api.openai.com/v1"

LOG_LEVELS = ("error", "warn", "info", "http", "verbose", "debug", "silly")


@dataclass
class LoggingOptions:
    """How a client reports its requests and responses."""

    log_level: str = "info"
    log_to_file: bool = False
    log_file_path: Optional[str] = None
    log_format: Optional[logging.Formatter] = None


@dataclass
class ClientOptions:
    """Per-client configuration; every client gets its own copy."""

    base_url: str = DEFAULT_BASE_URL
    timeout: Optional[float] = None
    proxy: Union[str, Dict[str, str], None] = None
    http_adapter: Optional[BaseAdapter] = None
    default_headers: Dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    logging: LoggingOptions = field(default_factory=LoggingOptions)

    @classmethod
    def from_env(cls, dotenv_path: str = None) -> "ClientOptions":
        """Build options from environment variables (and a .env file if present)."""
        load_dotenv(dotenv_path)

        options = cls()
        options.base_url = os.environ.get("OPENAI_BASE_URL", DEFAULT_BASE_URL)

        timeout = os.environ.get("OPENAI_TIMEOUT")
        if timeout:
            options.timeout = float(timeout)

        max_retries = os.environ.get("OPENAI_MAX_RETRIES")
        if max_retries:
            options.retry = RetryPolicy(retries=int(max_retries))

        log_level = os.environ.get("OPENAI_LOG_LEVEL")
        if log_level:
            options.logging.log_level = log_level.lower()

        log_file = os.environ.get("OPENAI_LOG_FILE")
        if log_file:
            options.logging.log_to_file = True
            options.logging.log_file_path = log_file

        return options
