"""
Logging Utility for the Copilot Backend

Console logging for the conversation API:
- Color-coded log levels
- Icons per conversation concern (utterances, guidance, recommendations, alerts)
- Section banners for server lifecycle events
- Key/value rendering of request data
"""

import logging
import sys
import json
from datetime import datetime
from typing import Any, Dict, Optional
from pprint import pformat

# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    # Log levels
    DEBUG = '\033[36m'      # Cyan
    INFO = '\033[32m'       # Green
    WARNING = '\033[33m'    # Yellow
    ERROR = '\033[31m'      # Red
    CRITICAL = '\033[35m'   # Magenta

    SECTION = '\033[94m'    # Bright Blue

    # Data
    KEY = '\033[93m'        # Bright Yellow
    VALUE = '\033[92m'      # Bright Green
    TIMESTAMP = '\033[90m'  # Dark Gray


class ColoredFormatter(logging.Formatter):
    """Formatter that prefixes each record with time, icon and level."""

    ICONS = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '🚨',
    }

    # Keyed by the last segment of the logger name
    COMPONENT_ICONS = {
        'main': '🌐',
        'ingestion_pipeline': '🗣️',
        'guidance_parser': '📋',
        'recommendation_alerts': '🔔',
        'recommendation_outcomes': '💡',
        'cadence_controller': '⏱️',
        'sentiment_aggregator': '😊',
        'session_manager': '💾',
        'openai_providers': '🤖',
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        icon = self.COMPONENT_ICONS.get(record.name.split('.')[-1], self.ICONS.get(record.levelname, '•'))

        timestamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]

        if self.use_colors:
            level_color = {
                'DEBUG': Colors.DEBUG,
                'INFO': Colors.INFO,
                'WARNING': Colors.WARNING,
                'ERROR': Colors.ERROR,
                'CRITICAL': Colors.CRITICAL,
            }.get(record.levelname, Colors.RESET)
            reset = Colors.RESET
            timestamp_color = Colors.TIMESTAMP
            bold = Colors.BOLD
        else:
            level_color = reset = timestamp_color = bold = ''

        level_name = f"{level_color}{record.levelname:8s}{reset}"
        message = record.getMessage()

        # Pretty print messages that are a bare JSON document (e.g. a state snapshot)
        stripped = message.strip()
        if stripped.startswith('{') or stripped.startswith('['):
            try:
                message = f"\n{pformat(json.loads(stripped), indent=2, width=100)}"
            except (json.JSONDecodeError, ValueError):
                pass

        formatted = (
            f"{timestamp_color}[{timestamp}]{reset} "
            f"{icon} {level_name} "
            f"{bold}{record.name}{reset} "
            f"| {message}"
        )

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class StructuredLogger:
    """Logger wrapper that renders optional key/value data under each message."""

    def __init__(self, name: str, logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(name)

    def _format_data(self, data: Any, indent: int = 2) -> str:
        if isinstance(data, dict):
            lines = []
            for key, value in data.items():
                if isinstance(value, (dict, list)):
                    lines.append(f"{' ' * indent}{key}: {self._format_data(value, indent + 2)}")
                else:
                    lines.append(f"{' ' * indent}{key}: {value}")
            return "{\n" + "\n".join(lines) + f"\n{' ' * (indent - 2)}}}"
        elif isinstance(data, list):
            shown = data[:3] if len(data) > 5 else data
            items = ",\n".join(self._format_data(item, indent + 2) for item in shown)
            indent_str = ' ' * (indent - 2)
            more = f"\n{indent_str}... ({len(data)} items total)" if len(data) > 5 else ""
            return f"[\n{items}{more}\n{indent_str}]"
        else:
            return str(data)

    def section(self, title: str, data: Optional[Dict[str, Any]] = None):
        """Print a banner for a lifecycle event (startup, shutdown)."""
        separator = "=" * 80
        color = Colors.SECTION if sys.stdout.isatty() else ''
        reset = Colors.RESET if sys.stdout.isatty() else ''
        print(f"\n{color}{separator}{reset}")
        print(f"{color}📋 {title.upper()}{reset}")
        if data:
            print(self._format_data(data))
        print(f"{color}{separator}{reset}\n")

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None):
        if data:
            self.logger.debug(f"{message}\n{self._format_data(data)}")
        else:
            self.logger.debug(message)

    def info(self, message: str, data: Optional[Dict[str, Any]] = None):
        """Log info message with optional data."""
        if data:
            self.logger.info(f"{message}\n{self._format_data(data)}")
        else:
            self.logger.info(message)

    def warning(self, message: str, data: Optional[Dict[str, Any]] = None):
        if data:
            self.logger.warning(f"{message}\n{self._format_data(data)}")
        else:
            self.logger.warning(message)

    def error(self, message: str, error: Optional[Exception] = None, data: Optional[Dict[str, Any]] = None):
        """Log error message with exception and optional data."""
        error_info = f"Error: {type(error).__name__}: {str(error)}" if error else ""
        if data:
            self.logger.error(f"{message} {error_info}\n{self._format_data(data)}", exc_info=error)
        else:
            self.logger.error(f"{message} {error_info}", exc_info=error)

    def success(self, message: str, data: Optional[Dict[str, Any]] = None):
        if data:
            self.logger.info(f"✅ {message}\n{self._format_data(data)}")
        else:
            self.logger.info(f"✅ {message}")

    def request(self, method: str, path: str, session_id: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        """Log an incoming API call against a conversation."""
        request_data = {
            "method": method,
            "path": path,
            "session_id": session_id[:20] + "..." if session_id and len(session_id) > 20 else session_id,
        }
        if data:
            request_data.update(data)
        self.logger.info(f"📥 REQUEST: {method} {path}\n{self._format_data(request_data)}")


def setup_logging(level: int = logging.INFO, use_colors: bool = True):
    """Route every logger (core package included) through the colored console handler."""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=use_colors))

    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Suppress noisy loggers
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('openai').setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, logging.getLogger(name))
