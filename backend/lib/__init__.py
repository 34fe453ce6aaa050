"""Backend utilities"""
from .logger import setup_logging, get_logger, StructuredLogger

__all__ = ["setup_logging", "get_logger", "StructuredLogger"]
