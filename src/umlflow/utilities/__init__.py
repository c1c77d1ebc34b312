"""Utility helpers shared across umlflow."""

from __future__ import annotations

from .logger_manager import CustomLogger, LoggerConfig, LoggerManager

__all__ = ["CustomLogger", "LoggerConfig", "LoggerManager"]
