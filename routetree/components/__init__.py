"""Supporting components for the routetree server."""

from .logging_config import KnownErrorFormatter, LoggingConfigurator

__all__ = ["KnownErrorFormatter", "LoggingConfigurator"]
