"""Application logging utilities."""

from artcurator.logging.setup import configure_logging, NOISY_LOGGERS

__all__ = ["configure_logging", "NOISY_LOGGERS"]
