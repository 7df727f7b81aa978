"""Logging configuration for the service process."""

from __future__ import annotations

import logging

_NOISY_LOGGERS: tuple[str, ...] = ("openai", "httpx", "httpcore", "urllib3")
_CONFIGURED = False


def setup_logging(level: int = logging.INFO, *, force: bool = False) -> None:
	"""Configure root logging with a single console handler."""

	global _CONFIGURED
	if _CONFIGURED and not force:
		return

	formatter = logging.Formatter(
		fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
		datefmt="%Y-%m-%d %H:%M:%S",
	)
	handler = logging.StreamHandler()
	handler.setLevel(level)
	handler.setFormatter(formatter)
	logging.basicConfig(level=level, handlers=[handler], force=True)
	logging.captureWarnings(True)

	quiet_level = logging.WARNING if level < logging.WARNING else level
	for logger_name in _NOISY_LOGGERS:
		logging.getLogger(logger_name).setLevel(quiet_level)
	_CONFIGURED = True
