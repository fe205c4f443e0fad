from __future__ import annotations

import logging
import sys

LOGGER_NAME = "theorytrainer"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO) -> logging.Logger:
	"""Attach a stdout handler to the package logger once and set its level."""
	logger = logging.getLogger(LOGGER_NAME)
	if not logger.handlers:
		handler = logging.StreamHandler(sys.stdout)
		handler.setFormatter(logging.Formatter(LOG_FORMAT))
		logger.addHandler(handler)
	for handler in logger.handlers:
		handler.setLevel(level)
	logger.setLevel(level)
	return logger
