import logging

from theorytrainer.logging_config import LOGGER_NAME, configure_logging


def test_configure_logging_is_idempotent():
	logger = logging.getLogger(LOGGER_NAME)
	saved = list(logger.handlers), logger.level
	try:
		configure_logging(logging.DEBUG)
		count = len(logger.handlers)
		assert configure_logging(logging.WARNING) is logger
		assert len(logger.handlers) == count
		assert logger.level == logging.WARNING
		assert logging.getLogger("theorytrainer.pool").getEffectiveLevel() == logging.WARNING
	finally:
		logger.handlers[:] = saved[0]
		logger.setLevel(saved[1])
