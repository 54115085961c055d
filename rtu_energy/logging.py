"""Package loggers.

Every module gets its logger with ``ModuleLogger.get_logger(__name__)``.
Messages about a particular unit go through ``ModuleLogger.get_unit_logger``,
which prefixes them with the name of the unit.
"""
import logging
from logging import StreamHandler, Logger, LoggerAdapter


class UnitLoggerAdapter(LoggerAdapter):
    """Prefixes each log message with the name of the simulated unit, so that
    the messages of the candidate and the standard unit can be told apart.
    """
    def process(self, msg, kwargs):
        return f"<{self.extra['unit_name']}> {msg}", kwargs


class ModuleLogger:
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING

    FORMATTER = logging.Formatter('[%(name)s | %(levelname)s] %(message)s')

    @classmethod
    def _console_handler(cls, log_level: int) -> StreamHandler:
        handler = logging.StreamHandler()
        handler.setFormatter(cls.FORMATTER)
        handler.setLevel(log_level)
        return handler

    @classmethod
    def get_logger(cls, logger_name: str, log_level: int = logging.WARNING) -> Logger:
        """Returns the logger named `logger_name`. A logger that does not
        exist yet gets a console handler; only messages with a priority equal
        to or higher than `log_level` are emitted.
        """
        logger = logging.getLogger(logger_name)
        if not logger.handlers:
            logger.addHandler(cls._console_handler(log_level))
            logger.setLevel(log_level)
        return logger

    @classmethod
    def get_unit_logger(cls, logger: Logger, unit_name: str | None) -> Logger | LoggerAdapter:
        """Wraps `logger` in an adapter that tags its messages with
        `unit_name` (e.g. 'Candidate' or 'Standard'). If `unit_name` is None,
        `logger` is returned unchanged.
        """
        if unit_name is None:
            return logger
        return UnitLoggerAdapter(logger, {'unit_name': unit_name})

    @classmethod
    def set_level(cls, log_level: int, package: str = 'rtu_energy') -> None:
        """Changes the log level of all loggers (and their handlers) that were
        created for modules of `package`.
        """
        for name, logger in logging.root.manager.loggerDict.items():
            if name.startswith(package) and isinstance(logger, Logger):
                logger.setLevel(log_level)
                for handler in logger.handlers:
                    handler.setLevel(log_level)
