import logging

from arena.config import Environment, environment


def create_logger(level: int) -> logging.Logger:
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)

    _logger = logging.getLogger("arena")
    _logger.setLevel(level)
    if not _logger.handlers:
        _logger.addHandler(stream_handler)
    return _logger


logger = create_logger(logging.DEBUG if environment is Environment.DEVELOPMENT else logging.INFO)
