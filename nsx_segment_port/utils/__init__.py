# Utils package
from .logging_utils import setup_logging, set_debug, get_logger, LogTimer

__all__ = ['setup_logging', 'set_debug', 'get_logger', 'LogTimer']
