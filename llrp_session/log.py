"""
Logging setup
"""

import logging
import sys
# Global
general_debug_enabled = False

def set_general_debug(debug=False):
    global general_debug_enabled
    general_debug_enabled = debug

def is_general_debug_enabled():
    return general_debug_enabled

def init_logging(debug=False, logfile=None):
    """Initialize logging."""
    set_general_debug(debug)

    loglevel = logging.DEBUG if debug else logging.INFO
    logformat = '%(asctime)s %(name)s: %(levelname)s: %(message)s'
    formatter = logging.Formatter(logformat)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stderr_handler = logging.StreamHandler(sys.stderr)
    stdout_handler.setFormatter(formatter)
    stderr_handler.setFormatter(formatter)
    # below WARNING goes to stdout, the rest to stderr
    stdout_handler.addFilter(MaxLevelFilter(logging.WARNING))
    stdout_handler.setLevel(loglevel)
    stderr_handler.setLevel(max(loglevel, logging.WARNING))

    root = logging.getLogger()
    root.setLevel(loglevel)
    root.addHandler(stderr_handler)
    root.addHandler(stdout_handler)

    if logfile:
        fhandler = logging.FileHandler(logfile)
        fhandler.setFormatter(formatter)
        root.addHandler(fhandler)

def debugfast(self, *args, **kwargs):
    """logging debug func that is cheaper when debug is disabled.

    Every tag and every received message goes through a debug line, so
    skipping the isEnabledFor check matters on busy readers.
    """
    if general_debug_enabled:
        self.debug(*args, **kwargs)

def get_logger(module_name):
    """Return a logger object providing the custom debugfast function."""
    logger_cls = logging.getLoggerClass()
    logger_cls.debugfast = debugfast
    logger = logging.getLogger(module_name)
    return logger


class MaxLevelFilter(logging.Filter):
    '''Filters (lets through) all messages with level < LEVEL'''
    def __init__(self, level):
        super(MaxLevelFilter, self).__init__()
        self.level = level

    def filter(self, record):
        return record.levelno < self.level
