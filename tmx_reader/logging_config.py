"""
Logger setup for tmx_reader

Every module asks for its own logger through get_logger('tileset'),
get_logger('reader') ... and all of them live under the 'tmx_reader'
namespace:

    tmx_reader
    ├── tmx_reader.reader         document walk (debug)
    ├── tmx_reader.tileset        .tsx loading (debug)
    ├── tmx_reader.imaging        image files opened (debug)
    └── tmx_reader.diagnostics    every Diagnostics entry, mirrored

The library never installs handlers. Only the command line tool calls
setup_logging().
"""

import logging
import sys

ROOT_LOGGER = 'tmx_reader'

LOG_FORMAT = '%(levelname)-7s %(name)s: %(message)s'


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """
    Send tmx_reader log records to stderr.

    Parameters:
    -----------
    verbose : bool
        Also show INFO records (animation notes, ...)
    debug : bool
        Show everything, including the load trace. Wins over verbose.

    Warnings and errors are always shown.
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(level=level, format=LOG_FORMAT,
                        handlers=[logging.StreamHandler(sys.stderr)], force=True)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """get_logger('tileset') → the 'tmx_reader.tileset' logger"""
    return logging.getLogger(f'{ROOT_LOGGER}.{name}')
