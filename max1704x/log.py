'''Package logger for the MAX1704x driver.'''

import itertools
import logging
from logging.handlers import RotatingFileHandler


# configure logging
logger = logging.getLogger('max1704x')
logger.setLevel(logging.DEBUG)
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

_instance_ids = itertools.count(1)


def get_instance_logger(i2c_address):
    '''Get a child of the package logger owned by one driver instance.

    Records propagate to the package logger, handlers attached to the child
    only see that instance's traces.

    Args:
        i2c_address (int): I2C address of the device, part of the logger name

    Returns:
        logging.Logger: Logger named *max1704x.0x36.<n>*
    '''
    return logging.getLogger(f'{logger.name}.0x{i2c_address:02X}.{next(_instance_ids)}')


def add_file_handler(path='max1704x.log', max_bytes=1_000_000, backup_count=3, target=logger):
    '''Log to a rotating file.

    Args:
        path (str): Log file path, defaults to *max1704x.log*
        max_bytes (int): Size at which the file is rotated, defaults to 1MB
        backup_count (int): Number of rotated files to keep, defaults to 3
        target (logging.Logger): Logger to attach to, defaults to the package logger

    Returns:
        logging.Handler: The attached handler
    '''
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    target.addHandler(handler)
    return handler


def add_stream_handler(stream, target=logger):
    '''Write diagnostic traces, one line per message, to a text stream.

    Args:
        stream (file-like): Writable text stream (ex. sys.stdout)
        target (logging.Logger): Logger to attach to, defaults to the package logger

    Returns:
        logging.Handler: The attached handler
    '''
    handler = logging.StreamHandler(stream)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter('%(name)s - %(levelname)s - %(message)s'))
    target.addHandler(handler)
    return handler


def remove_handler(handler, target=logger):
    '''Detach and close a handler returned by one of the add_* functions.'''
    if handler is None:
        return
    target.removeHandler(handler)
    handler.close()
