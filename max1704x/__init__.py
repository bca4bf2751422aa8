'''I2C driver for the Maxim MAX17043/44/48/49 battery fuel gauges.'''

from .errors import GENERIC_ERROR, BusError, InvalidArgument, TransportStatus
from .max1704x import MAX1704X
from .register_io import RegisterIO
from .registers import DEFAULT_I2C_ADDRESS, FullScale, Model, Regs, StatusFlag

__version__ = '1.0.0'

__all__ = [
    'MAX1704X',
    'RegisterIO',
    'Regs',
    'FullScale',
    'Model',
    'StatusFlag',
    'BusError',
    'InvalidArgument',
    'TransportStatus',
    'GENERIC_ERROR',
    'DEFAULT_I2C_ADDRESS',
]
