'''Error types raised by the MAX1704x driver.'''

import errno
from enum import IntEnum


GENERIC_ERROR = 5
'''Error code carried by every BusError, one past the highest transport status'''


class TransportStatus(IntEnum):
    '''Outcome of a single I2C transaction.'''
    SUCCESS = 0
    DATA_TOO_LONG = 1
    ADDRESS_NACK = 2
    DATA_NACK = 3
    OTHER = 4

    @classmethod
    def from_errno(cls, error_number):
        '''Map an OSError errno reported by the I2C adapter to a transport status.

        Args:
            error_number (int, None): errno value from the OSError

        Returns:
            TransportStatus: Matching status, *OTHER* if the errno is not recognized
        '''
        return _ERRNO_STATUS.get(error_number, cls.OTHER)


_ERRNO_STATUS = {
    errno.ENXIO: TransportStatus.ADDRESS_NACK,
    errno.EREMOTEIO: TransportStatus.ADDRESS_NACK,
    errno.EIO: TransportStatus.DATA_NACK,
    errno.EMSGSIZE: TransportStatus.DATA_TOO_LONG,
    errno.EOVERFLOW: TransportStatus.DATA_TOO_LONG,
}


class BusError(IOError):
    '''I2C transaction with the fuel gauge failed.

    Every transport failure is normalized into this one error kind. *code* is
    always GENERIC_ERROR (nonzero), *status* keeps the finer transport detail.
    '''

    def __init__(self, message, status=TransportStatus.OTHER, register=None):
        super().__init__(message)
        self.code = GENERIC_ERROR
        self.status = TransportStatus(status)
        self.register = register


class InvalidArgument(ValueError):
    '''Value outside the legal domain of a register field.'''
