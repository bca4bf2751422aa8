'''16-bit register transport for the MAX1704x over I2C.'''

import numbers

from . import log
from .errors import BusError, InvalidArgument, TransportStatus
from .registers import DEFAULT_I2C_ADDRESS


class RegisterIO:
    '''Read and write 16-bit MSB-first registers on a fixed I2C address.

    Knows nothing about register semantics. Each call is a single transport
    attempt: no retry, no caching, no locking. Callers sharing *bus* across
    threads must serialize access themselves.
    '''

    def __init__(self, bus, i2c_address=DEFAULT_I2C_ADDRESS, logger=None):
        '''Initialize RegisterIO instance.

        Args:
            bus (smbus2.SMBus): Open I2C bus, shared by reference
            i2c_address (int): 7-bit I2C address of the device, defaults to 0x36
            logger (logging.Logger, None): Logger receiving transaction traces, defaults to the package logger
        '''
        self.bus = bus
        '''I2C bus instance object'''
        self.address = i2c_address
        '''I2C address'''
        self.logger = logger if logger is not None else log.logger
        '''Logger receiving transaction traces'''

    def _bus_error(self, action, register, exc):
        status = TransportStatus.from_errno(getattr(exc, 'errno', None))
        if register is None:
            message = f'I2C {action} failed at address 0x{self.address:02X} ({status.name}): {exc}'
        else:
            message = f'I2C {action} of register 0x{register:02X} failed ({status.name}): {exc}'
        self.logger.error(message)
        return BusError(message, status=status, register=register)

    def write16(self, value, register):
        '''Write 16 bits to a register.

        The register pointer is written first, followed by the MSB and then the
        LSB, all in one transaction.

        Args:
            value (int): Register value (0x0000-0xFFFF)
            register (int): Register address (example: 0x0C)

        Raises:
            InvalidArgument: Value does not fit in 16 bits
            BusError: Transaction was not fully acknowledged
        '''
        if isinstance(value, bool) or not isinstance(value, numbers.Integral) or not 0 <= value <= 0xFFFF:
            raise InvalidArgument(f'Register value must be between 0x0000 and 0xFFFF, got {value}')

        try:
            self.bus.write_i2c_block_data(self.address, register, [(value >> 8) & 0xFF, value & 0xFF])
        except OSError as e:
            raise self._bus_error('write', register, e) from e

        self.logger.debug(f'Wrote 0x{value:04X} to register 0x{register:02X}')

    def read16(self, register):
        '''Read 16 bits from a register.

        Writes the register pointer, then reads two bytes MSB first.

        Args:
            register (int): Register address (example: 0x02)

        Returns:
            int: Register value

        Raises:
            BusError: Either phase failed or the device returned a short read
        '''
        try:
            data = self.bus.read_i2c_block_data(self.address, register, 2)
        except OSError as e:
            raise self._bus_error('read', register, e) from e

        if len(data) != 2:
            message = f'I2C read of register 0x{register:02X} returned {len(data)} bytes, expected 2'
            self.logger.error(message)
            raise BusError(message, status=TransportStatus.OTHER, register=register)

        value = (data[0] << 8) | data[1]
        self.logger.debug(f'Read 0x{value:04X} from register 0x{register:02X}')
        return value

    def probe(self):
        '''Check whether the device acknowledges its address.

        No register is accessed, so a positive result says nothing about the
        health of the register set.

        Returns:
            bool: True if the device answered, False otherwise
        '''
        try:
            self.bus.write_quick(self.address)
        except OSError as e:
            self.logger.debug(f'No acknowledge from address 0x{self.address:02X}: {e}')
            return False
        return True
