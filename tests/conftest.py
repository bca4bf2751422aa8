import pytest

from max1704x import MAX1704X, Regs


class FakeSMBus:
    """In-memory stand-in for smbus2.SMBus talking to a MAX1704x."""

    def __init__(self, address=0x36, registers=None):
        self.address = address
        self.registers = dict(registers or {})
        self.transactions = []
        self.error = None
        self.closed = False

    def _check(self, i2c_addr):
        if self.error is not None:
            raise self.error
        if i2c_addr != self.address:
            raise OSError(6, 'No such device or address')

    def write_i2c_block_data(self, i2c_addr, register, data):
        self.transactions.append(('write', register, list(data)))
        self._check(i2c_addr)
        msb, lsb = data
        self.registers[register] = (msb << 8) | lsb

    def read_i2c_block_data(self, i2c_addr, register, length):
        self.transactions.append(('read', register, length))
        self._check(i2c_addr)
        value = self.registers.get(register, 0)
        return [(value >> 8) & 0xFF, value & 0xFF][:length]

    def write_quick(self, i2c_addr):
        self.transactions.append(('quick', i2c_addr))
        self._check(i2c_addr)

    def close(self):
        self.closed = True

    def writes(self):
        return [t for t in self.transactions if t[0] == 'write']

    def reads(self):
        return [t for t in self.transactions if t[0] == 'read']


# power-up defaults of a MAX17048
DEFAULT_REGISTERS = {
    Regs.VCELL: 0xD000,
    Regs.SOC: 0x5A80,
    Regs.VERSION: 0x0012,
    Regs.HIBRT: 0x8030,
    Regs.CONFIG: 0x971C,
    Regs.CVALRT: 0x00FF,
    Regs.CRATE: 0x0000,
    Regs.VRESET_ID: 0x9612,
    Regs.STATUS: 0x0100,
}


@pytest.fixture
def bus():
    return FakeSMBus(registers=DEFAULT_REGISTERS)


@pytest.fixture
def gauge(bus):
    return MAX1704X(i2c_bus=bus)
