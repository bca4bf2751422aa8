"""Tests for the 16-bit register transport."""

import errno
import logging

import pytest

from max1704x.errors import GENERIC_ERROR, BusError, InvalidArgument, TransportStatus
from max1704x.register_io import RegisterIO

from .conftest import FakeSMBus


class ShortReadBus(FakeSMBus):
    def read_i2c_block_data(self, i2c_addr, register, length):
        return [0x12]


class TestReadWrite:
    def setup_method(self):
        self.bus = FakeSMBus(registers={0x02: 0xABCD})
        self.io = RegisterIO(self.bus)

    def test_read_assembles_msb_first(self):
        assert self.io.read16(0x02) == 0xABCD
        assert self.bus.transactions == [('read', 0x02, 2)]

    def test_write_sends_msb_first(self):
        self.io.write16(0x1234, 0x0C)
        assert self.bus.transactions == [('write', 0x0C, [0x12, 0x34])]
        assert self.bus.registers[0x0C] == 0x1234

    @pytest.mark.parametrize("value", [-1, 0x10000, None, 1.5, True, '0x4000'])
    def test_write_out_of_range_never_touches_bus(self, value):
        with pytest.raises(InvalidArgument):
            self.io.write16(value, 0x0C)
        assert self.bus.transactions == []

    def test_read_traced_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger='max1704x'):
            self.io.read16(0x02)
        assert 'Read 0xABCD from register 0x02' in caplog.text


class TestBusErrors:
    @pytest.mark.parametrize("error_number, status", [
        (errno.ENXIO, TransportStatus.ADDRESS_NACK),
        (errno.EREMOTEIO, TransportStatus.ADDRESS_NACK),
        (errno.EIO, TransportStatus.DATA_NACK),
        (errno.EMSGSIZE, TransportStatus.DATA_TOO_LONG),
        (errno.ETIMEDOUT, TransportStatus.OTHER),
    ])
    def test_read_failure_mapped(self, error_number, status):
        bus = FakeSMBus()
        bus.error = OSError(error_number, 'i2c failure')
        io = RegisterIO(bus)

        with pytest.raises(BusError) as excinfo:
            io.read16(0x04)

        assert excinfo.value.status == status
        assert excinfo.value.code == GENERIC_ERROR
        assert excinfo.value.register == 0x04
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_write_failure_logged(self, caplog):
        bus = FakeSMBus()
        bus.error = OSError(errno.EREMOTEIO, 'Remote I/O error')
        io = RegisterIO(bus)

        with caplog.at_level(logging.ERROR, logger='max1704x'):
            with pytest.raises(BusError):
                io.write16(0x5400, 0xFE)

        assert 'register 0xFE' in caplog.text

    def test_wrong_address_is_address_nack(self):
        io = RegisterIO(FakeSMBus(), i2c_address=0x37)
        with pytest.raises(BusError) as excinfo:
            io.read16(0x02)
        assert excinfo.value.status == TransportStatus.ADDRESS_NACK

    def test_short_read_is_bus_error(self):
        io = RegisterIO(ShortReadBus())
        with pytest.raises(BusError):
            io.read16(0x02)

    def test_bus_error_is_ioerror(self):
        assert issubclass(BusError, IOError)
        assert GENERIC_ERROR != 0


class TestProbe:
    def test_present(self):
        bus = FakeSMBus()
        assert RegisterIO(bus).probe() is True
        assert bus.transactions == [('quick', 0x36)]

    def test_absent(self):
        assert RegisterIO(FakeSMBus(), i2c_address=0x40).probe() is False

    def test_failing_bus(self):
        bus = FakeSMBus()
        bus.error = OSError(errno.ENXIO, 'No such device or address')
        assert RegisterIO(bus).probe() is False
