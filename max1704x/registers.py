'''MAX1704x register map, bit positions and field codecs.

Datasheets:
    https://www.analog.com/media/en/technical-documentation/data-sheets/MAX17043-MAX17044.pdf
    https://www.analog.com/media/en/technical-documentation/data-sheets/MAX17048-MAX17049.pdf

All registers are 16 bits wide and transferred MSB first. The codecs below are
pure functions of the raw register word, they never touch the bus.
'''

import math
import numbers
from enum import Enum, IntEnum, IntFlag

from .errors import InvalidArgument


DEFAULT_I2C_ADDRESS = 0x36


class Regs:
    '''MAX1704x register definitions.'''
    VCELL = 0x02      # R - 12-bit A/D measurement of battery voltage
    SOC = 0x04        # R - 16-bit state of charge
    MODE = 0x06       # W - special commands
    VERSION = 0x08    # R - IC version
    HIBRT = 0x0A      # R/W - hibernate thresholds (MAX17048/49)
    CONFIG = 0x0C     # R/W - compensation, sleep, alert (default 0x971C)
    CVALRT = 0x14     # R/W - VCELL alert range (MAX17048/49, default 0x00FF)
    CRATE = 0x16      # R - charge rate, 0.208%/hr (MAX17048/49)
    VRESET_ID = 0x18  # R/W - reset voltage and ID (MAX17048/49, default 0x96__)
    STATUS = 0x1A     # R/W - alert status (MAX17048/49, default 0x01__)
    COMMAND = 0xFE    # W - special commands


# MODE register
MODE_QUICKSTART = 0x4000
MODE_HIBSTAT = 1 << 12

# COMMAND register
COMMAND_POR = 0x5400

# CONFIG register
CONFIG_COMPENSATION = 0xFF00
CONFIG_SLEEP = 1 << 7
CONFIG_ALSC = 1 << 6
CONFIG_ALERT = 1 << 5
CONFIG_THRESHOLD = 0x001F

# HIBRT register
HIBRT_HIB_THRESHOLD = 0xFF00
HIBRT_ACT_THRESHOLD = 0x00FF
HIBRT_ALWAYS = 0xFFFF
HIBRT_NEVER = 0x0000

# CVALRT register
CVALRT_MIN = 0xFF00
CVALRT_MAX = 0x00FF

# VRESET/ID register
VRESET_VOLTAGE = 0xFE00
VRESET_COMPARATOR = 1 << 8
VRESET_ID = 0x00FF

# STATUS register, flags live in the MSB
STATUS_FLAGS = 0x3F00
STATUS_ENVR = 1 << 14
STATUS_BYTE = 0x7F00

# unit steps
VOLTAGE_STEP_5V = 0.00125     # V per bit of the 12-bit VCELL code at 5V full-scale
CRATE_STEP = 0.208            # %/hr per bit
HIB_THRESHOLD_STEP = 0.208    # %/hr per bit
ACT_THRESHOLD_STEP = 0.00125  # V per bit
ALERT_VOLTAGE_STEP = 0.02     # V per bit
RESET_VOLTAGE_MAX = 0x7F

THRESHOLD_MIN = 1
THRESHOLD_MAX = 32


class FullScale(IntEnum):
    '''Voltage full-scale of the VCELL ADC.'''
    FULL_SCALE_5V = 5
    FULL_SCALE_10V = 10


class Model(str, Enum):
    '''Supported fuel gauge models.'''
    MAX17043 = 'MAX17043'
    MAX17044 = 'MAX17044'
    MAX17048 = 'MAX17048'
    MAX17049 = 'MAX17049'

    @property
    def full_scale(self):
        '''FullScale: VCELL full-scale of this model'''
        if self in (Model.MAX17044, Model.MAX17049):
            return FullScale.FULL_SCALE_10V
        return FullScale.FULL_SCALE_5V

    @property
    def extended(self):
        '''bool: True if the model has the HIBRT, CVALRT, CRATE, VRESET/ID and STATUS registers'''
        return self in (Model.MAX17048, Model.MAX17049)


class StatusFlag(IntFlag):
    '''Alert flags reported in the STATUS register MSB.'''
    RI = 1 << 0  # reset indicator, set after power-up
    VH = 1 << 1  # VCELL above VALRT.MAX
    VL = 1 << 2  # VCELL below VALRT.MIN
    VR = 1 << 3  # voltage reset
    HD = 1 << 4  # SOC below ATHD
    SC = 1 << 5  # SOC changed by at least 1%
    ALL = RI | VH | VL | VR | HD | SC


def _shift(mask):
    # position of the lowest set bit
    return (mask & -mask).bit_length() - 1


def get_field(register_value, mask):
    '''Get the field selected by *mask*, shifted down to bit 0.

    Args:
        register_value (int): Complete value of the register
        mask (int): Bit mask of the field within the register

    Returns:
        int: Field value
    '''
    return (register_value & mask) >> _shift(mask)


def set_field(register_value, mask, value):
    '''Replace the field selected by *mask*.

    Args:
        register_value (int): Complete value of the register to update
        mask (int): Bit mask of the field within the register
        value (int): New field value, right-aligned

    Returns:
        int: Register value with the field replaced

    Raises:
        InvalidArgument: Value too large for the field
    '''
    shift = _shift(mask)
    if value < 0 or (value << shift) & ~mask & 0xFFFF:
        raise InvalidArgument(f'Value {value} does not fit field mask 0x{mask:04X}')
    return (register_value & ~mask & 0xFFFF) | (value << shift)


def to_signed16(value):
    '''Interpret a 16-bit word as two's complement.'''
    if value & 0x8000:
        return value - 0x10000
    return value


def _is_real(value):
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _require_int(name, value, minimum, maximum):
    # integral floats such as 5.0 are accepted
    if not _is_real(value) or not math.isfinite(value) or int(value) != value:
        raise InvalidArgument(f'{name} must be an integer, got {value!r}')
    if not minimum <= value <= maximum:
        raise InvalidArgument(f'{name} must be between {minimum} and {maximum}, got {value}')
    return int(value)


def _steps(name, value, step, maximum_steps):
    # quantize a physical value to register steps
    maximum = step * maximum_steps
    if not _is_real(value) or not 0 <= value <= maximum + step / 2:
        raise InvalidArgument(f'{name} must be between 0 and {maximum:g}, got {value!r}')
    return min(int(round(value / step)), maximum_steps)


def encode_threshold(percent):
    '''Encode an alert threshold percentage into the CONFIG ATHD field.

    Args:
        percent (int): SOC percentage that triggers an alert (1-32)

    Returns:
        int: ATHD field value (0-31)

    Raises:
        InvalidArgument: Percentage outside 1-32
    '''
    percent = _require_int('Alert threshold', percent, THRESHOLD_MIN, THRESHOLD_MAX)
    return THRESHOLD_MAX - percent


def decode_threshold(field):
    '''Decode the CONFIG ATHD field into an alert threshold percentage (1-32).'''
    return THRESHOLD_MAX - (field & CONFIG_THRESHOLD)


def decode_voltage(raw, full_scale=FullScale.FULL_SCALE_5V):
    '''Convert a VCELL word to volts.

    The 12-bit ADC code is left-justified, 1.25mV per bit at 5V full-scale and
    2.5mV per bit at 10V full-scale.

    Args:
        raw (int): VCELL register value
        full_scale (int): 5 or 10

    Returns:
        float: Cell voltage in volts
    '''
    return (raw >> 4) * VOLTAGE_STEP_5V * (int(full_scale) / 5)


def decode_soc(raw):
    '''Convert a SOC word to percent, high byte whole percent, low byte 1/256%.'''
    return ((raw & 0xFF00) >> 8) + (raw & 0x00FF) / 256.0


def decode_change_rate(raw):
    '''Convert a CRATE word to %/hr, positive while charging.'''
    return to_signed16(raw) * CRATE_STEP


def encode_compensation(value):
    '''Validate an 8-bit compensation byte.'''
    return _require_int('Compensation', value, 0, 0xFF)


def encode_reset_voltage(value):
    '''Validate a 7-bit VRESET value (40mV per bit).'''
    return _require_int('Reset voltage', value, 0, RESET_VOLTAGE_MAX)


def encode_alert_voltage(volts):
    '''Encode a CVALRT threshold in volts, 20mV per bit (0-5.1V).'''
    return _steps('Alert voltage', volts, ALERT_VOLTAGE_STEP, 0xFF)


def decode_alert_voltage(field):
    return field * ALERT_VOLTAGE_STEP


def encode_hibernate_threshold(rate):
    '''Encode the HIBRT HibThr field in %/hr, 0.208%/hr per bit (0-53.04).'''
    return _steps('Hibernate threshold', rate, HIB_THRESHOLD_STEP, 0xFF)


def decode_hibernate_threshold(field):
    return field * HIB_THRESHOLD_STEP


def encode_activity_threshold(volts):
    '''Encode the HIBRT ActThr field in volts, 1.25mV per bit (0-0.31875V).'''
    return _steps('Activity threshold', volts, ACT_THRESHOLD_STEP, 0xFF)


def decode_activity_threshold(field):
    return field * ACT_THRESHOLD_STEP


def decode_status(raw):
    '''Extract the 7 status bits (flags plus EnVR) from a STATUS word.'''
    return (raw & STATUS_BYTE) >> 8
