# Datasheets:
#   https://www.analog.com/media/en/technical-documentation/data-sheets/MAX17043-MAX17044.pdf
#   https://www.analog.com/media/en/technical-documentation/data-sheets/MAX17048-MAX17049.pdf

import sys
import atexit

import smbus2

from . import log
from .errors import InvalidArgument
from .register_io import RegisterIO
from .registers import (
    Regs, DEFAULT_I2C_ADDRESS, FullScale, Model, StatusFlag,
    MODE_QUICKSTART, MODE_HIBSTAT, COMMAND_POR,
    CONFIG_COMPENSATION, CONFIG_SLEEP, CONFIG_ALSC, CONFIG_ALERT, CONFIG_THRESHOLD,
    HIBRT_HIB_THRESHOLD, HIBRT_ACT_THRESHOLD, HIBRT_ALWAYS, HIBRT_NEVER,
    CVALRT_MIN, CVALRT_MAX,
    VRESET_VOLTAGE, VRESET_COMPARATOR, VRESET_ID,
    STATUS_ENVR,
    get_field, set_field,
    encode_threshold, decode_threshold, decode_voltage, decode_soc, decode_change_rate,
    encode_compensation, encode_reset_voltage,
    encode_alert_voltage, decode_alert_voltage,
    encode_hibernate_threshold, decode_hibernate_threshold,
    encode_activity_threshold, decode_activity_threshold,
    decode_status,
)


class MAX1704X:
    '''Driver for the Maxim MAX17043/44/48/49 fuel gauges.

    Every call reads the chip fresh, nothing is cached. Bus failures raise
    BusError and out-of-range arguments raise InvalidArgument before any bus
    access. The driver does no locking of its own: concurrent read-modify-write
    sequences on one register from several threads can corrupt bit-fields, so
    callers sharing a bus must serialize access.
    '''

    def __init__(self, full_scale=None, i2c_bus=1, i2c_address=DEFAULT_I2C_ADDRESS, model=None, debug_stream=None, log_file=None):
        '''Initialize MAX1704X instance.

        Args:
            full_scale (int, None): VCELL full-scale in volts, 5 (MAX17043/48) or 10 (MAX17044/49), defaults to the full-scale of *model*, or 5
            i2c_bus (int, smbus2.SMBus): I2C bus number to open, or an already open bus to share, defaults to 1
            i2c_address (int): I2C address of the MAX1704x, defaults to 0x36
            model (Model, str, None): Fuel gauge model, used to flag calls to registers the model lacks, defaults to None (unknown)
            debug_stream (file-like, None): Text stream receiving register traces, defaults to None (disabled)
            log_file (str, None): Rotating log file path, defaults to None (no file logging)

        Returns:
            max1704x.MAX1704X (obj): Initialized class instance

        Raises:
            InvalidArgument: Unsupported full-scale or model
        '''
        if model is not None:
            try:
                model = Model(model)
            except ValueError:
                raise InvalidArgument(f'Unsupported model: {model}. Supported models: {[m.value for m in Model]}') from None

        if full_scale is None:
            full_scale = model.full_scale if model is not None else FullScale.FULL_SCALE_5V
        try:
            full_scale = FullScale(full_scale)
        except ValueError:
            raise InvalidArgument(f'Full-scale must be 5 or 10, got {full_scale}') from None

        self.full_scale = full_scale
        '''VCELL full-scale (see FullScale), fixed for the life of the instance'''
        self.model = model
        '''Fuel gauge model (see Model), None if unknown'''
        self.logger = log.get_instance_logger(i2c_address)
        '''Logger owned by this instance, child of the package logger'''

        self._file_handler = log.add_file_handler(log_file, target=self.logger) if log_file else None
        self._debug_handler = None
        if debug_stream is not None:
            self.enable_debugging(debug_stream)

        # only close buses opened here
        self._owns_bus = isinstance(i2c_bus, int)
        if self._owns_bus:
            bus = smbus2.SMBus(i2c_bus)
            atexit.register(self.close)
        else:
            bus = i2c_bus

        self.io = RegisterIO(bus, i2c_address, logger=self.logger)
        '''16-bit register transport'''

        self.logger.info(f'MAX1704x driver initialized on I2C address 0x{i2c_address:02X} '
                         f'({model.value if model else "unknown model"}, {int(full_scale)}V full-scale)')

    def begin(self):
        '''Check that the fuel gauge answers on its address.

        Returns:
            bool: True if the device was detected, False otherwise
        '''
        if self.is_connected():
            self.logger.info(f'MAX1704x detected at 0x{self.io.address:02X}')
            return True
        self.logger.warning(f'MAX1704x not detected at 0x{self.io.address:02X}')
        return False

    def is_connected(self):
        '''Whether the device acknowledges its I2C address.'''
        return self.io.probe()

    def close(self):
        '''Close the I2C bus if it was opened by this instance and detach log handlers.'''
        if self._owns_bus and self.io.bus is not None:
            atexit.unregister(self.close)
            self.io.bus.close()
            self.io.bus = None
            self.logger.info('I2C bus closed')
        self.disable_debugging()
        log.remove_handler(self._file_handler, target=self.logger)
        self._file_handler = None

    def enable_debugging(self, stream=None):
        '''Write this instance's register traces to a text stream.

        Args:
            stream (file-like, None): Writable text stream, defaults to sys.stdout
        '''
        self.disable_debugging()
        self._debug_handler = log.add_stream_handler(stream if stream is not None else sys.stdout, target=self.logger)

    def disable_debugging(self):
        '''Stop writing register traces.'''
        log.remove_handler(self._debug_handler, target=self.logger)
        self._debug_handler = None

    def read16(self, register):
        '''Read a raw 16-bit register value (see RegisterIO.read16).'''
        return self.io.read16(register)

    def write16(self, value, register):
        '''Write a raw 16-bit register value (see RegisterIO.write16).'''
        self.io.write16(value, register)

    def _update_register(self, register, mask, value):
        '''Read-modify-write a register field.

        Args:
            register (int): Register address
            mask (int): Bit mask of the field
            value (int): New field value, right-aligned

        Returns:
            int: Value written to the register
        '''
        register_value = self.io.read16(register)
        new_value = set_field(register_value, mask, value)
        self.io.write16(new_value, register)
        return new_value

    def _check_extended(self, operation):
        # MAX17043/44 lack these registers, the hardware result is passed through
        if self.model is not None and not self.model.extended:
            self.logger.warning(f'{operation} uses a MAX17048/49 register, not available on {self.model.value}')


    ### Measurements ###
    def get_voltage(self):
        '''Get battery voltage.

        Returns:
            float: Cell voltage in volts, 1.25mV steps at 5V full-scale, 2.5mV at 10V
        '''
        return decode_voltage(self.io.read16(Regs.VCELL), self.full_scale)

    def get_soc(self):
        '''Get state-of-charge as calculated by the ModelGauge algorithm.

        Values are not clamped to 0-100.

        Returns:
            float: Battery percentage
        '''
        return decode_soc(self.io.read16(Regs.SOC))

    def get_change_rate(self):
        '''Get state-of-charge change rate (MAX17048/49).

        Returns:
            float: Rate in %/hr, positive while charging, negative while discharging
        '''
        self._check_extended('get_change_rate')
        return decode_change_rate(self.io.read16(Regs.CRATE))

    def get_version(self):
        '''Get the IC production version.'''
        return self.io.read16(Regs.VERSION)

    def get_id(self):
        '''Get the 8-bit factory ID (MAX17048/49). Writes to the ID are ignored by the IC.'''
        self._check_extended('get_id')
        return get_field(self.io.read16(Regs.VRESET_ID), VRESET_ID)


    ### Commands ###
    def quick_start(self):
        '''Restart the fuel-gauge calculations so the IC re-estimates its initial state.'''
        # write the quick-start command to the MODE register
        self.io.write16(MODE_QUICKSTART, Regs.MODE)
        self.logger.info('Quick-start issued')

    def reset(self):
        '''Issue a power-on reset. Every register returns to its default value.'''
        # write the POR command to the COMMAND register
        self.io.write16(COMMAND_POR, Regs.COMMAND)
        self.logger.info('Power-on reset issued')

    def soft_reset(self):
        '''Issue a power-on reset, same as reset().'''
        self.reset()


    ### CONFIG register ###
    def get_config_register(self):
        '''Get the raw 16-bit CONFIG register value.'''
        return self.io.read16(Regs.CONFIG)

    def get_threshold(self):
        '''Get the state-of-charge alert threshold.

        Returns:
            int: Percentage (1-32) below which an alert is asserted
        '''
        return decode_threshold(get_field(self.io.read16(Regs.CONFIG), CONFIG_THRESHOLD))

    def set_threshold(self, percent):
        '''Set the state-of-charge alert threshold.

        Reset by: power-on-reset
        Reset to: 4%

        Args:
            percent (int): Percentage (1-32) below which an alert is asserted

        Raises:
            InvalidArgument: Percentage outside 1-32
        '''
        field = encode_threshold(percent)
        self._update_register(Regs.CONFIG, CONFIG_THRESHOLD, field)
        self.logger.info(f'Alert threshold set to {percent}%')

    def get_alert(self, clear=False):
        '''Check the CONFIG alert flag.

        Args:
            clear (bool): Clear the flag if it was set, defaults to False

        Returns:
            bool: True if an alert was pending when read
        '''
        config = self.io.read16(Regs.CONFIG)
        alert = bool(config & CONFIG_ALERT)
        if alert and clear:
            self.io.write16(config & ~CONFIG_ALERT, Regs.CONFIG)
            self.logger.info('Alert cleared')
        return alert

    def clear_alert(self):
        '''Clear the CONFIG alert flag.'''
        self._update_register(Regs.CONFIG, CONFIG_ALERT, 0)
        self.logger.info('Alert cleared')

    def sleep(self):
        '''Put the IC in sleep mode.'''
        self._update_register(Regs.CONFIG, CONFIG_SLEEP, 1)
        self.logger.info('Sleep mode enabled')

    def wake(self):
        '''Wake the IC from sleep mode.'''
        self._update_register(Regs.CONFIG, CONFIG_SLEEP, 0)
        self.logger.info('Sleep mode disabled')

    def get_compensation(self):
        '''Get the ModelGauge compensation byte (CONFIG MSB, 0x97 by default).'''
        return get_field(self.io.read16(Regs.CONFIG), CONFIG_COMPENSATION)

    def set_compensation(self, value):
        '''Set the ModelGauge compensation byte.

        Args:
            value (int): Compensation value (0-255)

        Raises:
            InvalidArgument: Value outside 0-255
        '''
        value = encode_compensation(value)
        self._update_register(Regs.CONFIG, CONFIG_COMPENSATION, value)
        self.logger.info(f'Compensation set to 0x{value:02X}')

    def enable_soc_alert(self):
        '''Alert when state-of-charge changes by at least 1% (MAX17048/49).'''
        self._check_extended('enable_soc_alert')
        self._update_register(Regs.CONFIG, CONFIG_ALSC, 1)
        self.logger.info('SOC change alert enabled')

    def disable_soc_alert(self):
        '''Stop alerting on 1% state-of-charge changes (MAX17048/49).'''
        self._check_extended('disable_soc_alert')
        self._update_register(Regs.CONFIG, CONFIG_ALSC, 0)
        self.logger.info('SOC change alert disabled')


    ### VRESET/ID register ###
    def get_reset_voltage(self):
        '''Get the 7-bit VRESET value, 40mV per bit (MAX17048/49).'''
        self._check_extended('get_reset_voltage')
        return get_field(self.io.read16(Regs.VRESET_ID), VRESET_VOLTAGE)

    def set_reset_voltage(self, value):
        '''Set the battery removal/reconnect detection threshold (MAX17048/49).

        The comparator enable bit is left untouched.

        Reset by: power-on-reset
        Reset to: 3.0V (0x4B)

        Args:
            value (int): VRESET value (0-127), 40mV per bit

        Raises:
            InvalidArgument: Value outside 0-127
        '''
        value = encode_reset_voltage(value)
        self._check_extended('set_reset_voltage')
        self._update_register(Regs.VRESET_ID, VRESET_VOLTAGE, value)
        self.logger.info(f'Reset voltage set to {value} ({value * 0.04:.2f}V)')

    def enable_comparator(self):
        '''Enable the analog reset comparator, uses 0.5uA (MAX17048/49).'''
        self._check_extended('enable_comparator')
        self._update_register(Regs.VRESET_ID, VRESET_COMPARATOR, 1)
        self.logger.info('Reset comparator enabled')

    def disable_comparator(self):
        '''Disable the analog reset comparator, saves 0.5uA in hibernate (MAX17048/49).'''
        self._check_extended('disable_comparator')
        self._update_register(Regs.VRESET_ID, VRESET_COMPARATOR, 0)
        self.logger.info('Reset comparator disabled')


    ### STATUS register ###
    def get_status(self):
        '''Get the 7 STATUS bits (MAX17048/49).

        Returns:
            int: RI, VH, VL, VR, HD, SC flags in bits 0-5 and EnVR in bit 6
        '''
        self._check_extended('get_status')
        return decode_status(self.io.read16(Regs.STATUS))

    def _status_flag(self, flag):
        return bool(self.get_status() & flag)

    def is_reset(self):
        '''True after power-on reset until cleared.'''
        return self._status_flag(StatusFlag.RI)

    def is_voltage_high(self):
        '''True when VCELL went above the maximum alert voltage.'''
        return self._status_flag(StatusFlag.VH)

    def is_voltage_low(self):
        '''True when VCELL went below the minimum alert voltage.'''
        return self._status_flag(StatusFlag.VL)

    def is_voltage_reset(self):
        '''True when VCELL dropped below VRESET.'''
        return self._status_flag(StatusFlag.VR)

    def is_low(self):
        '''True when state-of-charge crossed the alert threshold.'''
        return self._status_flag(StatusFlag.HD)

    def is_change(self):
        '''True when state-of-charge changed by at least 1%.'''
        return self._status_flag(StatusFlag.SC)

    def get_active_status_flags(self):
        '''Get the STATUS flags that are currently set.

        Returns:
            list: Active StatusFlag members
        '''
        status = self.get_status()
        return [flag for flag in (StatusFlag.RI, StatusFlag.VH, StatusFlag.VL, StatusFlag.VR, StatusFlag.HD, StatusFlag.SC) if status & flag]

    def clear_status_flags(self, flags=StatusFlag.ALL):
        '''Clear sticky STATUS flags, EnVR is left untouched (MAX17048/49).

        Args:
            flags (StatusFlag): Flags to clear, defaults to all
        '''
        self._check_extended('clear_status_flags')
        flags = StatusFlag(flags) & StatusFlag.ALL
        register_value = self.io.read16(Regs.STATUS)
        self.io.write16(register_value & ~(int(flags) << 8) & 0xFFFF, Regs.STATUS)
        self.logger.info(f'Status flags cleared: 0x{int(flags):02X}')

    def enable_alert(self):
        '''Assert ALRT on voltage-reset events (STATUS EnVR, MAX17048/49).'''
        self._check_extended('enable_alert')
        self._update_register(Regs.STATUS, STATUS_ENVR, 1)
        self.logger.info('Voltage reset alert enabled')

    def disable_alert(self):
        '''Stop asserting ALRT on voltage-reset events (MAX17048/49).'''
        self._check_extended('disable_alert')
        self._update_register(Regs.STATUS, STATUS_ENVR, 0)
        self.logger.info('Voltage reset alert disabled')


    ### Hibernate ###
    def get_hibernate_threshold(self):
        '''Get the change rate below which the IC enters hibernate (MAX17048/49).

        Returns:
            float: Threshold in %/hr
        '''
        self._check_extended('get_hibernate_threshold')
        return decode_hibernate_threshold(get_field(self.io.read16(Regs.HIBRT), HIBRT_HIB_THRESHOLD))

    def set_hibernate_threshold(self, rate):
        '''Set the change rate below which the IC enters hibernate (MAX17048/49).

        Range: 0 - 53.04%/hr
        Bit step size: 0.208%/hr

        Args:
            rate (float): Threshold in %/hr

        Raises:
            InvalidArgument: Rate out of range
        '''
        field = encode_hibernate_threshold(rate)
        self._check_extended('set_hibernate_threshold')
        self._update_register(Regs.HIBRT, HIBRT_HIB_THRESHOLD, field)
        self.logger.info(f'Hibernate threshold set to {decode_hibernate_threshold(field):.3f}%/hr')

    def get_activity_threshold(self):
        '''Get the OCV-VCELL difference above which the IC leaves hibernate (MAX17048/49).

        Returns:
            float: Threshold in volts
        '''
        self._check_extended('get_activity_threshold')
        return decode_activity_threshold(get_field(self.io.read16(Regs.HIBRT), HIBRT_ACT_THRESHOLD))

    def set_activity_threshold(self, volts):
        '''Set the OCV-VCELL difference above which the IC leaves hibernate (MAX17048/49).

        Range: 0 - 0.31875V
        Bit step size: 1.25mV

        Args:
            volts (float): Threshold in volts

        Raises:
            InvalidArgument: Voltage out of range
        '''
        field = encode_activity_threshold(volts)
        self._check_extended('set_activity_threshold')
        self._update_register(Regs.HIBRT, HIBRT_ACT_THRESHOLD, field)
        self.logger.info(f'Activity threshold set to {decode_activity_threshold(field):.5f}V')

    def enable_hibernate(self):
        '''Force the IC into hibernate (MAX17048/49).'''
        self._check_extended('enable_hibernate')
        self.io.write16(HIBRT_ALWAYS, Regs.HIBRT)
        self.logger.info('Hibernate enabled')

    def disable_hibernate(self):
        '''Keep the IC out of hibernate (MAX17048/49).'''
        self._check_extended('disable_hibernate')
        self.io.write16(HIBRT_NEVER, Regs.HIBRT)
        self.logger.info('Hibernate disabled')

    def is_hibernating(self):
        '''Whether the IC is in hibernate (MODE HibStat, MAX17048/49).'''
        self._check_extended('is_hibernating')
        return bool(self.io.read16(Regs.MODE) & MODE_HIBSTAT)


    ### Voltage alerts ###
    def get_alert_min_voltage(self):
        '''Get the VCELL level below which VL is set (MAX17048/49).'''
        self._check_extended('get_alert_min_voltage')
        return decode_alert_voltage(get_field(self.io.read16(Regs.CVALRT), CVALRT_MIN))

    def set_alert_min_voltage(self, volts):
        '''Set the VCELL level below which VL is set (MAX17048/49).

        Range: 0 - 5.1V
        Bit step size: 20mV

        Args:
            volts (float): Threshold in volts

        Raises:
            InvalidArgument: Voltage out of range
        '''
        field = encode_alert_voltage(volts)
        self._check_extended('set_alert_min_voltage')
        self._update_register(Regs.CVALRT, CVALRT_MIN, field)
        self.logger.info(f'Minimum alert voltage set to {decode_alert_voltage(field):.2f}V')

    def get_alert_max_voltage(self):
        '''Get the VCELL level above which VH is set (MAX17048/49).'''
        self._check_extended('get_alert_max_voltage')
        return decode_alert_voltage(get_field(self.io.read16(Regs.CVALRT), CVALRT_MAX))

    def set_alert_max_voltage(self, volts):
        '''Set the VCELL level above which VH is set (MAX17048/49).

        Range: 0 - 5.1V
        Bit step size: 20mV

        Args:
            volts (float): Threshold in volts

        Raises:
            InvalidArgument: Voltage out of range
        '''
        field = encode_alert_voltage(volts)
        self._check_extended('set_alert_max_voltage')
        self._update_register(Regs.CVALRT, CVALRT_MAX, field)
        self.logger.info(f'Maximum alert voltage set to {decode_alert_voltage(field):.2f}V')
