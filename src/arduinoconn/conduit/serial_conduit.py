"""
Implements a conduit over a serial port.
"""

import errno
import logging
import os
import time

import serial
from serial.tools import list_ports
from serial.tools.list_ports_common import ListPortInfo

from arduinoconn.conduit.base import Conduit
from arduinoconn.conduit.serial_events import DEFAULT_POLL_INTERVAL, SerialEventMonitor
from arduinoconn.errors import PortBusyError, PortNotFoundError, PortOpenTimeoutError, TooManyListenersError, \
    UnsupportedConfigurationError
from arduinoconn.protocol.io import LineReader
from arduinoconn.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)

# Milliseconds to wait for the port to become available when opening.
TIME_OUT = 2000

# Line parameters. These are fixed for every port this package opens.
DATA_RATE = 9600
DATA_BITS = serial.EIGHTBITS
STOP_BITS = serial.STOPBITS_ONE
PARITY = serial.PARITY_NONE

# Seconds between attempts to open a port that is not yet available.
OPEN_RETRY_PERIOD = 0.05

_busy_errnos = {errno.EBUSY, errno.EAGAIN, errno.EWOULDBLOCK}


class PortDescriptor(CommonEqualityMixin, StringerMixin):
    """ A port known to the platform. The name is the device path used to open it. """

    def __init__(self, name, description=None, hwid=None):
        self.name = name
        self.description = description
        self.hwid = hwid

    def __hash__(self):
        return hash(self.name)

    @classmethod
    def from_port_info(cls, info: ListPortInfo):
        return cls(info.device, info.description, info.hwid)


def serial_port_info():
    """
    :return: a tuple of ListPortInfo for every serial port the platform reports.
    """
    return tuple(list_ports.comports())


def serial_ports():
    """
    Returns a generator for all available serial port device names.
    """
    for port in serial_port_info():
        yield port.device


class PortRegistry:
    """
    Enumerates the serial ports that can be opened.

    When scan_paths is given, only those device paths are considered. Listed paths the platform
    does not report, but which exist on the filesystem, are appended after the reported ones.
    Some boards (such as a Raspberry Pi with an Arduino on /dev/ttyACM0) are only found this way.
    """

    def __init__(self, scan_paths=None):
        self.scan_paths = tuple(scan_paths or ())

    def ports(self):
        """
        :return: a tuple of PortDescriptor in enumeration order.
        """
        reported = [PortDescriptor.from_port_info(p) for p in self._fetch_ports()]
        if not self.scan_paths:
            return tuple(reported)
        listed = [p for p in reported if p.name in self.scan_paths]
        names = {p.name for p in listed}
        extra = [PortDescriptor(path) for path in self.scan_paths
                 if path not in names and self._exists(path)]
        return tuple(listed + extra)

    def resolve(self, identifier) -> PortDescriptor:
        """
        Finds the port whose name is exactly the given identifier.
        :raises PortNotFoundError: if no such port is enumerated.
        """
        for port in self.ports():
            if port.name == identifier:
                return port
        raise PortNotFoundError("Could not find serial port %s" % identifier)

    def _fetch_ports(self):
        return serial_port_info()

    def _exists(self, path):
        return os.path.exists(path)


class SerialConduit(Conduit):
    """
    A conduit that provides comms via a serial port.

    Input is a LineReader decoding text from the port, output is the port itself.
    Notifications about the port are posted to at most one listener, from a background monitor thread.
    """

    def __init__(self, ser: serial.Serial, encoding=None, owner=None, poll_interval=DEFAULT_POLL_INTERVAL):
        self.ser = ser
        self.owner = owner
        self._input = LineReader(ser, encoding)
        self.monitor = SerialEventMonitor(self, ser, poll_interval)

    @property
    def target(self):
        return self.ser

    @property
    def input(self) -> LineReader:
        return self._input

    @property
    def output(self):
        return self.ser

    @property
    def open(self) -> bool:
        return self.ser.is_open

    @property
    def encoding(self):
        return self._input.encoding

    def add_event_listener(self, listener):
        """
        Registers the listener for SerialPortEvent notifications and starts the monitor thread.
        :raises TooManyListenersError: if a listener is already registered.
        """
        listeners = self.monitor.listeners
        if listeners.handlers():
            raise TooManyListenersError("serial port %s already has a listener" % self.ser.port)
        listeners.add(listener)
        self.monitor.start()

    def remove_event_listener(self):
        """ Unregisters the listener. The monitor thread is told to stop but is not waited for. """
        self.monitor.listeners.clear()
        self.monitor.stop(wait=False)

    def notify_on_data_available(self, enable):
        self.monitor.data_available = enable

    def notify_on_modem_lines(self, enable):
        self.monitor.modem_lines = enable

    def close(self):
        """
        Stops notifications and closes the port. A read blocked on the monitor thread is
        cancelled and the monitor thread is waited for, unless close is called from it.
        """
        self.remove_event_listener()
        self._input.close()
        try:
            cancel_read = getattr(self.ser, 'cancel_read', None)
            if cancel_read is not None and self.ser.is_open:
                cancel_read()
            self.ser.close()
        finally:
            self.monitor.join()


def _is_busy(e: serial.SerialException):
    """
    >>> _is_busy(serial.SerialException(errno.EBUSY, 'busy'))
    True
    >>> _is_busy(serial.SerialException('Could not exclusively lock port /dev/ttyACM0'))
    True
    >>> _is_busy(serial.SerialException(errno.ENOENT, 'no such file'))
    False
    """
    return e.errno in _busy_errnos or 'exclusively lock' in str(e)


def open_serial_conduit(descriptor: PortDescriptor, owner, timeout_ms=TIME_OUT, encoding=None,
                        poll_interval=DEFAULT_POLL_INTERVAL, retry_period=OPEN_RETRY_PERIOD) -> SerialConduit:
    """
    Opens the port exclusively and sets the line parameters.

    Opening is retried until timeout_ms has elapsed, for as long as the port is not available.
    Nothing is left open when this fails.
    :param descriptor: the port to open
    :param owner: a label recorded on the conduit and logged, identifying who holds the port
    :raises PortBusyError: the port was still held by another owner when the timeout elapsed
    :raises PortOpenTimeoutError: the port could not be opened before the timeout elapsed
    :raises UnsupportedConfigurationError: the port rejected the line parameters
    """
    ser = serial.serial_for_url(descriptor.name, do_not_open=True)
    ser.exclusive = True
    ser.timeout = None
    deadline = time.monotonic() + timeout_ms / 1000
    while True:
        try:
            ser.open()
            break
        except serial.SerialException as e:
            if time.monotonic() >= deadline:
                error = PortBusyError if _is_busy(e) else PortOpenTimeoutError
                raise error("unable to open serial port %s within %dms: %s"
                            % (descriptor.name, timeout_ms, e)) from e
            logger.debug("serial port %s not available, retrying: %s", descriptor.name, e)
            time.sleep(retry_period)

    try:
        ser.baudrate = DATA_RATE
        ser.bytesize = DATA_BITS
        ser.stopbits = STOP_BITS
        ser.parity = PARITY
    except (ValueError, serial.SerialException) as e:
        ser.close()
        raise UnsupportedConfigurationError("serial port %s rejected %d/%d/%s/%s: %s"
                                            % (descriptor.name, DATA_RATE, DATA_BITS, STOP_BITS, PARITY, e)) from e

    logger.info("opened serial port %s for %s", descriptor.name, owner)
    return SerialConduit(ser, encoding, owner, poll_interval)
