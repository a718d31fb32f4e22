"""
Notifications about a serial port, delivered from a background monitor thread.

The monitor plays the part of the platform notification thread: it polls the port
and fires SerialPortEvent instances to its listeners, one at a time and in the
order they were detected.
"""
import logging
from enum import Enum

from serial import SerialException

from arduinoconn.protocol.background import AsyncLoop
from arduinoconn.support.events import EventSource
from arduinoconn.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.01


class SerialPortEventType(Enum):
    DATA_AVAILABLE = 'data_available'
    CTS = 'cts'
    DSR = 'dsr'
    RI = 'ri'
    CD = 'cd'


MODEM_LINES = (SerialPortEventType.CTS, SerialPortEventType.DSR, SerialPortEventType.RI, SerialPortEventType.CD)


class SerialPortEvent(CommonEqualityMixin, StringerMixin):
    """ Notification about a change on a serial port. """

    def __init__(self, source, event_type: SerialPortEventType, old_value=False, new_value=True):
        """
        :param source   The conduit for the port that posted this event
        :param event_type   What changed on the port
        :param old_value, new_value The line state before and after the change. For DATA_AVAILABLE
            these are always False and True.
        """
        self.source = source
        self.event_type = event_type
        self.old_value = old_value
        self.new_value = new_value


class SerialEventMonitor(AsyncLoop):
    """
    Polls a serial port for waiting input and modem line changes.
    Each kind of notification is off until enabled.
    """

    def __init__(self, source, ser, poll_interval=DEFAULT_POLL_INTERVAL):
        super().__init__(log=logger, name="serial-events-%s" % ser.port)
        self.source = source
        self.serial = ser
        self.poll_interval = poll_interval
        self.listeners = EventSource()
        self.data_available = False
        self.modem_lines = False
        self._line_states = None

    def startup(self):
        self._line_states = None
        self.logger.debug("monitoring serial port %s", self.serial.port)

    def loop(self):
        try:
            events = self.poll()
        except (SerialException, OSError) as e:
            if not self.running():
                return
            self.logger.warning("serial port %s stopped responding, notifications stopped: %s",
                                self.serial.port, e)
            self.stop()
            return
        self.listeners.fire_all(events)
        if not events:
            self.stop_event.wait(self.poll_interval)

    def poll(self):
        """
        Checks the port once.
        :return: the events to fire, modem line changes first.
        """
        events = []
        if self.modem_lines:
            events.extend(self._modem_line_events())
        if self.data_available and self.serial.in_waiting > 0:
            events.append(SerialPortEvent(self.source, SerialPortEventType.DATA_AVAILABLE))
        return events

    def _modem_line_events(self):
        ser = self.serial
        states = {SerialPortEventType.CTS: ser.cts, SerialPortEventType.DSR: ser.dsr,
                  SerialPortEventType.RI: ser.ri, SerialPortEventType.CD: ser.cd}
        previous = self._line_states
        self._line_states = states
        if previous is None:
            return []
        return [SerialPortEvent(self.source, line, previous[line], states[line])
                for line in MODEM_LINES if previous[line] != states[line]]

    def shutdown(self):
        self.logger.debug("stopped monitoring serial port %s", self.serial.port)
