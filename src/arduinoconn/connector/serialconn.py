"""
A connector that exchanges newline-delimited text with a device on a serial port.

Construction finds the port, opens and configures it, and registers for data available
notifications. Lines arriving from the device are passed to a sink on the notification thread.
Text is sent to the device synchronously on the caller's thread.
"""
import logging
import sys
import threading

from serial import SerialException

from arduinoconn.conduit.serial_conduit import SerialConduit, PortRegistry, TIME_OUT, open_serial_conduit, \
    serial_port_info
from arduinoconn.conduit.serial_events import SerialPortEvent, SerialPortEventType
from arduinoconn.config.settings import ConnectorSettings, load_settings
from arduinoconn.connector.base import ConnectorState, as_sink
from arduinoconn.errors import ConnectorClosedError, ConnectorError, PortNotFoundError, StreamReadError, \
    StreamWriteError
from arduinoconn.protocol.io import encode_text, strip_terminator

logger = logging.getLogger(__name__)


class SerialConnector:
    """
    Owns one serial port for its lifetime. The port is exclusively held from construction until close().

    :param port: the device name of the port, matched exactly against the registry, e.g. '/dev/ttyACM0' or 'COM3'
    :param sink: receives each line read from the device. Anything with on_line(line), or a callable.
        When None, lines are printed.
    :param settings: ConnectorSettings, defaults apply when None
    :param registry: the PortRegistry used to find the port. Defaults to one restricted to settings.scan_paths.
    :raises PortNotFoundError: if the port is not known to the registry. Nothing is opened.
    :raises PortOpenError: if the port could not be opened and configured. Nothing is left open.
    """

    def __init__(self, port, sink=None, settings: ConnectorSettings=None, registry: PortRegistry=None):
        self._port = port
        self.sink = as_sink(sink)
        self.settings = settings or ConnectorSettings()
        self.registry = registry or PortRegistry(self.settings.scan_paths)
        self._state_lock = threading.Lock()
        self._delivery_lock = threading.RLock()
        self._conduit = None
        self._state = ConnectorState.UNREGISTERED
        self._initialize()

    def _initialize(self):
        try:
            descriptor = self.registry.resolve(self._port)
        except PortNotFoundError:
            logger.error("Could not find serial port %s. Available ports: %s. Are you root?",
                         self._port, ", ".join(p.name for p in self.registry.ports()) or "none")
            raise

        try:
            conduit = open_serial_conduit(descriptor, self.settings.owner, TIME_OUT, self.settings.encoding,
                                          self.settings.poll_interval)
        except ConnectorError as e:
            logger.error("Unable to open serial port %s: %s", self._port, e)
            raise

        try:
            with self._state_lock:
                self._conduit = conduit
                self._state = ConnectorState.REGISTERED
            conduit.add_event_listener(self.serial_event)
            conduit.notify_on_data_available(True)
        except Exception as e:
            logger.error("Unable to listen to serial port %s: %s", self._port, e)
            self._teardown()
            raise
        logger.info("connected to %s", self._port)

    @property
    def port(self):
        return self._port

    @port.setter
    def port(self, port):
        """ Changes the recorded port name only. An open connection stays on the original port. """
        if self.connected and port != self._port:
            logger.debug("port name changed to %s while connected to %s", port, self._port)
        self._port = port

    @property
    def state(self) -> ConnectorState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectorState.REGISTERED

    @property
    def conduit(self) -> SerialConduit:
        """
        The conduit for the open port.
        :raises ConnectorClosedError: if the connector is closed
        """
        with self._state_lock:
            if not self.connected:
                raise ConnectorClosedError("serial port %s is closed" % self._port)
            return self._conduit

    def serial_event(self, event: SerialPortEvent):
        """
        Handles a notification from the port. Only DATA_AVAILABLE is acted on: one line is read
        and passed to the sink. Failures are logged and the line dropped, so later notifications
        are still handled.
        """
        if event.event_type is not SerialPortEventType.DATA_AVAILABLE:
            return
        with self._state_lock:
            if not self.connected:
                return
            reader = self._conduit.input

        try:
            line = self._read_line(reader)
        except StreamReadError as e:
            if self.connected:
                logger.warning("dropped line from %s: %s", self._port, e.__cause__ or e)
            else:
                logger.debug("read interrupted by close of %s: %s", self._port, e.__cause__ or e)
            return

        if line is None:
            return
        with self._delivery_lock:
            if not self.connected:
                logger.debug("discarded line read from %s during close", self._port)
                return
            try:
                self.sink.on_line(line)
            except Exception as e:
                logger.exception("line sink failed on line from %s: %s", self._port, e)

    def _read_line(self, reader):
        """
        :return: the next line without its terminator, or None at the end of the stream.
        :raises StreamReadError: if the line could not be read or decoded.
        """
        try:
            line = reader.readline()
        except (SerialException, OSError, ValueError, TypeError) as e:
            raise StreamReadError("unable to read line from %s" % self._port) from e
        return strip_terminator(line) if line else None

    def send(self, text) -> int:
        """
        Writes the text to the device, blocking until the port accepts it.
        The text is encoded with the connector's encoding. Bytes are written as is.
        Lines being delivered to the sink do not hold up a send.
        :return: the number of bytes written
        :raises TypeError: if text is neither str nor bytes
        :raises ConnectorClosedError: if the connector is closed
        :raises StreamWriteError: if the text cannot be encoded or the write fails
        """
        conduit = self.conduit
        try:
            data = encode_text(text, conduit.encoding)
        except UnicodeEncodeError as e:
            raise StreamWriteError("unable to encode text for serial port %s: %s" % (self._port, e)) from e
        try:
            written = conduit.output.write(data)
        except (SerialException, OSError, ValueError, TypeError) as e:
            raise StreamWriteError("unable to write to serial port %s: %s" % (self._port, e)) from e
        return len(data) if written is None else written

    def close(self):
        """
        Stops notifications and releases the port. Calling close more than once has no further effect.
        Once close returns, the sink receives no more lines. Errors releasing the port are logged.
        """
        with self._delivery_lock, self._state_lock:
            if self._state is ConnectorState.CLOSED:
                return
            was_connected = self.connected
            self._state = ConnectorState.CLOSED
        self._teardown()
        if was_connected:
            logger.info("disconnected from %s", self._port)

    def _teardown(self):
        with self._state_lock:
            self._state = ConnectorState.CLOSED
            conduit = self._conduit
            self._conduit = None
        if conduit is None:
            return
        try:
            conduit.close()
        except (SerialException, OSError) as e:
            logger.warning("error closing serial port %s: %s", self._port, e)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __str__(self):
        return "SerialConnector [port=%s, state=%s, conduit=%s]" % (self._port, self._state.value, self._conduit)


def monitor(port, settings=None):
    """
    A helper to talk to a device by hand. Lines from the device are printed, lines typed are sent.
    Without settings, they are loaded from arduinoconn.cfg and its variants in the current directory.
    """
    package_logger = logging.getLogger('arduinoconn')
    package_logger.setLevel(logging.INFO)
    package_logger.addHandler(logging.StreamHandler())
    if settings is None:
        settings = load_settings()
    logger.info("available ports: %s", ", ".join(p.device for p in serial_port_info()) or "none")
    with SerialConnector(port, settings=settings) as connector:
        for line in sys.stdin:
            connector.send(line)


if __name__ == '__main__':
    if len(sys.argv) != 2:
        print("usage: python -m arduinoconn.connector.serialconn PORT", file=sys.stderr)
        sys.exit(2)
    monitor(sys.argv[1])
