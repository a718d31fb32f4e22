import errno
import unittest
from unittest.mock import Mock, PropertyMock, patch

import serial
import timeout_decorator
from hamcrest import assert_that, calling, empty, equal_to, instance_of, is_, raises
from serial.tools.list_ports_common import ListPortInfo

from arduinoconn.conduit.serial_conduit import DATA_RATE, PortDescriptor, PortRegistry, SerialConduit, \
    open_serial_conduit, serial_ports
from arduinoconn.errors import PortBusyError, PortNotFoundError, PortOpenTimeoutError, TooManyListenersError, \
    UnsupportedConfigurationError
from arduinoconn.protocol.io import LineReader
from arduinoconn.protocol.io_test import debug_timeout


def port_info(device, description='n/a', hwid='n/a'):
    info = ListPortInfo(device)
    info.description = description
    info.hwid = hwid
    return info


test_ports = (port_info('/dev/ttyS0'), port_info('/dev/ttyACM0', 'Arduino Uno', 'USB VID:PID=2341:0043'))


class PortDescriptorTest(unittest.TestCase):

    def test_from_port_info(self):
        sut = PortDescriptor.from_port_info(test_ports[1])
        assert_that(sut, is_(equal_to(PortDescriptor('/dev/ttyACM0', 'Arduino Uno', 'USB VID:PID=2341:0043'))))

    def test_port_info_annotation(self):
        assert_that(PortDescriptor.from_port_info.__annotations__['info'], is_(ListPortInfo))

    def test_hashable_by_name(self):
        ports = {PortDescriptor('COM3', 'a'), PortDescriptor('COM3', 'a'), PortDescriptor('COM4')}
        assert_that(len(ports), is_(2))
        assert_that(PortDescriptor('COM3', 'a') in ports, is_(True))

    def test_str(self):
        assert_that(str(PortDescriptor('COM3')), is_("PortDescriptor:{'description': None, 'hwid': None, "
                                                      "'name': 'COM3'}"))


@patch('serial.tools.list_ports.comports', return_value=list(test_ports))
class PortRegistryTest(unittest.TestCase):

    def test_ports_lists_all_reported_ports(self, comports):
        sut = PortRegistry()
        assert_that([p.name for p in sut.ports()], is_(['/dev/ttyS0', '/dev/ttyACM0']))
        comports.assert_called_once()

    def test_resolve_exact_name(self, comports):
        sut = PortRegistry()
        assert_that(sut.resolve('/dev/ttyACM0').description, is_('Arduino Uno'))

    def test_resolve_is_not_a_prefix_or_case_insensitive_match(self, comports):
        sut = PortRegistry()
        assert_that(calling(sut.resolve).with_args('/dev/ttyACM'), raises(PortNotFoundError))
        assert_that(calling(sut.resolve).with_args('/DEV/TTYACM0'), raises(PortNotFoundError))

    def test_resolve_unknown_port(self, comports):
        sut = PortRegistry()
        assert_that(calling(sut.resolve).with_args('COM9'), raises(PortNotFoundError, 'COM9'))

    def test_resolve_first_match_wins(self, comports):
        comports.return_value = [port_info('COM1', 'first'), port_info('COM1', 'second')]
        sut = PortRegistry()
        assert_that(sut.resolve('COM1').description, is_('first'))

    def test_scan_paths_restrict_enumeration(self, comports):
        sut = PortRegistry(['/dev/ttyACM0'])
        sut._exists = Mock(return_value=True)
        assert_that([p.name for p in sut.ports()], is_(['/dev/ttyACM0']))
        assert_that(calling(sut.resolve).with_args('/dev/ttyS0'), raises(PortNotFoundError))
        sut._exists.assert_not_called()

    def test_scan_paths_add_existing_unreported_devices(self, comports):
        sut = PortRegistry(['/dev/ttyAMA0', '/dev/ttyACM0', '/dev/missing'])
        sut._exists = Mock(side_effect=lambda path: path != '/dev/missing')
        assert_that([p.name for p in sut.ports()], is_(['/dev/ttyACM0', '/dev/ttyAMA0']))
        assert_that(sut.resolve('/dev/ttyAMA0'), is_(PortDescriptor('/dev/ttyAMA0')))

    def test_function_serial_ports(self, comports):
        assert_that(list(serial_ports()), is_(['/dev/ttyS0', '/dev/ttyACM0']))


class SerialConduitTest(unittest.TestCase):
    def test_exposes_port_and_line_reader(self):
        ser = Mock()
        sut = SerialConduit(ser, 'ascii', 'owner')

        assert_that(sut.target, is_(ser))
        assert_that(sut.input, is_(instance_of(LineReader)))
        assert_that(sut.input.source, is_(ser))
        assert_that(sut.output, is_(ser))
        assert_that(sut.encoding, is_('ascii'))
        assert_that(sut.owner, is_('owner'))

        ser.is_open = True
        assert_that(sut.open, is_(True))

    def test_single_listener(self):
        sut = SerialConduit(Mock())
        sut.monitor = Mock()
        sut.monitor.listeners.handlers.return_value = ()
        sut.add_event_listener(Mock())
        sut.monitor.start.assert_called_once()

        sut.monitor.listeners.handlers.return_value = (Mock(),)
        assert_that(calling(sut.add_event_listener).with_args(Mock()), raises(TooManyListenersError))

    def test_remove_listener_stops_monitor_without_waiting(self):
        sut = SerialConduit(Mock())
        sut.monitor = Mock()
        sut.remove_event_listener()
        sut.monitor.listeners.clear.assert_called_once()
        sut.monitor.stop.assert_called_once_with(wait=False)

    def test_notification_switches(self):
        sut = SerialConduit(Mock())
        sut.notify_on_data_available(True)
        sut.notify_on_modem_lines(True)
        assert_that(sut.monitor.data_available, is_(True))
        assert_that(sut.monitor.modem_lines, is_(True))

    def test_close_cancels_read_closes_port_then_joins(self):
        ser = Mock()
        ser.is_open = True
        sut = SerialConduit(ser)
        sut.monitor = Mock()
        manager = Mock()
        manager.attach_mock(ser.cancel_read, 'cancel_read')
        manager.attach_mock(ser.close, 'close')
        manager.attach_mock(sut.monitor.stop, 'stop')
        manager.attach_mock(sut.monitor.join, 'join')
        sut.close()
        assert_that([c[0] for c in manager.mock_calls], is_(['stop', 'cancel_read', 'close', 'join']))
        assert_that(sut.input.closed, is_(True))

    def test_close_joins_monitor_when_port_close_fails(self):
        ser = Mock()
        ser.close.side_effect = serial.SerialException("gone")
        sut = SerialConduit(ser)
        sut.monitor = Mock()
        assert_that(calling(sut.close), raises(serial.SerialException))
        sut.monitor.join.assert_called_once()

    def test_close_without_cancel_read(self):
        ser = Mock(spec=['close', 'is_open', 'port', 'read_until'])
        sut = SerialConduit(ser)
        sut.close()
        ser.close.assert_called_once()

    def test_context_manager_closes(self):
        sut = SerialConduit(Mock())
        sut.close = Mock()
        with sut as conduit:
            assert_that(conduit, is_(sut))
        sut.close.assert_called_once()


@patch('serial.serial_for_url')
class OpenSerialConduitTest(unittest.TestCase):

    def test_opens_exclusively_and_configures(self, serial_for_url):
        ser = serial_for_url.return_value
        sut = open_serial_conduit(PortDescriptor('/dev/ttyACM0'), 'owner', encoding='ascii', poll_interval=0.5)
        serial_for_url.assert_called_once_with('/dev/ttyACM0', do_not_open=True)
        ser.open.assert_called_once()
        assert_that(ser.exclusive, is_(True))
        assert_that(ser.timeout, is_(None))
        assert_that(ser.baudrate, is_(9600))
        assert_that(ser.bytesize, is_(8))
        assert_that(ser.stopbits, is_(1))
        assert_that(ser.parity, is_('N'))
        assert_that(sut, is_(instance_of(SerialConduit)))
        assert_that(sut.target, is_(ser))
        assert_that(sut.owner, is_('owner'))
        assert_that(sut.encoding, is_('ascii'))
        assert_that(sut.monitor.poll_interval, is_(0.5))

    def test_retries_until_available(self, serial_for_url):
        ser = serial_for_url.return_value
        ser.open.side_effect = [serial.SerialException(errno.EBUSY, 'busy'), None]
        open_serial_conduit(PortDescriptor('COM3'), 'owner', timeout_ms=5000, retry_period=0)
        assert_that(ser.open.call_count, is_(2))

    def test_busy_port(self, serial_for_url):
        ser = serial_for_url.return_value
        ser.open.side_effect = serial.SerialException('Could not exclusively lock port COM3: [Errno 11]')
        assert_that(calling(open_serial_conduit).with_args(PortDescriptor('COM3'), 'owner', timeout_ms=0),
                    raises(PortBusyError, 'COM3'))

    def test_open_timeout(self, serial_for_url):
        ser = serial_for_url.return_value
        ser.open.side_effect = serial.SerialException(errno.EACCES, 'permission denied')
        assert_that(calling(open_serial_conduit).with_args(PortDescriptor('COM3'), 'owner', timeout_ms=20,
                                                           retry_period=0.005),
                    raises(PortOpenTimeoutError))
        assert_that(ser.open.call_count > 1, is_(True))

    def test_unsupported_configuration_closes_port(self, serial_for_url):
        ser = serial_for_url.return_value
        type(ser).stopbits = PropertyMock(side_effect=ValueError("Not a valid stop bit size"))
        assert_that(calling(open_serial_conduit).with_args(PortDescriptor('COM3'), 'owner'),
                    raises(UnsupportedConfigurationError, 'COM3'))
        ser.close.assert_called_once()


class LoopbackSerialConduitTest(unittest.TestCase):
    """ exercises a real pyserial port using the loop:// transport, which reads back what is written. """

    def setUp(self):
        self.sut = open_serial_conduit(PortDescriptor('loop://'), 'test', encoding='utf-8')

    def tearDown(self):
        self.sut.close()

    def test_configured(self):
        ser = self.sut.target
        assert_that(self.sut.open, is_(True))
        assert_that(ser.baudrate, is_(DATA_RATE))
        assert_that((ser.bytesize, ser.stopbits, ser.parity), is_((8, 1, 'N')))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_written_lines_are_read_back(self):
        self.sut.output.write(b'one\r\ntwo\n')
        assert_that(self.sut.input.readline(), is_('one\r\n'))
        assert_that(self.sut.input.readline(), is_('two\n'))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_close_releases_port(self):
        self.sut.close()
        assert_that(self.sut.open, is_(False))
        assert_that(self.sut.monitor.listeners.handlers(), is_(empty()))
        assert_that(self.sut.monitor.background_thread, is_(None))
