import unittest
from unittest.mock import Mock, patch

from hamcrest import assert_that, is_, instance_of
from serial import SerialException

from sensornet.conduit.serial_conduit import SerialConduit
from sensornet.connection.serialconn import SerialConnection
from sensornet.gateway.config import GatewayConfig
from sensornet.support.events import EventRegister


class SerialConnectionTest(unittest.TestCase):

    def setUp(self):
        self.config = GatewayConfig(serial_port='/dev/ttyACM0', baud_rate=38400, startup_check_enabled=False)
        self.sut = SerialConnection(self.config, EventRegister())

    def test_endpoint(self):
        assert_that(self.sut.endpoint, is_('/dev/ttyACM0@38400'))

    @patch('sensornet.connection.serialconn.open_serial')
    def test_establish_opens_port(self, open_serial):
        conduit = self.sut._establish()
        open_serial.assert_called_once_with('/dev/ttyACM0', 38400)
        assert_that(conduit, is_(instance_of(SerialConduit)))

    @patch('sensornet.connection.serialconn.open_serial')
    def test_port_error_fails_connect(self, open_serial):
        open_serial.side_effect = SerialException("could not open port")
        assert_that(self.sut.connect(), is_(False))

    def test_hard_reset_resets_device(self):
        self.config.hard_reset = True
        conduit = Mock()
        self.sut._before_close(conduit, True)
        conduit.reset_device.assert_called_once_with()

    def test_hard_reset_disabled(self):
        conduit = Mock()
        self.sut._before_close(conduit, True)
        conduit.reset_device.assert_not_called()

    def test_no_reset_on_plain_disconnect(self):
        self.config.hard_reset = True
        conduit = Mock()
        self.sut._before_close(conduit, False)
        conduit.reset_device.assert_not_called()

    def test_reset_failure_is_logged(self):
        self.config.hard_reset = True
        conduit = Mock()
        conduit.reset_device.side_effect = SerialException("device gone")
        self.sut._before_close(conduit, True)
