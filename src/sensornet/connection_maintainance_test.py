from unittest import TestCase
from unittest.mock import Mock

import timeout_decorator
from hamcrest import assert_that, is_

from sensornet.connection.base import ConnectionState
from sensornet.connection_maintainance import MaintainedConnection, MaintainedConnectionLoop
from sensornet.protocol.io_test import debug_timeout


class MaintainedConnectionTest(TestCase):
    def setUp(self):
        self.connection = Mock()
        self.connection.state = ConnectionState.DISCONNECTED
        self.resource = "/dev/ttyUSB0"
        self.retry_strategy = Mock()
        self.logger = Mock()
        self.sut = MaintainedConnection(self.resource, self.connection, self.retry_strategy, self.logger)

    def test_constructor(self):
        sut = self.sut
        assert_that(sut.retry_strategy, is_(self.retry_strategy))
        assert_that(sut.resource, is_(self.resource))
        assert_that(sut.connection, is_(self.connection))

    def test_maintain_no_retry(self):
        self.retry_strategy.return_value = 5
        assert_that(self.sut.maintain(123), is_(False))
        self.retry_strategy.assert_called_with(123)
        self.connection.connect.assert_not_called()

    def test_maintain_needs_retry(self):
        self.retry_strategy.return_value = 0
        self.connection.connect.return_value = True
        assert_that(self.sut.maintain(123), is_(True))
        self.retry_strategy.assert_called_with(123)
        self.connection.connect.assert_called_once_with()

    def test_maintain_when_connected(self):
        self.connection.state = ConnectionState.CONNECTED
        assert_that(self.sut.maintain(123), is_(False))
        self.retry_strategy.assert_not_called()

    def test_maintain_when_connecting(self):
        self.connection.state = ConnectionState.CONNECTING
        assert_that(self.sut.maintain(123), is_(False))

    def test_open_success_logged(self):
        self.connection.connect.return_value = True
        assert_that(self.sut._open(), is_(True))
        self.logger.info.assert_called_once()

    def test_open_fail(self):
        self.connection.connect.return_value = False
        assert_that(self.sut._open(), is_(False))
        self.logger.info.assert_not_called()
        self.logger.debug.assert_called_once()

    def test_close_connected(self):
        self.connection.connected = True
        assert_that(self.sut._close(), is_(True))
        self.connection.disconnect.assert_called_once_with()

    def test_close_disconnected(self):
        self.connection.connected = False
        assert_that(self.sut._close(), is_(False))
        self.connection.disconnect.assert_called_once_with()


class MaintainedConnectionLoopTest(TestCase):

    def setUp(self):
        self.maintained = Mock()
        self.maintained.resource = "gateway"
        self.sut = MaintainedConnectionLoop(self.maintained, poll_period=0.01)

    def test_loop_maintains_then_waits(self):
        self.sut.wait = Mock()
        self.sut.loop()
        self.maintained.maintain.assert_called_once_with()
        self.sut.wait.assert_called_once_with(0.01)

    def test_loop_waits_after_failure(self):
        self.sut.wait = Mock()
        self.maintained.maintain.side_effect = ValueError()
        with self.assertRaises(ValueError):
            self.sut.loop()
        self.sut.wait.assert_called_once_with(0.01)

    @timeout_decorator.timeout(debug_timeout(5))
    def test_stop_closes_connection(self):
        self.sut.start()
        self.sut.stop()
        self.maintained._close.assert_called_once_with()
