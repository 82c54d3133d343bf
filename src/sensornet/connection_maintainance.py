import logging
import time

from sensornet.connection.base import Connection, ConnectionState
from sensornet.support.loop import AsyncLoop
from sensornet.support.retry_strategy import RetryStrategy

logger = logging.getLogger(__name__)

# how often the maintenance loop checks the connection, in seconds
POLL_PERIOD = 1.0


class MaintainedConnection:
    """
    Reconnects to the gateway device after the link is lost, or was never made.

    Each call to maintain() looks at the connection state and, while disconnected, reopens the connection
    once the retry strategy says the reconnect period has passed. A connection that is connecting or connected
    is left alone. MaintainedConnectionLoop calls maintain() from a background thread.

    :param resource: names the endpoint in log messages
    :param retry_strategy: spaces out reconnection attempts
    """

    def __init__(self, resource, connection: Connection, retry_strategy: RetryStrategy, log=logger):
        self.resource = resource
        self.connection = connection
        self.retry_strategy = retry_strategy
        self.logger = log

    def _open(self):
        """
        attempts to establish the connection. A failure is logged by the connection, not raised.
        :return: True if the connection was established
        """
        connected = self.connection.connect()
        if connected:
            self.logger.info("gateway connected: %s" % self.resource)
        else:
            self.logger.debug("unable to connect to gateway %s" % self.resource)
        return connected

    def _close(self):
        """
        Closes the connection.
        :return: True if the connection was connected
        """
        was_connected = self.connection.connected
        self.connection.disconnect()
        if was_connected:
            self.logger.info("gateway disconnected: %s" % self.resource)
        return was_connected

    def maintain(self, current_time=None):
        """
        Reopens the connection if it is down and a retry is due.
        :param current_time: the time in seconds, defaults to now
        :return: True if a connection attempt was made
        """
        if self.connection.state is not ConnectionState.DISCONNECTED:
            return False
        delay = self.retry_strategy(time.time() if current_time is None else current_time)
        will_try = delay <= 0
        if will_try:
            self._open()
        return will_try


class MaintainedConnectionLoop(AsyncLoop):
    """
    Polls a MaintainedConnection every poll_period seconds. The connection is closed when the loop stops.
    """

    def __init__(self, maintained_connection: MaintainedConnection, poll_period=POLL_PERIOD):
        super().__init__(name="maintain %s" % maintained_connection.resource)
        self.maintained_connection = maintained_connection
        self.poll_period = poll_period

    def loop(self):
        try:
            self.maintained_connection.maintain()
        finally:
            self.wait(self.poll_period)

    def shutdown(self):
        self.maintained_connection._close()
