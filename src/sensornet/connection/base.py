import logging
import queue
import threading
import time
from abc import abstractmethod
from enum import Enum

from sensornet.conduit.base import Conduit
from sensornet.gateway.events import AckNotReceivedEvent, ConnectionStatusEvent, MessageReceivedEvent
from sensornet.protocol.message import ENCODING, ParseError, parse, serialize, version_request
from sensornet.support.loop import AsyncLoop
from sensornet.support.retry_strategy import ScheduledRetryStrategy

logger = logging.getLogger(__name__)

# seconds to wait before each resend of a message that was not acknowledged
ACK_RETRY_DELAYS = (0.1, 0.5, 1, 2, 2)

# seconds to wait for the version response when checking a new connection
STARTUP_CHECK_TIMEOUT = 5.0

# how often the writer looks for unacknowledged messages when the queue is idle
WRITER_POLL = 0.05

READER_JOIN_TIMEOUT = 2.0


class GatewayConnectionError(Exception):
    """ Indicates an error condition with a connection. """


class ConnectionNotConnectedError(GatewayConnectionError):
    """ Indicates a connection is in the disconnected state when a connection is required. """


class ConnectionState(Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'


class PendingAck:
    """ An outgoing message waiting for its acknowledgement. """

    def __init__(self, message, due):
        self.message = message
        self.due = due
        self.retries = 0

    def __repr__(self):
        return "PendingAck(%r, retries=%d)" % (self.message, self.retries)


class Connection:
    """
    The link to the gateway device.

    A connection opens a conduit to the device and runs one reader loop and one writer loop over it.
    The reader parses lines from the conduit and publishes them on the event register, the writer
    drains the outbound queue. Subclasses provide the transport by implementing `_establish`.

    Fires ConnectionStatusEvent when the connection is established and when it is lost.
    """

    def __init__(self, config, events, clock=time.time):
        """
        :param config: the gateway configuration. send_delay and startup_check_enabled are used here,
            transports read their own settings.
        :param events: the event register that receives incoming messages and connection events
        :param clock: returns the current time in seconds
        """
        self.config = config
        self.events = events
        self.clock = clock
        self.state = ConnectionState.DISCONNECTED
        self.ack_retry = ScheduledRetryStrategy(ACK_RETRY_DELAYS)
        self.startup_timeout = STARTUP_CHECK_TIMEOUT
        self._lock = threading.RLock()
        self._conduit = None
        self._reader = None
        self._writer = None
        self._outbound = queue.Queue()
        self._pending_lock = threading.Lock()
        self._pending = []
        self._parked = {}
        self._version_received = threading.Event()

    @property
    @abstractmethod
    def endpoint(self):
        """ a description of what this connection connects to, for logging """
        raise NotImplementedError

    @abstractmethod
    def _establish(self) -> Conduit:
        """ Template method for subclasses to open the transport.
            If the transport cannot be opened, GatewayConnectionError or OSError should be raised.
        """
        raise NotImplementedError

    def _before_close(self, conduit, hard_reset):
        """ Template method called after the loops are signalled to stop and before the conduit is closed. """

    @property
    def connected(self):
        return self.state is ConnectionState.CONNECTED

    @property
    def conduit(self) -> Conduit:
        """
        Retrieves the conduit for this connection.
        raises ConnectionNotConnectedError if not connected
        """
        conduit = self._conduit
        if conduit is None:
            raise ConnectionNotConnectedError("%s is not connected" % self.endpoint)
        return conduit

    def connect(self) -> bool:
        """
        Opens the transport and starts the reader and writer loops.
        When the startup check is enabled the device must answer a version request before the
        connection is considered established.
        :return: True if the connection was established
        """
        with self._lock:
            if self.state is not ConnectionState.DISCONNECTED:
                return self.connected
            self.state = ConnectionState.CONNECTING
        logger.debug("connecting to %s" % self.endpoint)
        try:
            conduit = self._establish()
        except (GatewayConnectionError, OSError) as e:
            logger.error("unable to connect to %s: %s" % (self.endpoint, e))
            with self._lock:
                self.state = ConnectionState.DISCONNECTED
            return False

        with self._lock:
            self._conduit = conduit
            self._outbound = queue.Queue()
            self._version_received.clear()
            self._reader = ConnectionReader(self, conduit)
            self._writer = ConnectionWriter(self, conduit)
            self._reader.start()
            self._writer.start()

        if getattr(self.config, 'startup_check_enabled', False) and not self._check_gateway():
            logger.error("no version response from %s, disconnecting" % self.endpoint)
            self.disconnect()
            return False

        with self._lock:
            if self._conduit is not conduit:
                # lost while checking
                return False
            self.state = ConnectionState.CONNECTED
        logger.info("connected to %s" % self.endpoint)
        self.events.fire(ConnectionStatusEvent(True))
        return True

    def _check_gateway(self):
        self._enqueue(version_request())
        return self._version_received.wait(self.startup_timeout)

    def send_message(self, message):
        """ queues a message for the writer. """
        if self.state is not ConnectionState.CONNECTED:
            raise ConnectionNotConnectedError("cannot send %r, %s is not connected" % (message, self.endpoint))
        self._enqueue(message)

    def _enqueue(self, message):
        logger.debug("queueing %r" % message)
        self._outbound.put(message)

    def request_disconnection(self, hard_reset=False):
        """
        Asks for the link to be dropped, typically because it is judged dead. With hard_reset the
        transport may also reset the gateway device.
        """
        logger.warning("disconnection requested for %s (hard reset: %s)" % (self.endpoint, hard_reset))
        self.disconnect(hard_reset)

    def disconnect(self, hard_reset=False):
        """ Stops the loops and closes the transport. Calling disconnect when disconnected does nothing. """
        with self._lock:
            conduit, reader, writer = self._conduit, self._reader, self._writer
            if conduit is None:
                self.state = ConnectionState.DISCONNECTED
                return
            was_connected = self.state is ConnectionState.CONNECTED
            self._conduit = self._reader = self._writer = None
            self.state = ConnectionState.DISCONNECTED

        writer.stop()
        reader.signal_stop()
        try:
            self._before_close(conduit, hard_reset)
        finally:
            try:
                conduit.close()
            except OSError as e:
                logger.warning("error closing %s: %s" % (self.endpoint, e))
            reader.stop(READER_JOIN_TIMEOUT)
            with self._pending_lock:
                self._pending = []
                self._parked = {}
        logger.info("disconnected from %s" % self.endpoint)
        if was_connected:
            self.events.fire(ConnectionStatusEvent(False))

    def _message_received(self, message):
        """ called by the reader for each parsed message. """
        if message.ack and self._acknowledged(message):
            return
        if message.is_version_response():
            self._version_received.set()
        if message.is_wake_up():
            self._wake_up(message.node_id)
        self.events.fire(MessageReceivedEvent(message))

    def _acknowledged(self, message):
        with self._pending_lock:
            for pending in self._pending:
                if pending.message.matches(message):
                    self._pending.remove(pending)
                    logger.debug("acknowledged %r" % pending.message)
                    return True
        return False

    def _track_ack(self, message):
        delay = self.ack_retry(0)
        with self._pending_lock:
            self._pending.append(PendingAck(message, self.clock() + delay))

    def pending_acks(self):
        with self._pending_lock:
            return tuple(p.message for p in self._pending)

    def _due_resends(self):
        """
        Collects the unacknowledged messages that should be sent again and drops those that
        have used up their retries.
        :return: the messages to resend
        """
        now = self.clock()
        resend, expired = [], []
        with self._pending_lock:
            for pending in list(self._pending):
                if pending.due > now:
                    continue
                if pending.retries >= self.ack_retry.max_attempts:
                    self._pending.remove(pending)
                    expired.append(pending.message)
                else:
                    pending.retries += 1
                    delay = self.ack_retry(pending.retries)
                    pending.due = now + (delay if delay is not None else ACK_RETRY_DELAYS[-1])
                    resend.append(pending.message)
        for message in expired:
            self._ack_not_received(message)
        return resend

    def _ack_not_received(self, message):
        if message.revert:
            logger.warning("no acknowledgement for %r, reverting" % message)
            self.events.fire(AckNotReceivedEvent(message))
        else:
            logger.warning("no acknowledgement for %r" % message)

    def _park(self, message):
        """ holds a message for a sleeping node until the node wakes up. """
        logger.debug("holding %r until node %d wakes up" % (message, message.node_id))
        with self._pending_lock:
            self._parked.setdefault(message.node_id, []).append(message)

    def parked_messages(self, node_id):
        with self._pending_lock:
            return tuple(self._parked.get(node_id, ()))

    def _wake_up(self, node_id):
        with self._pending_lock:
            parked = self._parked.pop(node_id, [])
        for message in parked:
            logger.debug("node %d awake, sending %r" % (node_id, message))
            self._enqueue(message.copy(smart_sleep=False))

    def __str__(self):
        return "%s(%s, %s)" % (type(self).__name__, self.endpoint, self.state.value)


class ConnectionReader(AsyncLoop):
    """
    Reads lines from the conduit and hands each parsed message to the connection.
    Partial reads (serial read timeouts) are accumulated until the line terminator arrives.
    """

    def __init__(self, connection: Connection, conduit: Conduit):
        super().__init__(name="reader %s" % connection.endpoint)
        self.connection = connection
        self.conduit = conduit
        self._buffer = bytearray()

    def loop(self):
        try:
            data = self.conduit.input.readline()
        except (OSError, ValueError) as e:
            if self.running():
                logger.error("error reading from %s: %s" % (self.connection.endpoint, e))
                self._lost()
            return
        if not data:
            if self.conduit.closes_on_empty_read and self.running():
                logger.error("%s closed the connection" % self.connection.endpoint)
                self._lost()
            return
        self._buffer.extend(data)
        if self._buffer.endswith(b'\n'):
            line = bytes(self._buffer)
            self._buffer.clear()
            self._process(line)

    def _process(self, line):
        try:
            message = parse(line)
        except ParseError as e:
            logger.warning("dropping line %r: %s" % (line, e))
            return
        logger.debug("received %r" % message)
        self.connection._message_received(message)

    def _lost(self):
        self.signal_stop()
        self.connection.request_disconnection(False)


class ConnectionWriter(AsyncLoop):
    """
    Writes queued messages to the conduit, pausing send_delay milliseconds after each write.
    Messages for sleeping children are parked, messages asking for an acknowledgement are tracked and resent.
    """

    def __init__(self, connection: Connection, conduit: Conduit):
        super().__init__(name="writer %s" % connection.endpoint)
        self.connection = connection
        self.conduit = conduit

    @property
    def send_delay(self):
        return getattr(self.connection.config, 'send_delay', 0) / 1000.0

    def loop(self):
        try:
            message = self.connection._outbound.get(timeout=WRITER_POLL)
        except queue.Empty:
            message = None
        if message is not None:
            if message.smart_sleep:
                self.connection._park(message)
            else:
                self._write(message)
                if message.ack:
                    self.connection._track_ack(message)
        for resend in self.connection._due_resends():
            if not self.running():
                break
            logger.debug("resending %r" % resend)
            self._write(resend)

    def _write(self, message):
        try:
            out = self.conduit.output
            out.write(serialize(message).encode(ENCODING, errors='replace'))
            out.flush()
        except (OSError, ValueError) as e:
            if self.running():
                logger.error("error writing to %s: %s" % (self.connection.endpoint, e))
                self.signal_stop()
                self.connection.request_disconnection(False)
            return
        logger.debug("sent %r" % message)
        self.wait(self.send_delay)
