import logging
import threading
import time

from sensornet.connection.base import GatewayConnectionError
from sensornet.gateway.events import MessageReceivedEvent
from sensornet.protocol.message import heartbeat_request, version_request
from sensornet.support.loop import AsyncLoop

logger = logging.getLogger(__name__)

# seconds to wait for responses to the probes sent in a check
SEND_DELAY = 3.0


class SanityCheckLoop(AsyncLoop):
    """ runs the checks every interval seconds, the first one interval seconds after starting. """

    def __init__(self, checker, interval):
        super().__init__(name="network sanity checker")
        self.checker = checker
        self.interval = interval

    def loop(self):
        if not self.wait(self.interval):
            self.checker.run()


class NetworkSanityChecker:
    """
    Periodically checks that the gateway device and the nodes on the network are alive.

    Each run probes the gateway device with a version request. When the device has not answered
    the configured number of consecutive probes, the connection is dropped with a hard reset. Otherwise,
    nodes are probed with heartbeat requests (when enabled), and nodes that expect regular updates are
    checked for silence. Nodes are marked unreachable through the gateway, which notifies listeners.

    The checker listens on the event register only while a run is in progress.
    """

    def __init__(self, gateway, events, connection, config, response_delay=SEND_DELAY, clock=time.time):
        self.gateway = gateway
        self.events = events
        self.connection = connection
        self.interval = config.sanity_check_interval * 60
        self.max_attempts = config.sanity_check_fail_attempts
        self.send_heartbeat = config.heartbeat_enabled
        self.max_heartbeat_attempts = config.heartbeat_fail_attempts
        self.response_delay = response_delay
        self.clock = clock
        self.missed_version_responses = 0
        self._version_received = threading.Event()
        self._heartbeat_lock = threading.Lock()
        self._heartbeat_responses = set()
        self._missed_heartbeats = {}
        self._loop_lock = threading.Lock()
        self._loop = None
        self._stop_event = threading.Event()

    def start(self):
        with self._loop_lock:
            if self._loop is not None:
                logger.warning("network sanity checker is already running")
                return
            self.reset()
            self._stop_event = threading.Event()
            self._loop = SanityCheckLoop(self, self.interval)
            self._loop.start()
        logger.info("network sanity checker started, checking every %d minutes" % (self.interval // 60))

    def stop(self):
        with self._loop_lock:
            loop, self._loop = self._loop, None
            self._stop_event.set()
            # wakes a run waiting on the version probe
            self._version_received.set()
        if loop is not None:
            loop.stop()
            logger.info("network sanity checker stopped")

    @property
    def running(self):
        return self._loop is not None

    def reset(self):
        self.missed_version_responses = 0
        self._version_received.clear()
        with self._heartbeat_lock:
            self._heartbeat_responses.clear()
            self._missed_heartbeats.clear()

    def missed_heartbeats(self, node_id):
        with self._heartbeat_lock:
            return self._missed_heartbeats.get(node_id, 0)

    def run(self):
        self.events.add(self._on_event)
        try:
            if self.check_connection_status():
                if self.send_heartbeat:
                    logger.debug("sending heartbeat requests")
                    self.send_heartbeat_request()
                    if self._stop_event.wait(self.response_delay):
                        return
                    self.check_heartbeat_responses()
                self.check_expected_update()
        finally:
            self.events.remove(self._on_event)

    def _on_event(self, event):
        if not isinstance(event, MessageReceivedEvent):
            return
        message = event.message
        if message.is_version_response():
            self._version_received.set()
        elif message.is_heartbeat_response():
            with self._heartbeat_lock:
                self._heartbeat_responses.add(message.node_id)

    def _send(self, message):
        try:
            self.gateway.send_message(message)
        except GatewayConnectionError as e:
            logger.warning("cannot send %r: %s" % (message, e))

    def check_connection_status(self):
        """
        Probes the gateway device.
        :return: False if the run should not go on, either because the device is judged dead and the
            connection was dropped or because the checker was stopped
        """
        self._version_received.clear()
        if self._stop_event.is_set():
            return False
        self._send(version_request())
        received = self._version_received.wait(self.response_delay)
        if self._stop_event.is_set():
            logger.debug("network sanity checker stopped during the version check")
            return False
        if received:
            logger.debug("network sanity check passed")
            self.missed_version_responses = 0
            return True
        self.missed_version_responses += 1
        remaining = self.max_attempts - self.missed_version_responses
        if remaining <= 0:
            logger.error("gateway did not answer %d version requests, disconnecting" % self.missed_version_responses)
            self.connection.request_disconnection(True)
            return False
        logger.warning("no version response from the gateway, %d attempts left before disconnecting" % remaining)
        return True

    def send_heartbeat_request(self):
        with self._heartbeat_lock:
            self._heartbeat_responses.clear()
        for node_id in self.gateway.given_ids():
            self._send(heartbeat_request(node_id))

    def check_heartbeat_responses(self):
        for node_id in self.gateway.given_ids():
            node = self.gateway.get_node(node_id)
            if node is None or not node.config.request_heartbeat_response:
                continue
            with self._heartbeat_lock:
                responded = node_id in self._heartbeat_responses
                if responded:
                    self._missed_heartbeats.pop(node_id, None)
                    missed = 0
                else:
                    missed = min(self._missed_heartbeats.get(node_id, 0) + 1, self.max_heartbeat_attempts)
                    self._missed_heartbeats[node_id] = missed
            if responded:
                if self.gateway.set_reachable(node_id, True):
                    logger.info("node %s answered a heartbeat request, reachable again" % node_id)
            elif missed >= self.max_heartbeat_attempts:
                if self.gateway.set_reachable(node_id, False):
                    logger.warning("node %s does not answer heartbeat requests, marking unreachable" % node_id)
            else:
                logger.debug("node %s missed a heartbeat response (%d of %d)" %
                             (node_id, missed, self.max_heartbeat_attempts))

    def check_expected_update(self):
        now = self.clock()
        for node_id in self.gateway.given_ids():
            node = self.gateway.get_node(node_id)
            if node is None:
                continue
            timeout = node.config.expect_update_timeout
            if timeout <= 0:
                continue
            if node.config.request_heartbeat_response:
                logger.warning("node %s is probed by heartbeat, its expected update timeout is ignored" % node_id)
                continue
            silence = now - node.last_update
            logger.debug("node %s expects an update every %d minutes, silent for %.1f" % (node_id, timeout,
                                                                                         silence / 60))
            if silence > timeout * 60 and self.gateway.set_reachable(node_id, False):
                logger.warning("node %s did not send an expected update" % node_id)
