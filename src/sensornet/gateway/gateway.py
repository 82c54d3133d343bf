import logging
import threading
import time

from sensornet.connection import create_connection
from sensornet.connection.base import Connection, GatewayConnectionError
from sensornet.connection_maintainance import MaintainedConnection, MaintainedConnectionLoop
from sensornet.gateway.config import GatewayConfig
from sensornet.gateway.events import AckNotReceivedEvent, ConnectionStatusEvent, MessageReceivedEvent, \
    NodeDiscoveredEvent, NodeIdReservedEvent, NodeReachEvent, NodeUpdateEvent, NodeUpdateType
from sensornet.gateway.sanity import NetworkSanityChecker
from sensornet.protocol.message import Direction, Internal, Message, MessageType, RESERVED_ID
from sensornet.sensors.child import from_presentation, is_valid_child_id
from sensornet.sensors.node import MAX_ASSIGNABLE_ID, MIN_ASSIGNABLE_ID, Node, is_valid_node_id
from sensornet.support.events import EventRegister
from sensornet.support.retry_strategy import PeriodRetryStrategy

logger = logging.getLogger(__name__)


class NoMoreIdsError(Exception):
    """ Raised when every assignable node id is taken. """


class GatewayStateError(Exception):
    """ Raised when the gateway is asked to do something its lifecycle state does not allow. """


def local_epoch_seconds(now):
    """ seconds since the epoch, shifted by the local time zone offset, as sensor nodes keep local time. """
    return int(now + time.localtime(now).tm_gmtoff)


class Gateway:
    """
    Coordinates the sensor network: owns the node registry and the connection to the gateway device,
    routes incoming and outgoing messages and hands out node ids.

    Incoming messages, missing acknowledgements and connection changes arrive as events on the
    event register. Listeners added to the register receive the node events the gateway fires.
    """

    def __init__(self, config: GatewayConfig=None, nodes=None, events: EventRegister=None, clock=time.time):
        """
        :param nodes: nodes already known, for example from the id cache
        :param clock: returns the current time in seconds
        """
        self.config = config if config is not None else GatewayConfig()
        self.events = events if events is not None else EventRegister()
        self.clock = clock
        self.connection = None
        self.sanity_checker = None
        self.maintainer = None
        self._lock = threading.RLock()
        self._nodes = {}
        for node in nodes or ():
            self._nodes[node.node_id] = node

    def setup(self, connection: Connection=None, mqtt_client=None):
        """
        Creates the connection for the configured gateway type, unless one is given.
        :param mqtt_client: the connected paho client used by MQTT gateways
        """
        if self.connection is not None:
            raise GatewayStateError("gateway connection is already set up")
        self.connection = connection if connection is not None else \
            create_connection(self.config, self.events, mqtt_client)
        return self.connection

    def startup(self):
        """ Starts maintaining the connection. The connection is opened on the maintenance thread. """
        if self.connection is None:
            raise GatewayStateError("cannot start a gateway without a connection")
        self.events.add(self._on_event)
        if self.config.sanity_check_enabled:
            self.sanity_checker = NetworkSanityChecker(self, self.events, self.connection, self.config,
                                                       clock=self.clock)
        maintained = MaintainedConnection(self.connection.endpoint, self.connection,
                                          PeriodRetryStrategy(self.config.reconnect_period))
        self.maintainer = MaintainedConnectionLoop(maintained)
        self.maintainer.start()

    def shutdown(self):
        if self.sanity_checker is not None:
            self.sanity_checker.stop()
        if self.maintainer is not None:
            self.maintainer.stop()
            self.maintainer = None
        if self.connection is not None:
            self.connection.disconnect()
            self.connection = None
        self.events.clear()

    def _on_event(self, event):
        if isinstance(event, MessageReceivedEvent):
            self.message_received(event.message)
        elif isinstance(event, AckNotReceivedEvent):
            self.ack_not_received(event.message)
        elif isinstance(event, ConnectionStatusEvent):
            self.connection_status_update(event.connected)

    def add_event_listener(self, listener):
        self.events.add(listener)

    def remove_event_listener(self, listener):
        self.events.remove(listener)

    def is_event_listener_registered(self, listener):
        return listener in self.events

    # registry

    def get_node(self, node_id) -> Node:
        with self._lock:
            return self._nodes.get(node_id)

    def get_child(self, node_id, child_id):
        node = self.get_node(node_id)
        return node.get_child(child_id) if node is not None else None

    def get_variable(self, node_id, child_id, subtype):
        child = self.get_child(node_id, child_id)
        if child is None:
            logger.warning("cannot get variable %s, node %s has no child %s" % (subtype, node_id, child_id))
            return None
        return child.get_variable(subtype)

    def given_ids(self):
        with self._lock:
            return sorted(self._nodes)

    def add_node(self, node: Node, merge_if_exist=False):
        """
        Registers a node. An existing node with the same id is replaced, or when merge_if_exist is set,
        the new node is merged into it.
        """
        with self._lock:
            existing = self._nodes.get(node.node_id)
            if existing is not None and merge_if_exist:
                logger.debug("merging node %s into %r" % (node.node_id, existing))
                existing.merge(node)
            else:
                if existing is not None:
                    logger.warning("replacing node %s, its previous state is lost" % node.node_id)
                logger.debug("adding node %s" % node.node_id)
                self._nodes[node.node_id] = node

    def remove_node(self, node_id):
        with self._lock:
            return self._nodes.pop(node_id, None)

    def set_reachable(self, node_id, reachable):
        """
        Sets the reachability of a node and notifies listeners.
        :return: True if the flag changed
        """
        with self._lock:
            node = self._nodes.get(node_id)
            if node is None or node.reachable == reachable:
                return False
            node.reachable = reachable
        self.events.fire(NodeReachEvent(node_id, reachable))
        return True

    def reserve_id(self):
        """
        Reserves the lowest free node id and registers a bare node under it.
        :raises NoMoreIdsError: when every id is taken
        """
        with self._lock:
            for node_id in range(MIN_ASSIGNABLE_ID, MAX_ASSIGNABLE_ID + 1):
                if node_id not in self._nodes:
                    self._nodes[node_id] = Node(node_id)
                    break
            else:
                raise NoMoreIdsError("all node ids from %d to %d are taken" % (MIN_ASSIGNABLE_ID, MAX_ASSIGNABLE_ID))
        self.events.fire(NodeIdReservedEvent(node_id))
        return node_id

    # outgoing

    def send_message(self, message: Message):
        """
        Sends a message to the network. A SET updates the local variable first, provided the node is reachable.
        Messages are sent whether or not the node is reachable.
        """
        self._handle_outgoing(message)
        if self.connection is None:
            logger.warning("no connection, cannot send %r" % message)
            return
        self.connection.send_message(message)

    def _handle_outgoing(self, message):
        if not (is_valid_node_id(message.node_id) and is_valid_child_id(message.child_id)):
            return
        if message.incoming:
            logger.warning("cannot send %r, it is an incoming message" % message)
            return
        if message.is_set():
            self._handle_set_req(message, dispatch_update=False)

    def _reply(self, message):
        if self.connection is None:
            logger.warning("no connection, cannot reply %r" % message)
            return
        try:
            self.connection.send_message(message)
        except GatewayConnectionError as e:
            logger.warning("cannot reply %r: %s" % (message, e))

    def ack_not_received(self, message):
        """ Reverts the variable an unacknowledged SET was meant to change, if it has a previous value. """
        if not (is_valid_node_id(message.node_id) and is_valid_child_id(message.child_id)) \
                or not message.is_set_or_req():
            return
        node = self.get_node(message.node_id)
        if node is None:
            return
        child = node.get_child(message.child_id)
        if child is None:
            logger.warning("cannot handle missing ack for node %s, no child %s" % (message.node_id, message.child_id))
            return
        variable = child.get_variable(message.subtype)
        if variable is None:
            logger.warning("cannot handle missing ack, variable %s not present" % message.subtype)
            return
        if not variable.is_revertible():
            logger.error("cannot revert variable %s, there is no previous value" % variable.name)
            return
        variable.revert_value()
        logger.debug("reverted %s on node %s child %s" % (variable.name, node.node_id, child.child_id))
        value, last_update = variable.snapshot()
        self.events.fire(NodeUpdateEvent(NodeUpdateType.REVERT, node.node_id, child.child_id, variable.subtype,
                                         value, last_update))

    # incoming

    def message_received(self, message: Message):
        if not self._handle_incoming(message):
            self._handle_special(message)

    def connection_status_update(self, connected):
        """ Starts or stops the sanity checker and marks every node as reachable or not with the link. """
        if self.sanity_checker is not None:
            if connected:
                self.sanity_checker.start()
            else:
                self.sanity_checker.stop()
        logger.debug("connection status update, connected: %s" % connected)
        with self._lock:
            node_ids = sorted(self._nodes)
            for node_id in node_ids:
                self._nodes[node_id].reachable = connected
        for node_id in node_ids:
            self.events.fire(NodeReachEvent(node_id, connected))

    def _handle_incoming(self, message):
        if not (is_valid_node_id(message.node_id) and is_valid_child_id(message.child_id)):
            return False
        if not message.incoming:
            logger.warning("cannot handle %r, it is an outgoing message" % message)
            return False
        self._update_reachable(message)
        self._update_last_update(message)
        if message.is_internal():
            return self._handle_internal(message)
        elif message.is_set_or_req():
            return self._handle_set_req(message, dispatch_update=True)
        elif message.msg_type is MessageType.PRESENTATION:
            return self._handle_presentation(message)
        return self._is_new_device(message)

    def _update_reachable(self, message):
        if self.set_reachable(message.node_id, True):
            logger.info("node %s is reachable again" % message.node_id)

    def _update_last_update(self, message):
        now = self.clock()
        with self._lock:
            node = self._nodes.get(message.node_id)
            if node is None:
                return
            node.last_update = now
            child = node.get_child(message.child_id)
            if child is None:
                return
            child.last_update = now
            variable = child.get_variable(message.subtype)
            if variable is not None:
                variable.last_update = now

    def _is_new_device(self, message):
        with self._lock:
            if message.node_id in self._nodes:
                return False
            self._nodes[message.node_id] = Node(message.node_id)
        logger.debug("node %s discovered" % message.node_id)
        self.events.fire(NodeDiscoveredEvent(message.node_id))
        return True

    def _handle_presentation(self, message):
        with self._lock:
            node = self._nodes.get(message.node_id)
            if node is not None and node.get_child(message.child_id) is not None:
                logger.debug("child %s of node %s is already known" % (message.child_id, message.node_id))
                return False
            child = from_presentation(message.subtype, message.child_id)
            if child is None:
                return False
            if node is None:
                node = self._nodes[message.node_id] = Node(message.node_id)
            node.add_child(child)
        logger.info("discovered %r on node %s" % (child, message.node_id))
        self.events.fire(NodeDiscoveredEvent(message.node_id, child.child_id, child.presentation_code))
        return True

    def _handle_set_req(self, message, dispatch_update):
        update = reply = None
        with self._lock:
            node = self._nodes.get(message.node_id)
            if node is None:
                return False
            child = node.get_child(message.child_id)
            if child is None:
                logger.warning("node %s has no child %s, cannot handle %r" % (message.node_id, message.child_id,
                                                                           message))
                return False
            variable = child.get_variable(message.subtype)
            if variable is None:
                logger.warning("variable %s not present on node %s child %s" % (message.subtype, message.node_id,
                                                                                message.child_id))
                return False
            if message.is_set():
                if node.reachable:
                    variable.set_value(message.payload, self.clock())
                    if dispatch_update:
                        value, last_update = variable.snapshot()
                        update = NodeUpdateEvent(NodeUpdateType.UPDATE, node.node_id, child.child_id,
                                                 variable.subtype, value, last_update)
                else:
                    logger.warning("node %s is not reachable, not setting %s" % (node.node_id, variable.name))
            else:
                value = variable.value
                reply = message.copy(msg_type=MessageType.SET, payload=value if value is not None else '0',
                                     direction=Direction.OUTGOING)
        if update is not None:
            self.events.fire(update)
        if reply is not None:
            logger.debug("answering request with %r" % reply)
            self._reply(reply)
        return True

    def _handle_internal(self, message):
        if not message.is_internal(Internal.I_BATTERY_LEVEL) or self.get_node(message.node_id) is None:
            return False
        try:
            percent = int(message.payload)
        except ValueError:
            logger.warning("invalid battery level '%s' from node %s" % (message.payload, message.node_id))
            return False
        with self._lock:
            node = self._nodes.get(message.node_id)
            if node is None:
                return False
            node.battery_percent = percent
        logger.debug("battery of node %s is %d%%" % (message.node_id, percent))
        self.events.fire(NodeUpdateEvent(NodeUpdateType.BATTERY, message.node_id, value=percent,
                                         last_update=node.last_update))
        return True

    def _handle_special(self, message):
        if message.is_config_request():
            self._answer_config_request(message)
        elif message.is_time_request():
            self._answer_time_request(message)
        elif message.is_id_request():
            self._answer_id_request()

    def _answer_config_request(self, message):
        unit = 'I' if self.config.imperial else 'M'
        logger.debug("config request from node %s, answering %s" % (message.node_id, unit))
        self._reply(Message(message.node_id, message.child_id, MessageType.INTERNAL, 0, Internal.I_CONFIG, unit))

    def _answer_time_request(self, message):
        logger.info("time request from node %s" % message.node_id)
        now = str(local_epoch_seconds(self.clock()))
        self._reply(Message(message.node_id, message.child_id, MessageType.INTERNAL, 0, Internal.I_TIME, now))

    def _answer_id_request(self):
        logger.info("id request received")
        try:
            node_id = self.reserve_id()
        except NoMoreIdsError as e:
            logger.error("%s, try cleaning the id cache" % e)
            return
        logger.info("new node requested an id, assigned %d" % node_id)
        self._reply(Message(RESERVED_ID, RESERVED_ID, MessageType.INTERNAL, 0, Internal.I_ID_RESPONSE, str(node_id)))
