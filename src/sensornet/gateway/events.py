"""
The events published on the gateway's event register.

Events identify nodes, children and variables by id and carry copies of the values involved,
so a listener never holds on to registry objects that may be merged or removed later.
"""
from enum import Enum

from sensornet.support.mixins import CommonEqualityMixin, StringerMixin


class GatewayEvent(CommonEqualityMixin, StringerMixin):
    """ base class for gateway events. """


class MessageReceivedEvent(GatewayEvent):
    """ A message was read from the connection. """
    def __init__(self, message):
        self.message = message


class AckNotReceivedEvent(GatewayEvent):
    """ An outgoing message that asked for an acknowledgement was not acknowledged. """
    def __init__(self, message):
        self.message = message


class ConnectionStatusEvent(GatewayEvent):
    def __init__(self, connected):
        self.connected = connected


class NodeDiscoveredEvent(GatewayEvent):
    """ A node, or a child of a node, was seen for the first time. child_id is None for a bare node. """
    def __init__(self, node_id, child_id=None, presentation_code=None):
        self.node_id = node_id
        self.child_id = child_id
        self.presentation_code = presentation_code


class NodeUpdateType(Enum):
    UPDATE = 'update'
    REVERT = 'revert'
    BATTERY = 'battery'


class NodeUpdateEvent(GatewayEvent):
    """
    A variable value changed (UPDATE), was reverted (REVERT) or the node reported its battery level (BATTERY).
    For battery updates child_id and subtype are None and value is the battery percentage.
    """
    def __init__(self, update_type, node_id, child_id=None, subtype=None, value=None, last_update=None):
        self.update_type = update_type
        self.node_id = node_id
        self.child_id = child_id
        self.subtype = subtype
        self.value = value
        self.last_update = last_update


class NodeReachEvent(GatewayEvent):
    def __init__(self, node_id, reachable):
        self.node_id = node_id
        self.reachable = reachable


class NodeIdReservedEvent(GatewayEvent):
    def __init__(self, node_id):
        self.node_id = node_id
