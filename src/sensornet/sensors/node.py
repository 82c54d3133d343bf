import logging
import threading

from sensornet.protocol.message import GATEWAY_NODE_ID, Message, MessageType, RESERVED_ID
from sensornet.sensors.child import Child
from sensornet.sensors.config import MergeError, Mergeable, NodeConfig

logger = logging.getLogger(__name__)

# ids that may be handed out to nodes requesting one
MIN_ASSIGNABLE_ID = 1
MAX_ASSIGNABLE_ID = RESERVED_ID - 1


def is_valid_node_id(node_id):
    """
    >>> is_valid_node_id(0), is_valid_node_id(254), is_valid_node_id(255)
    (True, True, False)
    """
    return GATEWAY_NODE_ID <= node_id < RESERVED_ID


class Node(Mergeable):
    """
    A physical device on the sensor network, hosting any number of children.

    The child map has its own lock. The remaining attributes are plain values that the gateway
    reads and writes while holding the registry lock.
    """

    def __init__(self, node_id, config: NodeConfig=None):
        if not is_valid_node_id(node_id):
            raise ValueError("invalid node id %s" % node_id)
        self.node_id = node_id
        self.config = config if config is not None else NodeConfig()
        self.reachable = True
        self.last_update = 0
        self.battery_percent = 0
        self._children_lock = threading.RLock()
        self._children = {}

    def add_child(self, child: Child):
        with self._children_lock:
            self._children[child.child_id] = child

    def get_child(self, child_id) -> Child:
        with self._children_lock:
            return self._children.get(child_id)

    def remove_child(self, child_id):
        with self._children_lock:
            return self._children.pop(child_id, None)

    @property
    def children(self):
        with self._children_lock:
            return dict(self._children)

    def merge(self, other):
        """
        Folds another description of this node into this one. Configurations are merged, children
        only present in the other node are added and children present in both are merged.
        """
        if not isinstance(other, Node):
            raise MergeError("cannot merge %s into a node" % type(other).__name__)
        self.config.merge(other.config)
        with self._children_lock:
            for child_id, child in other.children.items():
                existing = self._children.get(child_id)
                if existing is None:
                    self._children[child_id] = child
                else:
                    existing.merge(child)

    def update_variable_state(self, child_id, subtype, state):
        """
        Builds the message that sets a variable on this node to a new state. The variable itself is not changed.
        :return: the outgoing SET message, or None when the child does not exist.
        :raises ValueError: when the child has no variable with the given subtype
        """
        with self._children_lock:
            child = self._children.get(child_id)
            if child is None:
                logger.warning("cannot update variable state of missing child %s on node %s" % (child_id, self.node_id))
                return None
            if child.get_variable(subtype) is None:
                raise ValueError("child %s on node %s has no variable %s" % (child_id, self.node_id, subtype))
            config = child.config
            return Message(self.node_id, child_id, MessageType.SET, int(config.request_ack), subtype, state,
                           revert=config.revert_state, smart_sleep=config.smart_sleep)

    def __eq__(self, other):
        return isinstance(other, Node) and self.node_id == other.node_id and self.children == other.children \
            and self.reachable == other.reachable and self.battery_percent == other.battery_percent \
            and self.last_update == other.last_update

    def __hash__(self):
        return hash(self.node_id)

    def __repr__(self):
        return "Node(%d, reachable=%s, children=%s)" % (self.node_id, self.reachable, sorted(self.children))
