from abc import abstractmethod

from sensornet.support.mixins import CommonEqualityMixin, StringerMixin


class MergeError(Exception):
    """ Raised when an object is merged with an object of an incompatible type. """


class Mergeable:
    """ Something that can absorb the state of another instance of the same type. """

    @abstractmethod
    def merge(self, other):
        raise NotImplementedError


class NodeConfig(Mergeable, CommonEqualityMixin, StringerMixin):
    """
    :param request_heartbeat_response: the node answers heartbeat requests, so liveness is probed
    :param expect_update_timeout: minutes within which an update is expected, 0 or less to disable
    """

    def __init__(self, request_heartbeat_response=False, expect_update_timeout=-1):
        self.request_heartbeat_response = request_heartbeat_response
        self.expect_update_timeout = expect_update_timeout

    def merge(self, other):
        if not isinstance(other, NodeConfig):
            raise MergeError("cannot merge %s into a node config" % type(other).__name__)
        self.request_heartbeat_response |= other.request_heartbeat_response
        if self.expect_update_timeout <= 0:
            self.expect_update_timeout = other.expect_update_timeout


class ChildConfig(Mergeable, CommonEqualityMixin, StringerMixin):
    """
    :param request_ack: outgoing messages to the child ask for an acknowledgement
    :param revert_state: revert the variable when the acknowledgement does not arrive
    :param smart_sleep: the child only receives messages after it wakes up
    :param child_update_timeout: minutes within which an update is expected, 0 or less to disable
    """

    def __init__(self, request_ack=False, revert_state=True, smart_sleep=False, child_update_timeout=-1):
        self.request_ack = request_ack
        self.revert_state = revert_state
        self.smart_sleep = smart_sleep
        self.child_update_timeout = child_update_timeout

    def merge(self, other):
        if not isinstance(other, ChildConfig):
            raise MergeError("cannot merge %s into a child config" % type(other).__name__)
        self.request_ack |= other.request_ack
        self.revert_state |= other.revert_state
        self.smart_sleep |= other.smart_sleep
        if self.child_update_timeout <= 0:
            self.child_update_timeout = other.child_update_timeout
