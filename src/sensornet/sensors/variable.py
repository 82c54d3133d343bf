import threading
import time

from sensornet.protocol.message import SetReq


class RevertVariableStateError(Exception):
    """ Raised when a variable without a previous state is reverted. """


class Variable:
    """
    A typed value slot on a child, identified by its SET/REQ subtype code.

    The variable remembers the state it had before the last update so that one update can be undone
    when the network does not acknowledge it. Value, timestamp and previous state share one lock per variable.
    """

    def __init__(self, subtype):
        self.subtype = int(subtype)
        self._lock = threading.RLock()
        self._value = None
        self._last_update = None
        self._old_value = None
        self._old_last_update = None

    @property
    def name(self):
        try:
            return SetReq(self.subtype).name
        except ValueError:
            return str(self.subtype)

    @property
    def value(self):
        with self._lock:
            return self._value

    @property
    def last_update(self):
        with self._lock:
            return self._last_update

    @last_update.setter
    def last_update(self, when):
        with self._lock:
            self._last_update = when

    def set_value(self, value, now=None):
        with self._lock:
            self._old_value = self._value
            self._old_last_update = self._last_update
            self._last_update = time.time() if now is None else now
            self._value = value

    def is_revertible(self):
        with self._lock:
            return self._old_value is not None and self._old_last_update is not None

    def revert_value(self):
        with self._lock:
            if not self.is_revertible():
                raise RevertVariableStateError("variable %s has no previous state" % self.name)
            self._value = self._old_value
            self._last_update = self._old_last_update
            self._old_value = None
            self._old_last_update = None

    def snapshot(self):
        """ returns (value, last_update) read under the variable's lock. """
        with self._lock:
            return self._value, self._last_update

    def __eq__(self, other):
        return isinstance(other, Variable) and self.subtype == other.subtype and self.value == other.value

    def __hash__(self):
        return hash(self.subtype)

    def __repr__(self):
        return "Variable(%s, value=%r)" % (self.name, self.value)
