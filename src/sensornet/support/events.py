import logging
import threading

logger = logging.getLogger(__name__)


class EventSource(object):
    """
    A list of handlers that are each called with the arguments given to fire().
    Handlers are kept in registration order and a handler is only registered once.
    """

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def __contains__(self, handler):
        return handler in self._handlers

    def add(self, handler):
        if handler not in self._handlers:
            self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def clear(self):
        self._handlers = []

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        self._fire(*args, **kwargs)

    def _fire(self, *args, **kwargs):
        for handler in self.handlers():
            handler(*args, **kwargs)


class EventRegister(EventSource):
    """
    A thread-safe event source shared by the connection reader, the gateway and the sanity checker.

    Handlers may be added and removed from any thread, including from within a handler while an event
    is being fired. Each handler is invoked on the firing thread with a snapshot of the handler list.
    An exception raised by one handler is logged and does not prevent delivery to the others.
    """

    def __init__(self):
        super().__init__()
        self._lock = threading.RLock()

    def __contains__(self, handler):
        with self._lock:
            return super().__contains__(handler)

    def add(self, handler):
        with self._lock:
            if handler in self._handlers:
                logger.debug("event listener %s already registered" % handler)
            return super().add(handler)

    def remove(self, handler):
        with self._lock:
            return super().remove(handler)

    def clear(self):
        with self._lock:
            logger.debug("clearing all listeners from %s" % self)
            super().clear()

    def handlers(self):
        with self._lock:
            return super().handlers()

    def _fire(self, *args, **kwargs):
        for handler in self.handlers():
            try:
                handler(*args, **kwargs)
            except Exception as e:
                logger.exception("event listener %s raised %s" % (handler, e))
