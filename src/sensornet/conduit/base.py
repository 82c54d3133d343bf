from abc import abstractmethod
from io import IOBase


class Conduit:
    """
    A two-way byte channel to the gateway device.

    The connection reads wire lines from `input` with readline() and writes them to `output`.
    A read may return a partial line, or nothing at all, when the channel has a read timeout.
    """

    # when True, an empty read means the peer has gone away rather than a read timeout
    closes_on_empty_read = False

    @property
    @abstractmethod
    def target(self):
        """ what the conduit is connected to, for logging """
        raise NotImplementedError

    @property
    @abstractmethod
    def input(self) -> IOBase:
        raise NotImplementedError

    @property
    @abstractmethod
    def output(self) -> IOBase:
        raise NotImplementedError

    @property
    @abstractmethod
    def open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def close(self):
        """ closes both directions. Blocked reads return or raise once the conduit is closed. """
        raise NotImplementedError


class StreamConduit(Conduit):
    """
    A conduit over a pair of file-like streams, which may be the same object (a serial port is read and
    written through one stream). Closing the conduit closes each stream once.
    """

    def __init__(self, read, write=None, target=None):
        self._read = read
        self._write = write if write is not None else read
        self._target = target
        self._closed = False

    @property
    def target(self):
        return self._target

    @property
    def input(self) -> IOBase:
        return self._read

    @property
    def output(self) -> IOBase:
        return self._write

    @property
    def open(self) -> bool:
        return not self._closed

    def close(self):
        if self._closed:
            return
        self._closed = True
        try:
            self._write.close()
        finally:
            if self._read is not self._write:
                self._read.close()
