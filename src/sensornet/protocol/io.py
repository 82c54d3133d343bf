"""
some useful stream classes.
"""

import io
import threading
from collections import deque


class BytePipe:
    """ A thread-safe in-memory pipe. Bytes written to `writer` are read from `reader`.
        Reads block until data is available, the timeout expires or the pipe is closed, so the
        reader behaves like a serial port opened with a read timeout.
    """

    def __init__(self, timeout=0.1):
        self.q = deque()
        self.timeout = timeout
        self.closed = False
        self._available = threading.Condition()
        self.reader = PipeReader(self)
        self.writer = PipeWriter(self)

    def put(self, buf):
        with self._available:
            if self.closed:
                raise ValueError("write to closed pipe")
            self.q.extend(bytes(buf))
            self._available.notify_all()
        return len(buf)

    def take(self, count=-1, until=None, timeout=None):
        """
        Takes up to count bytes, stopping after the first `until` byte when given.
        Waits up to timeout seconds for the first byte. Returns b'' on timeout or when closed and empty.
        """
        if timeout is None:
            timeout = self.timeout
        with self._available:
            if not self.q and not self.closed:
                self._available.wait(timeout)
            result = bytearray()
            while self.q and (count < 0 or len(result) < count):
                b = self.q.popleft()
                result.append(b)
                if until is not None and b == until:
                    break
            return bytes(result)

    def close(self):
        with self._available:
            self.closed = True
            self._available.notify_all()


class PipeStream(io.RawIOBase):

    def __init__(self, pipe: BytePipe):
        super().__init__()
        self.pipe = pipe

    def close(self):
        self.pipe.close()
        super().close()


class PipeReader(PipeStream):

    def readable(self):
        return True

    def readinto(self, b):
        self._checkClosed()
        data = self.pipe.take(len(b))
        b[:len(data)] = data
        return len(data)

    def readline(self, size=-1):
        """ reads up to and including a newline. A partial line is returned when the read times out. """
        self._checkClosed()
        line = bytearray()
        while size < 0 or len(line) < size:
            chunk = self.pipe.take(size - len(line) if size >= 0 else -1, until=ord('\n'))
            if not chunk:
                break
            line.extend(chunk)
            if line.endswith(b'\n'):
                break
        return bytes(line)


class PipeWriter(PipeStream):

    def writable(self):
        return True

    def write(self, buf):
        self._checkClosed()
        return self.pipe.put(buf)
