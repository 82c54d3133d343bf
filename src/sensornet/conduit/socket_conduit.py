import logging
import socket

from sensornet.conduit import base

logger = logging.getLogger(__name__)


class SocketConduit(base.Conduit):
    """
    A conduit that provides communication via a socket.
    :param sock The open, connected socket
    """

    closes_on_empty_read = True

    def __init__(self, sock: socket.socket):
        """
        :param sock: the client socket that represents the connection
        :type sock: socket
        """
        self.sock = sock
        self.read = sock.makefile('rb')
        self.write = sock.makefile('wb')

    @property
    def open(self) -> bool:
        return self.sock.fileno() >= 0

    @property
    def target(self):
        return self.sock

    @property
    def output(self):
        return self.write

    @property
    def input(self):
        return self.read

    def close(self):
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            # the peer may already have closed the socket
            logger.debug("socket shutdown failed: %s" % e)
        finally:
            self.read.close()
            self.write.close()
            self.sock.close()


def open_client_socket(host, port, timeout):
    """
    Connects to a TCP server, waiting at most timeout seconds. The returned socket is blocking.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.settimeout(timeout)
        sock.connect((host, port))
        sock.settimeout(None)
    except OSError:
        sock.close()
        raise
    return sock
