import logging

from sensornet.conduit.base import Conduit
from sensornet.conduit.socket_conduit import SocketConduit, open_client_socket
from sensornet.connection.base import Connection

logger = logging.getLogger(__name__)

# seconds allowed for the TCP connection to be made
CONNECT_TIMEOUT = 5.0


class SocketConnection(Connection):
    """
    A connection to an ethernet gateway, which serves the line protocol over a TCP socket.
    """

    def __init__(self, config, events, **kwargs):
        super().__init__(config, events, **kwargs)
        self.address = config.ip_address
        self.port = config.tcp_port
        self.connect_timeout = getattr(config, 'connect_timeout', CONNECT_TIMEOUT)

    @property
    def endpoint(self):
        return "%s:%s" % (self.address, self.port)

    def _establish(self) -> Conduit:
        sock = open_client_socket(self.address, self.port, self.connect_timeout)
        logger.info("opened socket to %s" % self.endpoint)
        return SocketConduit(sock)
