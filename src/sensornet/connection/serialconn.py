import logging

from serial import SerialException

from sensornet.conduit.base import Conduit
from sensornet.conduit.serial_conduit import SerialConduit, open_serial
from sensornet.connection.base import Connection, GatewayConnectionError

logger = logging.getLogger(__name__)


class SerialConnection(Connection):
    """
    Implements a connection that communicates with a gateway device attached to a serial port.
    """

    def __init__(self, config, events, **kwargs):
        super().__init__(config, events, **kwargs)
        self.port = config.serial_port
        self.baud_rate = config.baud_rate

    @property
    def endpoint(self):
        return "%s@%s" % (self.port, self.baud_rate)

    def _establish(self) -> Conduit:
        try:
            ser = open_serial(self.port, self.baud_rate)
        except SerialException as e:
            raise GatewayConnectionError("error opening serial port %s: %s" % (self.port, e)) from e
        logger.info("opened serial port %s" % self.port)
        return SerialConduit(ser)

    def _before_close(self, conduit: SerialConduit, hard_reset):
        if hard_reset and self.config.hard_reset:
            try:
                conduit.reset_device()
            except SerialException as e:
                logger.warning("unable to reset device on %s: %s" % (self.port, e))
