"""
Implements a conduit over a serial port.
"""

import logging
import time

import serial
from serial.tools import list_ports

from sensornet.conduit.base import StreamConduit

logger = logging.getLogger(__name__)

# how long DTR is held to reset the gateway device
DTR_RESET_HOLD = 0.1


class SerialConduit(StreamConduit):
    """
    A conduit that provides comms via a serial port. The port is both the input and the output stream.
    """

    def __init__(self, ser: serial.Serial):
        super().__init__(ser, target=ser.port)
        self.ser = ser
        # patch flushing since this causes a lockup if the serial is disconnected during
        # the flush.
        ser.flush = self._no_flush

    def _no_flush(self, *args, **kwargs):
        pass

    @property
    def open(self) -> bool:
        return self.ser.is_open

    def reset_device(self, hold=DTR_RESET_HOLD):
        """ pulses DTR, which resets most microcontroller based gateways. """
        logger.info("resetting device on %s" % self.ser.port)
        self.ser.dtr = True
        time.sleep(hold)
        self.ser.dtr = False


def open_serial(port, baud_rate):
    """
    Opens the serial port with the framing used by gateway devices: 8 data bits, no parity, 1 stop bit,
    and a short read timeout so the reader can notice when it is asked to stop.
    """
    return serial.Serial(port, baud_rate, bytesize=serial.EIGHTBITS, parity=serial.PARITY_NONE,
                         stopbits=serial.STOPBITS_ONE, timeout=0.1)


def serial_ports():
    """
    Returns a generator for all available serial port device names.
    """
    for port in list_ports.comports():
        yield port.device
