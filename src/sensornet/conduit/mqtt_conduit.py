"""
Bridges an MQTT broker connection to the line oriented conduit streams.

Messages received on the subscribed topics are converted to wire lines and written into a pipe that
the connection reads like any other input stream. Lines written to the output stream are converted
back to a topic and a payload and published.
"""
import io
import logging

import paho.mqtt.client as mqtt

from sensornet.conduit.base import StreamConduit
from sensornet.protocol.io import BytePipe
from sensornet.protocol.message import ENCODING, MQTT_SEPARATOR, ParseError, generate_mqtt_string, parse, \
    parse_mqtt, serialize

logger = logging.getLogger(__name__)

# node/child/type/ack/subtype
TOPIC_WILDCARD = '+/+/+/+/+'


def subscription_topic(prefix):
    """
    >>> subscription_topic('mygateway1-out')
    'mygateway1-out/+/+/+/+/+'
    """
    return prefix.rstrip(MQTT_SEPARATOR) + MQTT_SEPARATOR + TOPIC_WILDCARD


class MqttPublishWriter(io.RawIOBase):
    """ A writable stream that publishes each complete line written to it as an MQTT message. """

    def __init__(self, client: mqtt.Client, publish_prefix, qos=0):
        super().__init__()
        self.client = client
        self.publish_prefix = publish_prefix.rstrip(MQTT_SEPARATOR)
        self.qos = qos
        self._buffer = bytearray()

    def writable(self):
        return True

    def write(self, b):
        self._checkClosed()
        self._buffer.extend(b)
        while b'\n' in self._buffer:
            index = self._buffer.index(b'\n')
            line = bytes(self._buffer[:index + 1])
            del self._buffer[:index + 1]
            self._publish(line)
        return len(b)

    def _publish(self, line):
        try:
            message = parse(line)
        except ParseError as e:
            logger.error("cannot publish malformed line %r: %s" % (line, e))
            return
        topic = self.publish_prefix + MQTT_SEPARATOR + generate_mqtt_string(message)
        logger.debug("publishing %s: %s" % (topic, message.payload))
        info = self.client.publish(topic, message.payload.encode(ENCODING), qos=self.qos, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise OSError("publish to %s failed: %s" % (topic, mqtt.error_string(info.rc)))


class MqttConduit(StreamConduit):
    """
    A conduit over a paho-mqtt client. The client is owned by the caller and must already be connected
    with its network loop running. The conduit subscribes when created and unsubscribes when closed.
    """

    def __init__(self, client: mqtt.Client, subscribe_prefix, publish_prefix, qos=0, timeout=0.1):
        self.client = client
        self.subscribe_prefix = subscribe_prefix.rstrip(MQTT_SEPARATOR)
        self.topic = subscription_topic(subscribe_prefix)
        self.pipe = BytePipe(timeout)
        super().__init__(self.pipe.reader, MqttPublishWriter(client, publish_prefix, qos), target=self.topic)
        client.message_callback_add(self.topic, self._on_message)
        result, _ = client.subscribe(self.topic, qos=qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            client.message_callback_remove(self.topic)
            raise OSError("subscribe to %s failed: %s" % (self.topic, mqtt.error_string(result)))
        logger.debug("subscribed to %s" % self.topic)

    def _on_message(self, client, userdata, msg):
        """ paho callback, called on the client's network thread. """
        suffix = msg.topic[len(self.subscribe_prefix):]
        try:
            message = parse_mqtt(suffix, msg.payload)
        except ParseError as e:
            logger.debug("dropping MQTT message on %s: %s" % (msg.topic, e))
            return
        try:
            self.pipe.put(serialize(message).encode(ENCODING))
        except ValueError:
            logger.debug("conduit closed, dropping MQTT message on %s" % msg.topic)

    def close(self):
        self.client.message_callback_remove(self.topic)
        self.client.unsubscribe(self.topic)
        super().close()
