import logging

import paho.mqtt.client as mqtt

from sensornet.conduit.base import Conduit
from sensornet.conduit.mqtt_conduit import MqttConduit
from sensornet.connection.base import Connection, GatewayConnectionError

logger = logging.getLogger(__name__)


class MqttConnection(Connection):
    """
    A connection to an MQTT gateway. The broker client is created and connected by the owner and given
    to the connection, which only subscribes to and publishes on the gateway topics.
    """

    def __init__(self, config, events, client: mqtt.Client, **kwargs):
        super().__init__(config, events, **kwargs)
        if not config.topic_subscribe:
            raise ValueError("an MQTT connection needs a subscribe topic")
        if not config.topic_publish:
            raise ValueError("an MQTT connection needs a publish topic")
        self.client = client
        self.topic_subscribe = config.topic_subscribe
        self.topic_publish = config.topic_publish

    @property
    def endpoint(self):
        return "mqtt %s -> %s" % (self.topic_subscribe, self.topic_publish)

    def _establish(self) -> Conduit:
        if self.client is None:
            raise GatewayConnectionError("no MQTT client")
        if not self.client.is_connected():
            raise GatewayConnectionError("MQTT client is not connected to the broker")
        return MqttConduit(self.client, self.topic_subscribe, self.topic_publish)
