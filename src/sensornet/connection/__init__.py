"""
Connections to the gateway device. Use create_connection to build the connection for a gateway configuration.
"""
from sensornet.connection.base import Connection, ConnectionNotConnectedError, ConnectionState, \
    GatewayConnectionError
from sensornet.connection.mqttconn import MqttConnection
from sensornet.connection.serialconn import SerialConnection
from sensornet.connection.socketconn import SocketConnection

GATEWAY_TYPES = ('serial', 'ip', 'mqtt')


def create_connection(config, events, mqtt_client=None) -> Connection:
    """
    Creates the connection for the configured gateway type.
    :param mqtt_client: the connected paho client, required for MQTT gateways
    """
    kind = config.gateway_type
    if kind == 'serial':
        return SerialConnection(config, events)
    elif kind == 'ip':
        return SocketConnection(config, events)
    elif kind == 'mqtt':
        if mqtt_client is None:
            raise ValueError("an MQTT gateway needs an MQTT client")
        return MqttConnection(config, events, mqtt_client)
    raise ValueError("unknown gateway type '%s', expected one of %s" % (kind, ", ".join(GATEWAY_TYPES)))
