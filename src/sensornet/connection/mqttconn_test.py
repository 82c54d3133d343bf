import unittest
from unittest.mock import Mock

from hamcrest import assert_that, calling, instance_of, is_, raises

from sensornet.conduit.mqtt_conduit import MqttConduit
from sensornet.conduit.mqtt_conduit_test import mqtt_client
from sensornet.connection import create_connection
from sensornet.connection.mqttconn import MqttConnection
from sensornet.connection.serialconn import SerialConnection
from sensornet.connection.socketconn import SocketConnection
from sensornet.gateway.config import GatewayConfig
from sensornet.support.events import EventRegister


class MqttConnectionTest(unittest.TestCase):

    def setUp(self):
        self.client = mqtt_client()
        self.config = GatewayConfig(gateway_type='mqtt', startup_check_enabled=False, send_delay=0)
        self.sut = MqttConnection(self.config, EventRegister(), self.client)

    def tearDown(self):
        self.sut.disconnect()

    def test_topics_required(self):
        config = GatewayConfig(gateway_type='mqtt', topic_publish='')
        assert_that(calling(MqttConnection).with_args(config, EventRegister(), self.client), raises(ValueError))

    def test_client_must_be_connected(self):
        self.client.is_connected.return_value = False
        assert_that(self.sut.connect(), is_(False))
        self.client.subscribe.assert_not_called()

    def test_connect_subscribes(self):
        self.client.is_connected.return_value = True
        assert_that(self.sut.connect(), is_(True))
        assert_that(self.sut.conduit, is_(instance_of(MqttConduit)))
        self.client.subscribe.assert_called_once_with('mygateway1-out/+/+/+/+/+', qos=0)

    def test_disconnect_unsubscribes(self):
        self.client.is_connected.return_value = True
        self.sut.connect()
        self.sut.disconnect()
        self.client.unsubscribe.assert_called_once_with('mygateway1-out/+/+/+/+/+')


class CreateConnectionTest(unittest.TestCase):

    def test_serial(self):
        connection = create_connection(GatewayConfig(gateway_type='serial'), EventRegister())
        assert_that(connection, is_(instance_of(SerialConnection)))

    def test_ip(self):
        connection = create_connection(GatewayConfig(gateway_type='ip'), EventRegister())
        assert_that(connection, is_(instance_of(SocketConnection)))

    def test_mqtt(self):
        connection = create_connection(GatewayConfig(gateway_type='mqtt'), EventRegister(), Mock())
        assert_that(connection, is_(instance_of(MqttConnection)))

    def test_mqtt_without_client(self):
        assert_that(calling(create_connection).with_args(GatewayConfig(gateway_type='mqtt'), EventRegister()),
                    raises(ValueError))

    def test_unknown_type(self):
        assert_that(calling(create_connection).with_args(GatewayConfig(gateway_type='rs485'), EventRegister()),
                    raises(ValueError))
