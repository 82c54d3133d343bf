"""
Runs a gateway from the command line until interrupted.

    sensornet-gateway --config gateway.cfg --cache ids.json --log-level DEBUG
    sensornet-gateway --list-ports

Every gateway event is logged. With --cache, the node ids are loaded at startup and the cache is
rewritten as ids are handed out.
"""
import argparse
import logging
import sys
import threading

import paho.mqtt.client as mqtt
from configobj import ConfigObjError
from paho.mqtt.enums import CallbackAPIVersion

from sensornet.cache import IdCacheUpdater, cached_nodes
from sensornet.conduit.serial_conduit import serial_ports
from sensornet.gateway.config import USER_CONFIG_FILE, gateway_config
from sensornet.gateway.gateway import Gateway
from sensornet.sensors.node import Node

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog='sensornet-gateway', description="Runs a sensor network gateway",
                                     formatter_class=argparse.RawDescriptionHelpFormatter, epilog=__doc__)
    parser.add_argument('--config', help="the gateway configuration file")
    parser.add_argument('--user-config', default=USER_CONFIG_FILE,
                        help="user overrides merged under the configuration (default: %(default)s)")
    parser.add_argument('--cache', help="the node id cache file")
    parser.add_argument('--log-level', default='INFO', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
    parser.add_argument('--list-ports', action='store_true', help="list the serial ports and exit")
    return parser.parse_args(argv)


def mqtt_client(config):
    """ creates a paho client for the configured broker and starts its network loop. """
    client = mqtt.Client(callback_api_version=CallbackAPIVersion.VERSION2, client_id=config.mqtt_client_id)
    client.connect_async(config.mqtt_broker, config.mqtt_port)
    client.loop_start()
    logger.info("connecting to MQTT broker %s:%s" % (config.mqtt_broker, config.mqtt_port))
    return client


def log_event(event):
    logger.info("event: %s" % event)


def build_gateway(config, cache=None, client=None):
    """
    Creates a gateway with the cached and configured nodes and its connection.
    :param client: the paho client for MQTT gateways
    """
    nodes = cached_nodes(cache) if cache else []
    gateway = Gateway(config, nodes)
    for node_id, node_config in config.nodes.items():
        gateway.add_node(Node(node_id, node_config), merge_if_exist=True)
    connection = gateway.setup(mqtt_client=client)
    if client is not None:
        client.on_disconnect = lambda *args: connection.request_disconnection()
    gateway.add_event_listener(log_event)
    if cache:
        gateway.add_event_listener(IdCacheUpdater(gateway, cache))
    return gateway


def run_gateway(gateway, stop=None):
    """ runs the gateway until stop is set or the process is interrupted. """
    stop = stop if stop is not None else threading.Event()
    gateway.startup()
    try:
        while not stop.wait(1):
            pass
    except KeyboardInterrupt:
        logger.info("interrupted")
    finally:
        logger.info("shutting down")
        gateway.shutdown()


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)
    if args.list_ports:
        for port in serial_ports():
            print(port)
        return 0
    try:
        config = gateway_config(args.config, args.user_config)
    except (ConfigObjError, OSError) as e:
        logger.error("cannot load configuration: %s" % e)
        return 1
    client = mqtt_client(config) if config.gateway_type == 'mqtt' else None
    try:
        gateway = build_gateway(config, args.cache, client)
        run_gateway(gateway)
    except ValueError as e:
        logger.error("cannot start gateway: %s" % e)
        return 1
    finally:
        if client is not None:
            client.loop_stop()
            client.disconnect()
    return 0


if __name__ == '__main__':
    sys.exit(main())
