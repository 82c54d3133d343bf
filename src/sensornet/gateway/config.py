"""
Loads the gateway configuration.

A configuration file has one section per concern::

    [gateway]
    gateway_type = serial
    send_delay = 100

    [serial]
    serial_port = /dev/ttyUSB0
    baud_rate = 115200

    [nodes]
        [[4]]
        expect_update_timeout = 10

The file is merged over the user override `~/.sensornet.cfg` (when present) and validated against the
packaged `gateway.schema.cfg`. The values of each section are applied to a GatewayConfig by attribute name.
"""
import os

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from configobj.validate import Validator

from sensornet.sensors.config import NodeConfig
from sensornet.sensors.node import is_valid_node_id

config_extension = '.cfg'

SCHEMA_FILE = os.path.join(os.path.dirname(__file__), 'gateway.schema' + config_extension)
USER_CONFIG_FILE = os.path.join('~', '.sensornet' + config_extension)

SECTIONS = ('gateway', 'serial', 'ip', 'mqtt', 'sanity')


class GatewayConfig:
    """ Connection and network settings of one gateway. Fixed for the lifetime of the gateway. """

    def __init__(self, **kwargs):
        self.gateway_type = 'serial'
        self.send_delay = 100
        self.imperial = False
        self.startup_check_enabled = True
        self.reconnect_period = 10.0

        self.serial_port = '/dev/ttyUSB0'
        self.baud_rate = 115200
        self.hard_reset = False

        self.ip_address = '127.0.0.1'
        self.tcp_port = 5003
        self.connect_timeout = 5.0

        self.mqtt_broker = 'localhost'
        self.mqtt_port = 1883
        self.mqtt_client_id = ''
        self.topic_subscribe = 'mygateway1-out'
        self.topic_publish = 'mygateway1-in'

        self.sanity_check_enabled = True
        self.sanity_check_interval = 3
        self.sanity_check_fail_attempts = 1
        self.heartbeat_enabled = False
        self.heartbeat_fail_attempts = 3

        # node id -> NodeConfig
        self.nodes = {}
        for k, v in kwargs.items():
            if not hasattr(self, k):
                raise TypeError("unknown gateway setting '%s'" % k)
            setattr(self, k, v)

    def __repr__(self):
        return "GatewayConfig(%s)" % self.gateway_type


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def load_config(file=None, user_file=USER_CONFIG_FILE):
    """
    Loads and validates the gateway configuration.
    :param file: the configuration file. When None, only the user override and defaults are used.
    :param user_file: the user override file, merged underneath the configuration file when it exists.
        Pass None to ignore it.
    :return: the validated ConfigObj
    :raises ConfigObjError: when a file cannot be read or a value fails validation
    """
    config = ConfigObj()
    if user_file:
        config.merge(load_config_file_base(os.path.expanduser(user_file), must_exist=False))
    if file is not None:
        config.merge(load_config_file_base(file))

    config.configspec = ConfigObj(SCHEMA_FILE, list_values=False, _inspec=True)
    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        failures = []
        for section_list, key, _ in flatten_errors(config, result):
            failures.append('.'.join(section_list + [key]) if key is not None else
                            '[%s] missing' % ', '.join(section_list))
        raise ConfigObjError("the gateway config %s failed validation: %s" % (file, ", ".join(failures)))
    return config


def apply_conf(conf: Section, target):
    """
    Applies the attributes contained in a configuration object to a target object.
    It does this by iterating over the items in the configuration and setting any attributes with the same name.
    """
    for k, v in conf.items():
        if hasattr(target, k):
            setattr(target, k, v)


def node_configs(conf: Section):
    """
    :return: a map from node id to the NodeConfig given in the [nodes] section
    """
    nodes = {}
    for key, section in conf.get('nodes', {}).items():
        try:
            node_id = int(key)
        except ValueError as e:
            raise ConfigObjError("node section [[%s]] is not a node id" % key) from e
        if not is_valid_node_id(node_id):
            raise ConfigObjError("node section [[%s]] is not a valid node id" % key)
        nodes[node_id] = NodeConfig(section['request_heartbeat_response'], section['expect_update_timeout'])
    return nodes


def gateway_config(file=None, user_file=USER_CONFIG_FILE) -> GatewayConfig:
    """ Loads a configuration file and applies it to a new GatewayConfig. """
    conf = load_config(file, user_file)
    target = GatewayConfig()
    for name in SECTIONS:
        section = conf.get(name)
        if section:
            apply_conf(section, target)
    target.nodes = node_configs(conf)
    return target
