"""
The sensor network wire protocol.

A message is a single ASCII line of six `;` separated fields::

    node-id;child-id;type;ack;subtype;payload\\n

The first five fields are integers, the payload is the remainder of the line and may itself contain `;`.
Over MQTT the same five header fields are the last five segments of the topic and the payload is the
message body::

    <prefix>/node-id/child-id/type/ack/subtype

The subtype is interpreted according to the message type: a presentation code for PRESENTATION messages,
a variable code for SET and REQ, an internal command for INTERNAL and a stream command for STREAM.
"""
from enum import Enum, IntEnum

# the id of the gateway node
GATEWAY_NODE_ID = 0
# node or child id meaning "not assigned" / "the node itself"
RESERVED_ID = 255

NUMBER_OF_PARTS = 6
MQTT_HEADER_PARTS = 5
FIELD_SEPARATOR = ';'
MQTT_SEPARATOR = '/'
LINE_TERMINATOR = '\n'
# wire lines and MQTT payloads carry text as UTF-8
ENCODING = 'utf-8'


class ParseError(ValueError):
    """ Raised when a line or MQTT topic cannot be decoded as a message. """


class MessageType(IntEnum):
    PRESENTATION = 0
    SET = 1
    REQ = 2
    INTERNAL = 3
    STREAM = 4


class Direction(Enum):
    INCOMING = 'incoming'
    OUTGOING = 'outgoing'


class Presentation(IntEnum):
    """ The device class a child declares when it is presented. """
    S_DOOR = 0
    S_MOTION = 1
    S_SMOKE = 2
    S_BINARY = 3
    S_DIMMER = 4
    S_COVER = 5
    S_TEMP = 6
    S_HUM = 7
    S_BARO = 8
    S_WIND = 9
    S_RAIN = 10
    S_UV = 11
    S_WEIGHT = 12
    S_POWER = 13
    S_HEATER = 14
    S_DISTANCE = 15
    S_LIGHT_LEVEL = 16
    S_ARDUINO_NODE = 17
    S_ARDUINO_REPEATER_NODE = 18
    S_LOCK = 19
    S_IR = 20
    S_WATER = 21
    S_AIR_QUALITY = 22
    S_CUSTOM = 23
    S_DUST = 24
    S_SCENE_CONTROLLER = 25
    S_RGB_LIGHT = 26
    S_RGBW_LIGHT = 27
    S_COLOR_SENSOR = 28
    S_HVAC = 29
    S_MULTIMETER = 30
    S_SPRINKLER = 31
    S_WATER_LEAK = 32
    S_SOUND = 33
    S_VIBRATION = 34
    S_MOISTURE = 35
    S_INFO = 36
    S_GAS = 37
    S_GPS = 38
    S_WATER_QUALITY = 39


class SetReq(IntEnum):
    """ Variable codes used by SET and REQ messages. """
    V_TEMP = 0
    V_HUM = 1
    V_STATUS = 2
    V_PERCENTAGE = 3
    V_PRESSURE = 4
    V_FORECAST = 5
    V_RAIN = 6
    V_RAINRATE = 7
    V_WIND = 8
    V_GUST = 9
    V_DIRECTION = 10
    V_UV = 11
    V_WEIGHT = 12
    V_DISTANCE = 13
    V_IMPEDANCE = 14
    V_ARMED = 15
    V_TRIPPED = 16
    V_WATT = 17
    V_KWH = 18
    V_SCENE_ON = 19
    V_SCENE_OFF = 20
    V_HVAC_FLOW_STATE = 21
    V_HVAC_SPEED = 22
    V_LIGHT_LEVEL = 23
    V_VAR1 = 24
    V_VAR2 = 25
    V_VAR3 = 26
    V_VAR4 = 27
    V_VAR5 = 28
    V_UP = 29
    V_DOWN = 30
    V_STOP = 31
    V_IR_SEND = 32
    V_IR_RECEIVE = 33
    V_FLOW = 34
    V_VOLUME = 35
    V_LOCK_STATUS = 36
    V_LEVEL = 37
    V_VOLTAGE = 38
    V_CURRENT = 39
    V_RGB = 40
    V_RGBW = 41
    V_ID = 42
    V_UNIT_PREFIX = 43
    V_HVAC_SETPOINT_COOL = 44
    V_HVAC_SETPOINT_HEAT = 45
    V_HVAC_FLOW_MODE = 46
    V_TEXT = 47
    V_CUSTOM = 48
    V_POSITION = 49
    V_IR_RECORD = 50
    V_PH = 51
    V_ORP = 52
    V_EC = 53
    V_VAR = 54
    V_VA = 55
    V_POWER_FACTOR = 56


class Internal(IntEnum):
    I_BATTERY_LEVEL = 0
    I_TIME = 1
    I_VERSION = 2
    I_ID_REQUEST = 3
    I_ID_RESPONSE = 4
    I_INCLUSION_MODE = 5
    I_CONFIG = 6
    I_FIND_PARENT = 7
    I_FIND_PARENT_RESPONSE = 8
    I_LOG_MESSAGE = 9
    I_CHILDREN = 10
    I_SKETCH_NAME = 11
    I_SKETCH_VERSION = 12
    I_REBOOT = 13
    I_GATEWAY_READY = 14
    I_SIGNING_PRESENTATION = 15
    I_NONCE_REQUEST = 16
    I_NONCE_RESPONSE = 17
    I_HEARTBEAT_REQUEST = 18
    I_PRESENTATION = 19
    I_DISCOVER_REQUEST = 20
    I_DISCOVER_RESPONSE = 21
    I_HEARTBEAT_RESPONSE = 22
    I_LOCKED = 23
    I_PING = 24
    I_PONG = 25
    I_REGISTRATION_REQUEST = 26
    I_REGISTRATION_RESPONSE = 27
    I_DEBUG = 28
    I_SIGNAL_REPORT_REQUEST = 29
    I_SIGNAL_REPORT_REVERSE = 30
    I_SIGNAL_REPORT_RESPONSE = 31
    I_PRE_SLEEP_NOTIFICATION = 32
    I_POST_SLEEP_NOTIFICATION = 33


class Stream(IntEnum):
    ST_FIRMWARE_CONFIG_REQUEST = 0
    ST_FIRMWARE_CONFIG_RESPONSE = 1
    ST_FIRMWARE_REQUEST = 2
    ST_FIRMWARE_RESPONSE = 3
    ST_SOUND = 4
    ST_IMAGE = 5


SUBTYPES_BY_TYPE = {
    MessageType.PRESENTATION: Presentation,
    MessageType.SET: SetReq,
    MessageType.REQ: SetReq,
    MessageType.INTERNAL: Internal,
    MessageType.STREAM: Stream,
}

WAKE_UP_SUBTYPES = (Internal.I_HEARTBEAT_RESPONSE, Internal.I_PRE_SLEEP_NOTIFICATION)


class Message:
    """
    A single protocol message.

    The six wire fields define the message value (equality and hashing); direction, revert and smart_sleep
    are local flags used on the outgoing path.
    """

    def __init__(self, node_id=GATEWAY_NODE_ID, child_id=RESERVED_ID, msg_type=MessageType.INTERNAL, ack=0,
                 subtype=0, payload='', direction=Direction.OUTGOING, revert=False, smart_sleep=False):
        self.node_id = int(node_id)
        self.child_id = int(child_id)
        self.msg_type = MessageType(msg_type)
        self.ack = int(bool(ack))
        self.subtype = int(subtype)
        self.payload = '' if payload is None else str(payload)
        self.direction = direction
        self.revert = revert
        self.smart_sleep = smart_sleep

    def _key(self):
        return self.node_id, self.child_id, self.msg_type, self.ack, self.subtype, self.payload

    def __eq__(self, other):
        return isinstance(other, Message) and self._key() == other._key()

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return "Message(%s, %s)" % (serialize(self).rstrip(LINE_TERMINATOR), self.direction.value)

    def copy(self, **changes):
        """ returns a new message with the same fields, except those given. """
        fields = dict(node_id=self.node_id, child_id=self.child_id, msg_type=self.msg_type, ack=self.ack,
                      subtype=self.subtype, payload=self.payload, direction=self.direction,
                      revert=self.revert, smart_sleep=self.smart_sleep)
        fields.update(changes)
        return Message(**fields)

    @property
    def subtype_code(self):
        """ the subtype as the enum member for this message type, or the plain int when the code is unknown. """
        codes = SUBTYPES_BY_TYPE[self.msg_type]
        try:
            return codes(self.subtype)
        except ValueError:
            return self.subtype

    @property
    def incoming(self):
        return self.direction is Direction.INCOMING

    def is_set(self):
        return self.msg_type is MessageType.SET

    def is_req(self):
        return self.msg_type is MessageType.REQ

    def is_set_or_req(self):
        return self.is_set() or self.is_req()

    def is_internal(self, subtype=None):
        return self.msg_type is MessageType.INTERNAL and (subtype is None or self.subtype == subtype)

    def is_version_response(self):
        return self.is_internal(Internal.I_VERSION)

    def is_heartbeat_response(self):
        return self.is_internal(Internal.I_HEARTBEAT_RESPONSE)

    def is_id_request(self):
        return self.is_internal(Internal.I_ID_REQUEST)

    def is_config_request(self):
        return self.is_internal(Internal.I_CONFIG)

    def is_time_request(self):
        return self.is_internal(Internal.I_TIME)

    def is_wake_up(self):
        return self.msg_type is MessageType.INTERNAL and self.subtype in WAKE_UP_SUBTYPES

    def matches(self, other):
        """ determines if other is the acknowledgement of this message (the ack flag itself is not compared). """
        return self.node_id == other.node_id and self.child_id == other.child_id \
            and self.msg_type == other.msg_type and self.subtype == other.subtype \
            and self.payload == other.payload


def _parse_int(text, name):
    try:
        return int(text.strip())
    except ValueError as e:
        raise ParseError("%s is not numeric: '%s'" % (name, text)) from e


def _parse_header(parts):
    node_id = _parse_int(parts[0], 'node id')
    child_id = _parse_int(parts[1], 'child id')
    type_code = _parse_int(parts[2], 'message type')
    ack = _parse_int(parts[3], 'ack')
    subtype = _parse_int(parts[4], 'subtype')
    try:
        msg_type = MessageType(type_code)
    except ValueError as e:
        raise ParseError("unknown message type %d" % type_code) from e
    if ack not in (0, 1):
        raise ParseError("ack must be 0 or 1, not %d" % ack)
    return node_id, child_id, msg_type, ack, subtype


def parse(line):
    """
    Decodes a wire line into an incoming message.
    >>> parse("2;1;1;0;0;25.5\\n")
    Message(2;1;1;0;0;25.5, incoming)
    """
    if isinstance(line, bytes):
        line = line.decode(ENCODING, errors='replace')
    line = line.rstrip('\r\n')
    parts = line.split(FIELD_SEPARATOR, NUMBER_OF_PARTS - 1)
    if len(parts) < NUMBER_OF_PARTS:
        raise ParseError("expected %d fields in '%s'" % (NUMBER_OF_PARTS, line))
    node_id, child_id, msg_type, ack, subtype = _parse_header(parts)
    return Message(node_id, child_id, msg_type, ack, subtype, parts[5], direction=Direction.INCOMING)


def serialize(message):
    """
    Encodes a message as a wire line, including the line terminator.
    >>> serialize(Message(255, 255, MessageType.INTERNAL, 0, Internal.I_ID_RESPONSE, '1'))
    '255;255;3;0;4;1\\n'
    """
    return FIELD_SEPARATOR.join([str(message.node_id), str(message.child_id), str(int(message.msg_type)),
                                 str(message.ack), str(message.subtype), message.payload]) + LINE_TERMINATOR


def parse_mqtt(topic_suffix, payload):
    """
    Decodes the header part of an MQTT topic (the part after the configured prefix) and the
    message body into an incoming message.
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = bytes(payload).decode(ENCODING, errors='replace')
    parts = topic_suffix.strip(MQTT_SEPARATOR).split(MQTT_SEPARATOR)
    if len(parts) != MQTT_HEADER_PARTS:
        raise ParseError("expected %d topic segments in '%s'" % (MQTT_HEADER_PARTS, topic_suffix))
    node_id, child_id, msg_type, ack, subtype = _parse_header(parts)
    return Message(node_id, child_id, msg_type, ack, subtype, payload, direction=Direction.INCOMING)


def generate_mqtt_string(message):
    """
    >>> generate_mqtt_string(Message(2, 1, MessageType.SET, 0, SetReq.V_TEMP, '25'))
    '2/1/1/0/0'
    """
    return MQTT_SEPARATOR.join([str(message.node_id), str(message.child_id), str(int(message.msg_type)),
                                str(message.ack), str(message.subtype)])


def version_request():
    """ the probe sent to the gateway node to check the link is alive. """
    return Message(GATEWAY_NODE_ID, RESERVED_ID, MessageType.INTERNAL, 0, Internal.I_VERSION, '')


def heartbeat_request(node_id):
    return Message(node_id, RESERVED_ID, MessageType.INTERNAL, 0, Internal.I_HEARTBEAT_REQUEST, '')
