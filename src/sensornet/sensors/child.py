import logging
import threading

from sensornet.protocol.message import Presentation, RESERVED_ID, SetReq
from sensornet.sensors.config import ChildConfig, MergeError, Mergeable
from sensornet.sensors.variable import Variable

logger = logging.getLogger(__name__)

MIN_CHILD_ID = 0
MAX_CHILD_ID = RESERVED_ID

# slots every child carries, whatever it was presented as
COMMON_VARIABLES = (SetReq.V_VAR1, SetReq.V_VAR2, SetReq.V_VAR3, SetReq.V_VAR4, SetReq.V_VAR5)

# the variables each presentation class supports, in addition to the common ones
PRESENTATION_VARIABLES = {
    Presentation.S_DOOR: (SetReq.V_TRIPPED, SetReq.V_ARMED),
    Presentation.S_MOTION: (SetReq.V_TRIPPED, SetReq.V_ARMED),
    Presentation.S_SMOKE: (SetReq.V_TRIPPED, SetReq.V_ARMED),
    Presentation.S_BINARY: (SetReq.V_STATUS, SetReq.V_WATT),
    Presentation.S_DIMMER: (SetReq.V_STATUS, SetReq.V_PERCENTAGE, SetReq.V_WATT),
    Presentation.S_COVER: (SetReq.V_UP, SetReq.V_DOWN, SetReq.V_STOP, SetReq.V_PERCENTAGE),
    Presentation.S_TEMP: (SetReq.V_TEMP, SetReq.V_ID),
    Presentation.S_HUM: (SetReq.V_HUM,),
    Presentation.S_BARO: (SetReq.V_PRESSURE, SetReq.V_FORECAST),
    Presentation.S_WIND: (SetReq.V_WIND, SetReq.V_GUST, SetReq.V_DIRECTION),
    Presentation.S_RAIN: (SetReq.V_RAIN, SetReq.V_RAINRATE),
    Presentation.S_UV: (SetReq.V_UV,),
    Presentation.S_WEIGHT: (SetReq.V_WEIGHT, SetReq.V_IMPEDANCE),
    Presentation.S_POWER: (SetReq.V_WATT, SetReq.V_KWH, SetReq.V_VAR, SetReq.V_VA, SetReq.V_POWER_FACTOR),
    Presentation.S_HEATER: (SetReq.V_HVAC_SETPOINT_HEAT, SetReq.V_HVAC_FLOW_STATE, SetReq.V_TEMP, SetReq.V_STATUS),
    Presentation.S_DISTANCE: (SetReq.V_DISTANCE, SetReq.V_UNIT_PREFIX),
    Presentation.S_LIGHT_LEVEL: (SetReq.V_LIGHT_LEVEL, SetReq.V_LEVEL),
    Presentation.S_ARDUINO_NODE: (),
    Presentation.S_ARDUINO_REPEATER_NODE: (),
    Presentation.S_LOCK: (SetReq.V_LOCK_STATUS,),
    Presentation.S_IR: (SetReq.V_IR_SEND, SetReq.V_IR_RECEIVE, SetReq.V_IR_RECORD),
    Presentation.S_WATER: (SetReq.V_FLOW, SetReq.V_VOLUME),
    Presentation.S_AIR_QUALITY: (SetReq.V_LEVEL, SetReq.V_UNIT_PREFIX),
    Presentation.S_CUSTOM: (SetReq.V_CUSTOM,),
    Presentation.S_DUST: (SetReq.V_LEVEL, SetReq.V_UNIT_PREFIX),
    Presentation.S_SCENE_CONTROLLER: (SetReq.V_SCENE_ON, SetReq.V_SCENE_OFF),
    Presentation.S_RGB_LIGHT: (SetReq.V_RGB, SetReq.V_WATT, SetReq.V_STATUS, SetReq.V_PERCENTAGE),
    Presentation.S_RGBW_LIGHT: (SetReq.V_RGBW, SetReq.V_WATT, SetReq.V_STATUS, SetReq.V_PERCENTAGE),
    Presentation.S_COLOR_SENSOR: (SetReq.V_RGB,),
    Presentation.S_HVAC: (SetReq.V_STATUS, SetReq.V_TEMP, SetReq.V_HVAC_SETPOINT_HEAT, SetReq.V_HVAC_SETPOINT_COOL,
                          SetReq.V_HVAC_FLOW_STATE, SetReq.V_HVAC_FLOW_MODE, SetReq.V_HVAC_SPEED),
    Presentation.S_MULTIMETER: (SetReq.V_VOLTAGE, SetReq.V_CURRENT, SetReq.V_IMPEDANCE),
    Presentation.S_SPRINKLER: (SetReq.V_STATUS, SetReq.V_TRIPPED),
    Presentation.S_WATER_LEAK: (SetReq.V_TRIPPED, SetReq.V_ARMED),
    Presentation.S_SOUND: (SetReq.V_LEVEL, SetReq.V_TRIPPED, SetReq.V_ARMED),
    Presentation.S_VIBRATION: (SetReq.V_LEVEL, SetReq.V_TRIPPED, SetReq.V_ARMED),
    Presentation.S_MOISTURE: (SetReq.V_LEVEL, SetReq.V_TRIPPED, SetReq.V_ARMED),
    Presentation.S_INFO: (SetReq.V_TEXT,),
    Presentation.S_GAS: (SetReq.V_FLOW, SetReq.V_VOLUME),
    Presentation.S_GPS: (SetReq.V_POSITION,),
    Presentation.S_WATER_QUALITY: (SetReq.V_TEMP, SetReq.V_PH, SetReq.V_ORP, SetReq.V_EC, SetReq.V_STATUS),
}


def is_valid_child_id(child_id):
    return MIN_CHILD_ID <= child_id <= MAX_CHILD_ID


class Child(Mergeable):
    """
    A sensor or actuator hosted by a node. The variables it holds are determined by its presentation code.
    """

    def __init__(self, child_id, presentation_code=None, config=None, subtypes=()):
        if not is_valid_child_id(child_id):
            raise ValueError("invalid child id %s" % child_id)
        self.child_id = child_id
        self.presentation_code = presentation_code
        self.config = config if config is not None else ChildConfig()
        self.last_update = 0
        self._lock = threading.RLock()
        self._variables = {}
        for subtype in COMMON_VARIABLES + tuple(subtypes):
            self.add_variable(Variable(subtype))

    def add_variable(self, variable: Variable):
        if variable is None:
            raise ValueError("cannot add a missing variable")
        with self._lock:
            self._variables[variable.subtype] = variable

    def get_variable(self, subtype) -> Variable:
        with self._lock:
            return self._variables.get(int(subtype))

    @property
    def variables(self):
        with self._lock:
            return dict(self._variables)

    def merge(self, other):
        if not isinstance(other, Child):
            raise MergeError("cannot merge %s into a child" % type(other).__name__)
        self.config.merge(other.config)

    def __eq__(self, other):
        return isinstance(other, Child) and self.child_id == other.child_id \
            and self.presentation_code == other.presentation_code and self.variables == other.variables

    def __hash__(self):
        return hash((self.child_id, self.presentation_code))

    def __repr__(self):
        return "Child(%d, %s, variables=%s)" % (self.child_id, self.presentation_code,
                                                sorted(v.name for v in self.variables.values()))


def from_presentation(presentation_code, child_id, config=None):
    """
    Creates a child from the presentation code it announced.
    :return: the child, or None when the presentation code is not known.
    """
    try:
        code = Presentation(presentation_code)
    except ValueError:
        logger.warning("unknown presentation code %s for child %s" % (presentation_code, child_id))
        return None
    return Child(child_id, code, config, PRESENTATION_VARIABLES[code])
