import unittest

from hamcrest import assert_that, calling, has_items, is_, none, not_none, raises

from sensornet.protocol.message import Presentation, SetReq
from sensornet.sensors.child import COMMON_VARIABLES, Child, PRESENTATION_VARIABLES, from_presentation, \
    is_valid_child_id
from sensornet.sensors.config import ChildConfig, MergeError


class ChildTest(unittest.TestCase):

    def test_every_presentation_is_supported(self):
        assert_that(set(PRESENTATION_VARIABLES), is_(set(Presentation)))

    def test_common_variables_always_present(self):
        for code in Presentation:
            child = from_presentation(code, 1)
            assert_that(child.variables.keys(), has_items(*[int(v) for v in COMMON_VARIABLES]))

    def test_power_sensor_variables(self):
        sut = from_presentation(Presentation.S_POWER, 3)
        assert_that(sut.presentation_code, is_(Presentation.S_POWER))
        for subtype in (SetReq.V_WATT, SetReq.V_KWH, SetReq.V_VAR, SetReq.V_VA, SetReq.V_POWER_FACTOR):
            assert_that(sut.get_variable(subtype), is_(not_none()))
        assert_that(sut.get_variable(SetReq.V_TEMP), is_(none()))

    def test_unknown_presentation(self):
        assert_that(from_presentation(99, 1), is_(none()))

    def test_child_id_range(self):
        assert_that(is_valid_child_id(0), is_(True))
        assert_that(is_valid_child_id(255), is_(True))
        assert_that(is_valid_child_id(256), is_(False))
        assert_that(calling(Child).with_args(-1), raises(ValueError))

    def test_merge_config(self):
        sut = Child(1, config=ChildConfig(request_ack=False))
        sut.merge(Child(1, config=ChildConfig(request_ack=True)))
        assert_that(sut.config.request_ack, is_(True))

    def test_merge_incompatible(self):
        assert_that(calling(Child(1).merge).with_args(ChildConfig()), raises(MergeError))
