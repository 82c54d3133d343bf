import unittest

from hamcrest import assert_that, calling, is_, none, raises

from sensornet.protocol.message import SetReq
from sensornet.sensors.variable import RevertVariableStateError, Variable


class VariableTest(unittest.TestCase):

    def test_new_variable(self):
        sut = Variable(SetReq.V_TEMP)
        assert_that(sut.value, is_(none()))
        assert_that(sut.last_update, is_(none()))
        assert_that(sut.name, is_("V_TEMP"))

    def test_never_set_is_not_revertible(self):
        sut = Variable(SetReq.V_TEMP)
        assert_that(sut.is_revertible(), is_(False))
        assert_that(calling(sut.revert_value), raises(RevertVariableStateError))

    def test_first_set_is_not_revertible(self):
        sut = Variable(SetReq.V_TEMP)
        sut.set_value("a", now=10)
        assert_that(sut.is_revertible(), is_(False))

    def test_revert_to_previous(self):
        sut = Variable(SetReq.V_STATUS)
        sut.set_value("a", now=10)
        sut.set_value("b", now=20)
        assert_that(sut.is_revertible(), is_(True))
        sut.revert_value()
        assert_that(sut.snapshot(), is_(("a", 10)))

    def test_revert_is_single_level(self):
        sut = Variable(SetReq.V_STATUS)
        sut.set_value("a", now=10)
        sut.set_value("b", now=20)
        sut.set_value("c", now=30)
        sut.revert_value()
        assert_that(sut.value, is_("b"))
        assert_that(sut.is_revertible(), is_(False))
        assert_that(calling(sut.revert_value), raises(RevertVariableStateError))

    def test_unknown_subtype_name(self):
        assert_that(Variable(200).name, is_("200"))

    def test_equality(self):
        a, b = Variable(SetReq.V_TEMP), Variable(SetReq.V_TEMP)
        assert_that(a == b, is_(True))
        a.set_value("1")
        assert_that(a == b, is_(False))
