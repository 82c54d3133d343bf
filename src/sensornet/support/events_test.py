import unittest
from unittest.mock import Mock

from hamcrest import assert_that, contains_exactly, empty, is_

from sensornet.support.events import EventRegister, EventSource


class EventSourceTest(unittest.TestCase):

    def test_handlers_empty(self):
        sut = EventSource()
        assert_that(sut.handlers(), is_(empty()))

    def test_no_listeners(self):
        sut = EventSource()
        sut.fire(1)

    def test_manage_handlers(self):
        sut = EventSource()
        m1 = Mock()
        sut.add(m1)
        assert_that(sut._handlers, is_([m1]))

        sut.remove(m1)
        assert_that(sut._handlers, is_([]))

        sut.remove(m1)
        assert_that(sut._handlers, is_([]))

        sut += m1
        assert_that(m1 in sut, is_(True))

        sut -= m1
        assert_that(m1 in sut, is_(False))

    def test_handler_registered_once(self):
        sut = EventSource()
        m1 = Mock()
        sut += m1
        sut += m1
        sut.fire("event")
        m1.assert_called_once_with("event")

    def test_listeners(self):
        sut = EventSource()
        l1 = Mock()
        l2 = Mock()
        sut += l1
        sut += l2
        sut.fire(1, v="hey")
        l1.assert_called_once_with(1, v="hey")
        l2.assert_called_once_with(1, v="hey")

    def test_clear(self):
        sut = EventSource()
        sut.add(Mock())
        sut.clear()
        assert_that(sut.handlers(), is_(empty()))


class EventRegisterTest(unittest.TestCase):

    def test_failing_listener_does_not_stop_delivery(self):
        sut = EventRegister()
        failing = Mock(side_effect=ValueError("boom"))
        other = Mock()
        sut += failing
        sut += other
        sut.fire("event")
        failing.assert_called_once_with("event")
        other.assert_called_once_with("event")

    def test_listener_can_remove_itself_while_firing(self):
        sut = EventRegister()
        other = Mock()

        def once(event):
            sut.remove(once)

        sut += once
        sut += other
        sut.fire("event")
        other.assert_called_once_with("event")
        assert_that(sut.handlers(), contains_exactly(other))

    def test_order_is_registration_order(self):
        sut = EventRegister()
        seen = []
        sut += lambda e: seen.append(1)
        sut += lambda e: seen.append(2)
        sut.fire(None)
        assert_that(seen, is_([1, 2]))
