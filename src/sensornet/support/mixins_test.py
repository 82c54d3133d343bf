import threading
import unittest

from hamcrest import assert_that, equal_to, is_, is_not

from sensornet.support.mixins import CommonEqualityMixin, StringerMixin, public_items


class Reading(CommonEqualityMixin, StringerMixin):
    def __init__(self, node_id=None, value=None):
        self.node_id = node_id
        self.value = value
        self._lock = threading.Lock()


class StringerMixinTest(unittest.TestCase):

    def test_stringer_lists_public_attributes(self):
        assert_that(str(Reading(3, "21.5")), is_("Reading:{'node_id': '3', 'value': '21.5'}"))


class CommonEqualityMixinTest(unittest.TestCase):

    def test_value_equivalence(self):
        assert_that(Reading(3, "21.5"), is_(equal_to(Reading(3, "21." + "5"))))
        assert_that(Reading(3, "21.5") != Reading(3, "21.5"), is_(False))
        assert_that(Reading(3, "21.5"), is_not(equal_to(Reading(3, "22"))))

    def test_private_attributes_are_ignored(self):
        # each instance holds a distinct lock
        assert_that(Reading(1) == Reading(1), is_(True))

    def test_different_type_is_not_equal(self):
        assert_that(Reading(1) == object(), is_(False))

    def test_public_items(self):
        assert_that(public_items(Reading(1, 2)), is_({'node_id': 1, 'value': 2}))
