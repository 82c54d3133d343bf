import unittest

from hamcrest import assert_that, calling, equal_to, is_, raises

from sensornet.sensors.config import ChildConfig, MergeError, NodeConfig


class NodeConfigTest(unittest.TestCase):

    def test_merge_ors_flags(self):
        sut = NodeConfig()
        sut.merge(NodeConfig(request_heartbeat_response=True))
        assert_that(sut.request_heartbeat_response, is_(True))

    def test_merge_fills_unset_timeout(self):
        sut = NodeConfig()
        sut.merge(NodeConfig(expect_update_timeout=5))
        assert_that(sut.expect_update_timeout, is_(5))

    def test_merge_keeps_set_timeout(self):
        sut = NodeConfig(expect_update_timeout=3)
        sut.merge(NodeConfig(expect_update_timeout=5))
        assert_that(sut.expect_update_timeout, is_(3))

    def test_merge_incompatible(self):
        assert_that(calling(NodeConfig().merge).with_args(ChildConfig()), raises(MergeError))

    def test_equality(self):
        assert_that(NodeConfig(True, 5), is_(equal_to(NodeConfig(True, 5))))


class ChildConfigTest(unittest.TestCase):

    def test_merge(self):
        sut = ChildConfig(request_ack=False, revert_state=False, smart_sleep=False, child_update_timeout=0)
        sut.merge(ChildConfig(request_ack=True, revert_state=False, smart_sleep=True, child_update_timeout=7))
        assert_that(sut, is_(equal_to(ChildConfig(True, False, True, 7))))

    def test_merge_incompatible(self):
        assert_that(calling(ChildConfig().merge).with_args(object()), raises(MergeError))
