import unittest
from unittest.mock import Mock

from hamcrest import assert_that, is_

from sensornet.conduit.base import StreamConduit


class StreamConduitTest(unittest.TestCase):

    def test_separate_streams(self):
        read, write = Mock(), Mock()
        sut = StreamConduit(read, write, target="device")
        assert_that(sut.input, is_(read))
        assert_that(sut.output, is_(write))
        assert_that(sut.target, is_("device"))
        assert_that(sut.closes_on_empty_read, is_(False))

    def test_single_stream(self):
        stream = Mock()
        sut = StreamConduit(stream)
        assert_that(sut.output, is_(stream))
        sut.close()
        stream.close.assert_called_once_with()

    def test_close_closes_both(self):
        read, write = Mock(), Mock()
        sut = StreamConduit(read, write)
        assert_that(sut.open, is_(True))
        sut.close()
        sut.close()
        assert_that(sut.open, is_(False))
        read.close.assert_called_once_with()
        write.close.assert_called_once_with()

    def test_read_stream_closed_when_write_close_fails(self):
        read, write = Mock(), Mock()
        write.close.side_effect = OSError("broken pipe")
        sut = StreamConduit(read, write)
        with self.assertRaises(OSError):
            sut.close()
        read.close.assert_called_once_with()
