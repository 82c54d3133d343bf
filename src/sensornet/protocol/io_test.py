import sys
import threading
import unittest

import timeout_decorator
from hamcrest import assert_that, calling, is_, raises

from sensornet.protocol.io import BytePipe


def debug_timeout(value):
    """
    Replaces the timeout value with a very large one if the tests are running under a debugger.
    This prevents the main thread from throwing an exception and exiting when the test times out
    due to a breakpoint.
    """
    return value if sys.gettrace() is None else 100000


class BytePipeTest(unittest.TestCase):

    def test_what_is_written_is_read(self):
        sut = BytePipe()
        sut.writer.write(b"abc")
        assert_that(sut.reader.read(3), is_(b"abc"))

    def test_readline_stops_at_newline(self):
        sut = BytePipe()
        sut.writer.write(b"1;2;3;0;1;x\nnext")
        assert_that(sut.reader.readline(), is_(b"1;2;3;0;1;x\n"))
        assert_that(sut.reader.readline(), is_(b"next"))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_read_times_out_empty(self):
        sut = BytePipe(timeout=0.01)
        assert_that(sut.reader.readline(), is_(b""))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_blocked_reader_is_woken_by_writer(self):
        sut = BytePipe(timeout=1)
        result = []
        t = threading.Thread(target=lambda: result.append(sut.reader.readline()))
        t.start()
        sut.writer.write(b"hello\n")
        t.join()
        assert_that(result, is_([b"hello\n"]))

    def test_close_closes_pipe(self):
        sut = BytePipe()
        sut.reader.close()
        assert_that(sut.closed, is_(True))
        assert_that(calling(sut.put).with_args(b"x"), raises(ValueError))

    @timeout_decorator.timeout(debug_timeout(2))
    def test_closed_pipe_drains_remaining(self):
        sut = BytePipe(timeout=10)
        sut.put(b"ab")
        sut.close()
        assert_that(sut.take(), is_(b"ab"))
        assert_that(sut.take(), is_(b""))
