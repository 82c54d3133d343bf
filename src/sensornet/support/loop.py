"""
Background loops. Every long running activity in the gateway (connection reader, connection writer,
connection maintenance, network sanity checks) runs as an AsyncLoop on its own daemon thread.
"""
import logging
import threading

logger = logging.getLogger(__name__)


class AsyncLoop:
    """ Calls loop() over and over on a daemon thread until stopped.
        An exception raised by one pass is logged and the next pass goes ahead.
        Subclasses override loop(), or pass the function to call.
    """

    def __init__(self, fn=None, args=(), name=None, log=logger):
        """
        :param fn: called on each pass when loop() is not overridden
        :param args: positional arguments for fn
        :param name: the thread name, which shows up in log records
        """
        self.fn = fn
        self.args = args
        self.name = name
        self.stop_event = threading.Event()
        self.background_thread = None
        self.logger = log
        self._lock = threading.Lock()

    def start(self):
        """
        Starts the background thread. Calling start on a loop that is already running does nothing.
        """
        with self._lock:
            if self.background_thread is None:
                if self.stop_event.is_set():
                    self.stop_event = threading.Event()
                t = threading.Thread(target=self._run, args=(self.stop_event,), name=self.name, daemon=True)
                self.background_thread = t
                t.start()

    @property
    def alive(self):
        thread = self.background_thread
        return thread is not None and thread.is_alive()

    def exception_handler(self, e):
        self.logger.exception(e)

    def _run(self, stop_event):
        """ thread body. The stop event is passed in so that a restart cannot revive a loop that was stopped. """
        self._do(self.startup)
        while not stop_event.is_set():
            self._do(self.loop)
        self._do(self.shutdown)
        self.logger.debug("background thread %s exiting" % self.name)

    def _do(self, callme):
        """ runs one step, logging what it raises. """
        try:
            callme()
        except Exception as e:
            self.exception_handler(e)

    def startup(self):
        """ called on the loop thread before the first pass. """

    def loop(self):
        self.fn(*self.args)

    def shutdown(self):
        """ called on the loop thread after the last pass. """

    def running(self):
        return not self.stop_event.is_set()

    def wait(self, timeout):
        """ sleeps for the given number of seconds, returning early with True if the loop is stopped. """
        return self.stop_event.wait(timeout)

    def signal_stop(self):
        """ asks the loop to finish without waiting for it. """
        self.stop_event.set()

    def stop(self, timeout=None):
        """ stops the loop and waits for the thread to finish, unless called from the loop's own thread. """
        self.signal_stop()
        with self._lock:
            thread = self.background_thread
            self.background_thread = None
        if thread and thread is not threading.current_thread():
            thread.join(timeout)
