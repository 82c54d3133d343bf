import time

from sensornet.support.mixins import CommonEqualityMixin


class RetryStrategy:
    def __call__(self, *args, **kwargs):
        return 0


class PeriodRetryStrategy(RetryStrategy, CommonEqualityMixin):

    def __init__(self, retry_period, last_tried=None):
        """
        :param retry_period: The retry period in seconds.
        """
        self.last_tried = last_tried         # the time last tried
        self.retry_period = retry_period

    def __call__(self, current_time=None, dry_run=False):
        """return the length of time until an operation should be retried
            :param dry_run: when True, the last tried time is not updated
        """
        if current_time is None:
            current_time = time.time()
        result = self._time_to_retry(current_time)
        if not dry_run and result <= 0:
            self.last_tried = current_time
        return result

    def _time_to_retry(self, current_time):
        """
        Determines how long until the next try
        :param current_time: The current time.
        :return: 0 or less if it is time to retry, otherwise the seconds remaining.
        """
        return 0 if self.last_tried is None else self.retry_period - (current_time - self.last_tried)


class ScheduledRetryStrategy(RetryStrategy, CommonEqualityMixin):
    """
    A fixed schedule of delays. Calling with the number of attempts already made gives the delay
    before the next attempt, or None once the schedule is used up.
    """

    def __init__(self, delays):
        self.delays = tuple(delays)

    def __call__(self, attempts):
        if attempts < 0 or attempts >= len(self.delays):
            return None
        return self.delays[attempts]

    @property
    def max_attempts(self):
        return len(self.delays)
