""" Thread helpers, the event register and retry strategies. """
