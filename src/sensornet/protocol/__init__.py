""" The wire protocol codec and in-memory streams. """
