""" Bi-directional byte channels to the gateway device. """
