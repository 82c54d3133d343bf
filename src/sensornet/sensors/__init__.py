""" The registry model: nodes, their children and the variables of each child. """
