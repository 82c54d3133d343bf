"""
The id cache: a JSON array of the node ids handed out so far, kept so that ids survive a restart
and are not given to a second node.
"""
import json
import logging
import os
import tempfile

from sensornet.gateway.events import ConnectionStatusEvent, NodeDiscoveredEvent, NodeIdReservedEvent
from sensornet.sensors.node import Node, is_valid_node_id

logger = logging.getLogger(__name__)


def load_cache(path):
    """
    Reads the node ids from the cache file. A missing file is an empty cache.
    :return: the sorted list of valid node ids
    :raises ValueError: when the file is not a JSON array of integers
    """
    if not os.path.exists(path):
        logger.info("no id cache at %s" % path)
        return []
    with open(path, 'r') as f:
        ids = json.load(f)
    if not isinstance(ids, list) or not all(isinstance(i, int) for i in ids):
        raise ValueError("id cache %s is not a list of node ids" % path)
    valid = sorted(set(i for i in ids if is_valid_node_id(i)))
    if len(valid) != len(ids):
        logger.warning("ignoring invalid or repeated ids in %s" % path)
    return valid


def save_cache(path, ids):
    """ Writes the node ids, replacing the cache file in one step. """
    directory = os.path.dirname(os.path.abspath(path))
    fd, temp = tempfile.mkstemp(prefix='.ids', dir=directory)
    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(sorted(ids), f)
        os.replace(temp, path)
    except BaseException:
        os.unlink(temp)
        raise
    logger.debug("saved %d ids to %s" % (len(ids), path))


def cached_nodes(path):
    """ bare nodes for each id in the cache. """
    return [Node(node_id) for node_id in load_cache(path)]


class IdCacheUpdater:
    """ An event listener that rewrites the cache whenever the set of known node ids may have changed. """

    def __init__(self, gateway, path):
        self.gateway = gateway
        self.path = path

    def __call__(self, event):
        if isinstance(event, (NodeIdReservedEvent, NodeDiscoveredEvent, ConnectionStatusEvent)):
            try:
                save_cache(self.path, self.gateway.given_ids())
            except OSError as e:
                logger.error("unable to write id cache %s: %s" % (self.path, e))
