"""
The gateway, its configuration, the events it publishes and the network sanity checker.

Import the gateway itself from sensornet.gateway.gateway.
"""
