"""
Sensor network gateway

- Message: one line of the wire protocol, `node;child;type;ack;subtype;payload`. The same header
  is carried in MQTT topics.
- Conduit: abstraction of a bi-directional channel. Combines 2 streams for reading and writing.
  Serial ports, TCP sockets and MQTT subscriptions are all presented as conduits.
- Connection: opens a conduit to the gateway device and runs a reader loop and a writer loop over it.
  The writer paces messages, resends those that are not acknowledged and holds messages for
  sleeping nodes until they wake up.
- Gateway: owns the registry of nodes, children and variables. Routes incoming messages to the registry,
  answers id, config and time requests and publishes node events.
- Network sanity checker: probes the gateway device and the nodes at regular intervals and marks
  silent nodes as unreachable. Drops the connection when the device stops answering.
- MaintainedConnection: reopens the connection when it is lost.


## Threading

The event register is the meeting point of the threads. Incoming messages are fired from the
connection reader thread, connection events from whichever thread opened or dropped the
connection, reachability events from the sanity checker thread. Listeners are called on the
firing thread, so they must be quick and must not block on the connection.

Each loop (reader, writer, maintenance, sanity checks) is an AsyncLoop on its own daemon thread.
"""
