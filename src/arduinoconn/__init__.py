"""

Arduino Connections

- Conduit: a bi-directional channel over a serial port. Combines a line reader for input
  and the raw port for output.
- PortRegistry: lists the serial ports the platform knows about, optionally restricted to
  configured scan paths, and finds a port by its exact device name.
- SerialConnector: owns one port from construction to close(). Construction resolves, opens and
  configures the port (9600 baud, 8 data bits, 1 stop bit, no parity) and registers for notifications.
  Lines from the device go to a sink; text is sent with send().
- Settings are read from arduinoconn.cfg files via configobj (see config/arduinoconn.schema.cfg).


## Threading

Construction, send() and close() run on the caller's thread. send() blocks until the port accepts
the data.

Each open conduit has one monitor thread that polls the port and posts SerialPortEvent notifications.
Events are handled one at a time, in order, so lines reach the sink in the order they arrived.
Reading a line blocks the monitor thread until the terminator arrives; only closing the port
releases a blocked read.

The connector state is guarded by a lock shared by close() and the notification handler. Once close()
has returned no more lines are delivered and the port is released.

Exclusive ownership of a port is left to the operating system: the port is opened in exclusive mode
and a second open fails as busy.

"""
