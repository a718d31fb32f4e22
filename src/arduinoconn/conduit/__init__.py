"""
The conduit package provides an abstraction of a bi-directional stream to a serial port.

Port discovery lists the ports the platform knows about. A SerialConduit owns an open port,
exposing a line reader for input and the raw port for output, and raises SerialPortEvent
notifications from a background monitor thread when data arrives.
"""
