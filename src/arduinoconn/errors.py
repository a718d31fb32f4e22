"""
Errors raised by the connector. Construction failures derive from PortOpenError or are
a PortNotFoundError; stream failures are raised per line read or per send.
"""


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class PortNotFoundError(ConnectorError):
    """ No port with the requested name is known to the port registry. """


class PortOpenError(ConnectorError):
    """ The port was found but could not be opened and configured. """


class PortOpenTimeoutError(PortOpenError):
    """ The port did not become available before the open timeout elapsed. """


class PortBusyError(PortOpenError):
    """ The port is exclusively held by another owner. """


class UnsupportedConfigurationError(PortOpenError):
    """ The port rejected the line parameters. """


class TooManyListenersError(ConnectorError):
    """ A conduit accepts only a single event listener. """


class StreamReadError(ConnectorError):
    """ A line could not be read or decoded. """


class StreamWriteError(ConnectorError):
    """ Data could not be written to the port. """


class ConnectorClosedError(StreamWriteError):
    """ The connector has been closed and its streams released. """
