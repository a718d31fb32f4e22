from abc import abstractmethod
from enum import Enum


class ConnectorState(Enum):
    """ The listener registration states of a connector. A connector never returns to REGISTERED. """
    UNREGISTERED = 'unregistered'
    REGISTERED = 'registered'
    CLOSED = 'closed'


class LineSink:
    """
    Receives the lines read by a connector, one call per line, from the connector's notification thread.
    Any object with an on_line method can be used; subclassing is not required.
    """

    @abstractmethod
    def on_line(self, line: str):
        raise NotImplementedError


class PrintLineSink(LineSink):
    """ Prints each line to stdout. """

    def on_line(self, line):
        print(line)


class CallableLineSink(LineSink):
    """ Adapts a function taking the line to a sink. """

    def __init__(self, fn):
        self.fn = fn

    def on_line(self, line):
        self.fn(line)


def as_sink(sink) -> LineSink:
    """
    Converts the argument to something with an on_line method.
    :param sink: an object with on_line, a callable taking the line, or None to print lines.
    """
    if sink is None:
        return PrintLineSink()
    if hasattr(sink, 'on_line'):
        return sink
    if callable(sink):
        return CallableLineSink(sink)
    raise TypeError("%r is not a line sink" % (sink,))
