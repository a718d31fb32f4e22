"""
Line oriented text streams over a byte source.
"""
import locale

LF = b'\n'


def platform_encoding():
    """ The text encoding used when none is configured. """
    return locale.getpreferredencoding(False)


def encode_text(text, encoding=None):
    """
    Converts a string to bytes in the given encoding, or the platform encoding when none is given.
    Bytes are passed through unchanged. Anything else is a TypeError.
    >>> encode_text("abc", "ascii")
    b'abc'
    >>> encode_text(b"abc")
    b'abc'
    """
    if isinstance(text, (bytes, bytearray)):
        return bytes(text)
    if not isinstance(text, str):
        raise TypeError("expected str or bytes, not %s" % type(text).__name__)
    return text.encode(encoding or platform_encoding())


def strip_terminator(line):
    """
    Removes a trailing line terminator.
    >>> strip_terminator('abc\\r\\n')
    'abc'
    >>> strip_terminator('abc\\n')
    'abc'
    >>> strip_terminator('abc')
    'abc'
    """
    if line.endswith('\r\n'):
        return line[:-2]
    if line.endswith('\n'):
        return line[:-1]
    return line


class LineReader:
    """
    A readable text stream that decodes one line at a time from a byte source.

    The source must provide read_until(terminator), such as a `serial.Serial`.
    Bytes are consumed only up to and including the line terminator, so anything
    after it stays with the source and remains visible to `in_waiting`.
    """

    def __init__(self, source, encoding=None):
        self.source = source
        self.encoding = encoding or platform_encoding()
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def readable(self):
        return True

    def readline(self) -> str:
        """
        Reads the next line, blocking until a terminator arrives or the stream ends.
        :return: the decoded line including its terminator, or '' at the end of the stream.
        :raises UnicodeDecodeError: if the line bytes are not valid in the stream encoding.
        :raises ValueError: if the stream is closed.
        """
        if self._closed:
            raise ValueError("I/O operation on closed stream")
        data = self.source.read_until(LF)
        return data.decode(self.encoding)

    def __iter__(self):
        return self

    def __next__(self):
        line = self.readline()
        if not line:
            raise StopIteration
        return line

    def close(self):
        """ Detaches from the source. The source itself is not closed. """
        self._closed = True
