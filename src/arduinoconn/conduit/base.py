from abc import abstractmethod


class Conduit:
    """
    A two-way channel to a device. Lines are read from the input stream and bytes written to the output stream.
    Both streams are usable only while the conduit is open.
    """

    @property
    @abstractmethod
    def target(self):
        """ the device or transport handle behind this conduit. """
        raise NotImplementedError

    @property
    @abstractmethod
    def input(self):
        """ the readable side of the conduit, supporting readline(). """
        raise NotImplementedError

    @property
    @abstractmethod
    def output(self):
        """ the writable side of the conduit, accepting bytes via write(). """
        raise NotImplementedError

    @property
    @abstractmethod
    def open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def close(self):
        """
        Releases the device. Both streams are unusable afterwards. Closing again has no effect.
        """
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
