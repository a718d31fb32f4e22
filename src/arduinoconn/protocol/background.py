"""
Runs work on a background thread. The serial notification thread is built on this.
"""
import logging
import threading
import time

logger = logging.getLogger(__name__)


class AsyncLoop:
    """ Calls loop() repeatedly on a daemon thread until stopped.
        An exception raised by one iteration goes to exception_handler and the loop carries on.
        Subclasses implement loop(), and may override the startup and shutdown hooks.
    """

    def __init__(self, log=logger, name=None):
        """
        :param log the logger used by the loop and its exception handler
        :param name thread name, shown in logs and thread dumps
        """
        self.name = name
        self.stop_event = threading.Event()
        self.background_thread = None
        self.logger = log
        self._lock = threading.Lock()

    def start(self):
        """
        Starts the background thread. Calling start on a running loop has no effect.
        """
        with self._lock:
            if self.background_thread is None:
                t = threading.Thread(target=self._run, name=self.name, daemon=True)
                self.background_thread = t
                t.start()

    def exception_handler(self, e):
        self.logger.exception(e)

    def _run(self):
        """ thread body: startup, loop until stopped, shutdown. """
        self._do(self.startup)
        while self.running():
            self._do(self.loop)
        self._do(self.shutdown)
        self.logger.debug("background thread %s exiting", self.name)

    def _do(self, callme):
        """ calls callme, routing any exception to the handler. """
        try:
            callme()
        except Exception as e:
            time.sleep(0)
            self.exception_handler(e)

    def startup(self):
        """ hook run once on the background thread before the first iteration. """
        pass

    def loop(self):
        """ one iteration of work, called repeatedly on the background thread. """
        raise NotImplementedError

    def shutdown(self):
        """ hook run once on the background thread after the last iteration. """
        pass

    def running(self):
        return not self.stop_event.is_set()

    def stop(self, wait=True):
        """
        Signals the loop to stop.
        :param wait: when True, blocks until the background thread has exited. A loop
            stopping itself from its own thread never waits.
        """
        self.stop_event.set()
        with self._lock:
            thread = self.background_thread
            self.background_thread = None if wait else thread
        if wait and thread and thread is not threading.current_thread():
            thread.join()

    def join(self):
        """ waits for a previously stopped loop to finish. """
        self.stop(wait=True)
