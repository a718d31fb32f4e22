"""
Connector settings, loaded from configuration files.
"""
import os

from arduinoconn.config.config import apply_conf_path, load_config
from arduinoconn.conduit.serial_events import DEFAULT_POLL_INTERVAL
from arduinoconn.support.mixins import CommonEqualityMixin, StringerMixin

config_name = 'arduinoconn'

# the schema ships with this package
schema_directory = os.path.dirname(__file__)


class ConnectorSettings(CommonEqualityMixin, StringerMixin):
    """
    The configurable parts of a connector. The line parameters and open timeout are fixed
    and not part of the settings.
    """

    def __init__(self, owner='arduinoconn', scan_paths=(), encoding=None, poll_interval=DEFAULT_POLL_INTERVAL):
        self.owner = owner
        self.scan_paths = list(scan_paths)
        self.encoding = encoding
        self.poll_interval = poll_interval


def load_settings(directory=None) -> ConnectorSettings:
    """
    Loads the [connector] section of the arduinoconn configuration.
    :param directory: the directory holding the configuration files. Defaults to the current directory.
    :raises ConfigObjError: if the configuration is invalid.
    """
    conf = load_config(config_name, directory or os.getcwd(), schema_directory)
    settings = ConnectorSettings()
    apply_conf_path(conf, ['connector'], settings)
    settings.scan_paths = list(settings.scan_paths)
    settings.encoding = settings.encoding or None
    return settings
