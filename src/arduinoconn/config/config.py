import os
import platform

from configobj import ConfigObj, ConfigObjError, Section
from validate import Validator

# The default extension for configuration files
config_extension = '.cfg'


def config_flavor(name, flavor=None):
    """
    >>> config_flavor('arduinoconn')
    'arduinoconn'
    >>> config_flavor('arduinoconn', 'schema')
    'arduinoconn.schema'
    """
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    >>> config_filename("arduinoconn.schema", "conf").replace(os.sep, "/")
    'conf/arduinoconn.schema.cfg'
    """
    config_file = os.path.join(directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Reads one configuration file.
    :param file: path of the file
    :param must_exist: when False a missing file reads as an empty configuration, otherwise it raises IOError
    :raises ConfigObjError: if the file cannot be parsed. The message names the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Reads <name>.<subpart>.cfg from the directory, or <name>.cfg when no subpart is given.
    A missing file reads as an empty configuration.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    config = load_config_file_base(file, False)
    return config


def load_config_schema(name, directory) -> ConfigObj:
    """
    Loads the schema specialization of a config file. Check arguments contain commas, so the
    schema is read without list parsing. A missing schema gives an empty one.
    """
    file = config_filename(config_flavor(name, 'schema'), directory)
    return ConfigObj(file, list_values=False) if os.path.exists(file) else ConfigObj()


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def load_config(name, directory, schema_directory=None):
    """
        Merges the configuration files for name, later files overriding earlier ones:
        <name>.default.cfg, <name>.<os>.cfg, ~/<name>.cfg and finally <name>.cfg.
        The merged configuration is then validated against the schema specialization,
        which also supplies defaults and converts values to their declared types.
    :param directory: the location of the configuration files
    :param schema_directory: the location of the schema, when not alongside the configuration files.
    :return: the validated ConfigObj
    :raises ConfigObjError: if a file cannot be parsed or the configuration fails validation
    """
    local_config = config_flavor_file(name, directory)
    default_config = config_flavor_file(name, directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    user_config = load_config_file_base(os.path.expanduser(
        '~/' + name + config_extension), must_exist=False)
    config = ConfigObj()
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    config.merge(local_config)

    config.configspec = load_config_schema(name, schema_directory or directory)
    validator = Validator()
    result = config.validate(validator)
    if result is not True:
        raise ConfigObjError("the config file %s failed validation %s" % (name, result))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Walks nested sections by name.
    :return: the section at the end of the path, or None when any part is missing
    """
    for p in path:
        conf = conf.get(p, None)
        if conf is None:
            return
    return conf


def apply_conf_path(conf: Section, name_parts, target):
    """ Copies the values in the section found at name_parts onto target. A missing section changes nothing. """
    conf = fetch_conf_path(conf, name_parts)
    if conf:
        apply_conf(conf, target)


def apply_conf(conf: Section, target):
    """
    Sets each configured value on the target, provided the target already has an attribute of that name.
    Unknown keys are ignored.
    """
    for k, v in conf.items():
        if hasattr(target, k):
            setattr(target, k, v)
