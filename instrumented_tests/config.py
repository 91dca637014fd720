import json, os
import random

from .errors import InvalidConfig
from .utils import run_cmd, RunCmdError

# Console ports for emulators are even, adb uses port+1.
#   (5554,5555) (5556,5557) ... (5584,5585)
MIN_PORT = 5554
MAX_PORT = 5584

BOOT_COMPLETED_PROP = 'sys.boot_completed'
BOOT_COMPLETED_VALUE = '1'

default_config = {
    'avd_name': None,
    'avd_package': None,
    'avd_abi': None,
    'avd_tag': None,
    'avd_options': None,
    'port': None,
    'boot_timeout': 500,
    'poll_interval': 2,
    'query_timeout': 10,
    'shutdown_timeout': 30,
    'emulator_options': None,
    'show_window': False,
    'sdk_path': None,
    'task': 'connectedCheck',
    'flags': None,
    'project_dir': '.',
    'gradle_path': './gradlew',
}

# key -> environment variables, first match wins
env_names = {
    'avd_name': ['AVD_NAME'],
    'avd_package': ['AVD_PACKAGE', 'TARGET_ID'],
    'avd_abi': ['AVD_ABI'],
    'avd_tag': ['AVD_TAG'],
    'avd_options': ['AVD_OPTIONS'],
    'port': ['AVD_PORT'],
    'boot_timeout': ['AVD_BOOT_TIMEOUT'],
    'emulator_options': ['EMULATOR_OPTIONS'],
    'show_window': ['AVD_SHOW_WINDOW'],
    'sdk_path': ['ANDROID_HOME', 'ANDROID_SDK_ROOT'],
    'task': ['FL_GRADLE_TASK'],
    'flags': ['FL_GRADLE_FLAGS'],
    'project_dir': ['FL_GRADLE_PROJECT_DIR'],
    'gradle_path': ['FL_GRADLE_PATH'],
}

CONFIG_PATH_ENV = 'INSTRUMENTED_TESTS_CONFIG'

def serial_for_port(port):
    return 'emulator-{}'.format(port)

def _check_port_is_available(port):
    try:
        run_cmd('lsof -i :{}'.format(port), timeout=10)
        return False
    except RunCmdError:
        return True

def random_port():
    '''
    Pick an even console port whose adb port (port+1) is free as well.
    '''
    ports = list(range(MIN_PORT, MAX_PORT + 1, 2))
    random.shuffle(ports)
    for port in ports:
        if _check_port_is_available(port) and _check_port_is_available(port + 1):
            return port
    raise InvalidConfig('No free emulator port in [{}, {}]'.format(MIN_PORT, MAX_PORT))

def _parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ['1', 'true', 'yes', 'on']

class Config:
    def __init__(self, **values):
        for key in default_config:
            setattr(self, key, values.pop(key, default_config[key]))
        if values:
            raise InvalidConfig('Unknown configuration keys: {}'.format(
                ', '.join(sorted(values))))

    @property
    def serial(self):
        return serial_for_port(self.port)

    @property
    def adb_path(self):
        return os.path.join(self.sdk_path, 'platform-tools', 'adb')

    @property
    def avdmanager_path(self):
        # cmdline-tools replaced tools/bin, but old SDKs only have the latter
        path = os.path.join(self.sdk_path, 'cmdline-tools', 'latest', 'bin', 'avdmanager')
        if os.path.isfile(path):
            return path
        return os.path.join(self.sdk_path, 'tools', 'bin', 'avdmanager')

    @property
    def emulator_path(self):
        path = os.path.join(self.sdk_path, 'emulator', 'emulator')
        if os.path.isfile(path):
            return path
        return os.path.join(self.sdk_path, 'tools', 'emulator')

    def validate(self):
        for key in ['avd_name', 'avd_package']:
            if not getattr(self, key):
                raise InvalidConfig('{} is required'.format(key))

        try:
            port = int(self.port)
        except (TypeError, ValueError):
            raise InvalidConfig('Port must be an integer, given {!r}'.format(self.port))
        if port != self.port and str(port) != str(self.port).strip():
            raise InvalidConfig('Port must be an integer, given {!r}'.format(self.port))
        if port % 2 != 0 or not MIN_PORT <= port <= MAX_PORT:
            raise InvalidConfig('Port must be an even number in [{}, {}], given {}'.format(
                MIN_PORT, MAX_PORT, port))
        self.port = port

        for key in ['boot_timeout', 'poll_interval', 'query_timeout', 'shutdown_timeout']:
            try:
                value = float(getattr(self, key))
            except (TypeError, ValueError):
                raise InvalidConfig('{} must be a number, given {!r}'.format(
                    key, getattr(self, key)))
            if value <= 0:
                raise InvalidConfig('{} must be positive, given {}'.format(key, value))
            setattr(self, key, value)

        self.show_window = _parse_bool(self.show_window)

        if not self.sdk_path:
            raise InvalidConfig('Please set ANDROID_HOME or ANDROID_SDK_ROOT')
        if not os.path.isdir(self.sdk_path):
            raise InvalidConfig('Unknown SDK path {}'.format(self.sdk_path))
        if not os.path.isdir(self.project_dir):
            raise InvalidConfig('Unknown project directory {}'.format(self.project_dir))
        return self

    def __repr__(self):
        return '<Config {}>'.format(', '.join(
            '{}={!r}'.format(key, getattr(self, key)) for key in default_config))

def load_config(values=None, config_path=None, environ=None):
    '''
    Build a Config from, in increasing priority:
    defaults, a JSON config file, environment variables and explicit values.

    Values set to None are treated as not given. Validation is left to
    Config.validate(), so that nothing fails before a run starts.
    '''
    if environ is None:
        environ = os.environ
    config = dict(default_config)

    if config_path is None:
        config_path = environ.get(CONFIG_PATH_ENV)
    if config_path is not None:
        if not os.path.isfile(config_path):
            raise InvalidConfig('Config file {} does not exist'.format(config_path))
        with open(config_path, 'rt') as f:
            try:
                loaded = json.load(f)
            except ValueError as e:
                raise InvalidConfig('Config file {} is not valid JSON: {}'.format(config_path, e))
        for key in loaded:
            if key not in default_config:
                raise InvalidConfig('Unknown key {} on config file {}'.format(key, config_path))
            config[key] = loaded[key]

    # using environment variables
    for key, names in env_names.items():
        for name in names:
            if environ.get(name):
                config[key] = environ[name]
                break

    if values is not None:
        for key, value in values.items():
            if value is not None:
                config[key] = value

    if config['port'] is None:
        config['port'] = random_port()

    return Config(**config)
