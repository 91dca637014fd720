import argparse
import sys

from . import ui
from .config import load_config, MIN_PORT, MAX_PORT
from .errors import InvalidConfig
from .runner import InstrumentedTestRun

parser = argparse.ArgumentParser(prog='instrumented_tests',
    description='Run android instrumented tests via a gradle command against a newly created avd. '
                'Options default to the environment variables shown in brackets.')

parser.add_argument('--config', default=None,
    help='JSON file with configuration values [INSTRUMENTED_TESTS_CONFIG]')

avd_group = parser.add_argument_group('avd')
avd_group.add_argument('--avd_name', default=None,
    help='Name of the avd to be created [AVD_NAME]')
avd_group.add_argument('--avd_package', default=None,
    help="System image of the avd, e.g. 'system-images;android-29;default;x86' [AVD_PACKAGE]")
avd_group.add_argument('--avd_abi', default=None,
    help='The ABI to use for the avd [AVD_ABI]')
avd_group.add_argument('--avd_tag', default=None,
    help='The sys-img tag to use for the avd [AVD_TAG]')
avd_group.add_argument('--avd_options', default=None,
    help="Other avdmanager create options, e.g. \"--device 'Nexus 5' --sdcard 512M\" [AVD_OPTIONS]")

emulator_group = parser.add_argument_group('emulator')
emulator_group.add_argument('--port', default=None,
    help='Console port, an even number in [{}, {}]. Random if not given [AVD_PORT]'.format(
        MIN_PORT, MAX_PORT))
emulator_group.add_argument('--boot_timeout', default=None,
    help='Seconds to wait for the emulator to boot, defaults to 500 [AVD_BOOT_TIMEOUT]')
emulator_group.add_argument('--emulator_options', default=None,
    help='Extra options for the emulator command [EMULATOR_OPTIONS]')
emulator_group.add_argument('--show_window', action='store_true', default=None,
    help='Show the emulator window, hidden by default [AVD_SHOW_WINDOW]')
emulator_group.add_argument('--sdk_path', default=None,
    help='The path to your android sdk directory [ANDROID_HOME]')

gradle_group = parser.add_argument_group('gradle')
gradle_group.add_argument('--task', default=None,
    help='The gradle task you want to execute, defaults to connectedCheck [FL_GRADLE_TASK]')
gradle_group.add_argument('--flags', default=None,
    help='All parameter flags you want to pass to the gradle command [FL_GRADLE_FLAGS]')
gradle_group.add_argument('--project_dir', default=None,
    help='The root directory of the gradle project, defaults to . [FL_GRADLE_PROJECT_DIR]')
gradle_group.add_argument('--gradle_path', default=None,
    help='The gradle executable, defaults to ./gradlew [FL_GRADLE_PATH]')

def main(argv=None):
    args = parser.parse_args(argv)
    values = vars(args)
    config_path = values.pop('config')

    try:
        config = load_config(values, config_path=config_path)
    except InvalidConfig as e:
        ui.error(e.message)
        return 2

    result = InstrumentedTestRun(config).run()
    if isinstance(result.error, InvalidConfig):
        return 2
    if not result.success:
        return 1
    return 0

if __name__ == '__main__':
    sys.exit(main())
