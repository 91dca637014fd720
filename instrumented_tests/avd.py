import re

from . import ui
from .errors import ToolUnavailable, ImageCreateFailed
from .utils import run_cmd, require_tool, RunCmdError

_name_pattern = re.compile(r'^\s*Name:\s*(.+?)\s*$', re.MULTILINE)

def parse_avd_names(output):
    '''
    Collect names from the output of `avdmanager list avd`, e.g.

        Available Android Virtual Devices:
            Name: Nexus_5_API_29
          Device: Nexus 5 (Google)
            Path: /home/user/.android/avd/Nexus_5_API_29.avd
          Target: Default Android System Image
                  Based on: Android 10.0 (Q) Tag/ABI: default/x86
        ---------
            Name: test_avd
        ...
    '''
    return set(_name_pattern.findall(output))

class AvdManager:
    def __init__(self, avdmanager_path):
        self.avdmanager_path = avdmanager_path

    def run(self, cmd, input=None):
        # wrapper for avdmanager
        require_tool(self.avdmanager_path)
        try:
            return run_cmd('{} {}'.format(self.avdmanager_path, cmd), input=input)
        except RunCmdError as e:
            if 'Unsupported major.minor version' in e.err or \
                    'UnsupportedClassVersionError' in e.err:
                ui.error('Problem on versions of java or javac')
                ui.error('Following commands would be help for debugging')
                ui.error(' - which (java|javac)')
                ui.error(' - echo ($JAVA_HOME|$PATH)')
            raise

    def list(self):
        try:
            output = self.run('list avd')
        except RunCmdError as e:
            raise ToolUnavailable('avdmanager list avd failed\n' + e.message)
        return parse_avd_names(output)

    def create(self, name, package, abi=None, tag=None, options=None):
        cmd = "create avd --name '{}' --package '{}'".format(name, package)
        if abi is not None:
            cmd += " --abi '{}'".format(abi)
        if tag is not None:
            cmd += " --tag '{}'".format(tag)
        if options:
            cmd += ' ' + options

        try:
            # answer the custom hardware profile prompt
            self.run(cmd, input='no\n')
        except RunCmdError as e:
            if 'Package path is not valid' in e.err:
                ui.important('You would install the package {} with sdkmanager'.format(package))
            raise ImageCreateFailed('Could not create AVD {}\n{}'.format(name, e.message))
        ui.success('AVD {} created'.format(name))

    def delete(self, name, missing_ok=False):
        if missing_ok and name not in self.list():
            return False
        try:
            self.run("delete avd -n '{}'".format(name))
        except RunCmdError as e:
            raise ToolUnavailable('Could not delete AVD {}\n{}'.format(name, e.message))
        return True
