from . import ui
from .utils import run_cmd, require_tool, make_env, RunCmdError

class Adb:
    '''
    Device control through adb. Every call is scoped to one serial,
    since other emulators may be attached to the same adb server.
    '''
    def __init__(self, adb_path):
        self.adb_path = adb_path

    def run(self, cmd, serial, timeout=None):
        require_tool(self.adb_path)
        return run_cmd('{} -s {} {}'.format(self.adb_path, serial, cmd), timeout=timeout)

    def trigger(self, serial, command, timeout=None):
        # e.g. trigger('emulator-5554', 'emu kill')
        try:
            self.run(command, serial, timeout=timeout)
        except RunCmdError as e:
            ui.error('adb {} failed'.format(command), serial=serial)
            ui.output_lines(e.message.splitlines(), prefix='E: ')
            return False
        return True

    def getprop(self, serial, prop, timeout=None):
        '''
        Query a system property with ANDROID_SERIAL selecting the device.
        Returns None if adb could not reach the device in time.
        '''
        require_tool(self.adb_path)
        try:
            out = run_cmd('{} shell getprop {}'.format(self.adb_path, prop),
                env=make_env(ANDROID_SERIAL=serial), timeout=timeout)
        except RunCmdError:
            # device offline, not listed yet, or timed out
            return None
        return out.strip()
