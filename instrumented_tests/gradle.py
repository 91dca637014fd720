import subprocess

from . import ui
from .utils import require_tool, make_env

class TaskResult:
    def __init__(self, command, returncode, output):
        self.command = command
        self.returncode = returncode
        self.output = output

    @property
    def success(self):
        return self.returncode == 0

    def __repr__(self):
        return '<TaskResult [{}] returncode={}>'.format(self.command, self.returncode)

class GradleRunner:
    def __init__(self, gradle_path='./gradlew'):
        self.gradle_path = gradle_path

    def build_cmd(self, task, flags=None):
        cmd = '{} {}'.format(self.gradle_path, task)
        if flags:
            cmd += ' ' + flags
        return cmd

    def execute(self, task, flags, project_dir, serial, echo=True):
        '''
        Run a gradle task against the device with the given serial.
        Output is printed while it arrives and kept in the returned TaskResult.
        '''
        require_tool(self.gradle_path, cwd=project_dir)
        cmd = self.build_cmd(task, flags)
        ui.message('$ {}'.format(cmd), serial=serial)

        proc = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
            shell=True, cwd=project_dir, env=make_env(ANDROID_SERIAL=serial))
        lines = []
        with proc.stdout:
            for raw in proc.stdout:
                line = raw.decode('utf-8', errors='replace').rstrip('\r\n')
                lines.append(line)
                if echo:
                    ui.output_lines([line], prefix='')
        returncode = proc.wait()
        return TaskResult(cmd, returncode, '\n'.join(lines))
