import os
import shutil
import subprocess

from .errors import ToolUnavailable

class RunCmdError(Exception):
    def __init__(self, cmd, out, err, returncode=None):
        super(RunCmdError, self).__init__(err)

        self.cmd = cmd
        self.out = out
        self.err = err
        self.returncode = returncode
        self._message = None

    @property
    def message(self):
        if self._message is not None:
            return self._message
        msg = "--- {}.command [{}] ---\n".format(self.__class__.__name__, self.cmd)
        if self.returncode is not None:
            msg += "--- {}.returncode {} ---\n".format(self.__class__.__name__, self.returncode)
        if self.out:
            msg += "--- {}.out ---\n".format(self.__class__.__name__)
            msg += self.out
        if self.err:
            msg += "--- {}.err ---\n".format(self.__class__.__name__)
            msg += self.err
        msg += "-----------------------\n"
        self._message = msg
        return msg

    def __str__(self):
        return self.message

class RunCmdTimeout(RunCmdError):
    pass

def require_tool(path, cwd=None):
    # path may be relative to cwd, e.g. ./gradlew inside the project,
    # or a bare name looked up on PATH, e.g. gradle
    if os.sep not in path:
        found = shutil.which(path)
        if found is None:
            raise ToolUnavailable('{} is not found on PATH'.format(path))
        return found
    full_path = path
    if cwd is not None and not os.path.isabs(path):
        full_path = os.path.join(cwd, path)
    if not os.path.isfile(full_path) or not os.access(full_path, os.X_OK):
        raise ToolUnavailable('{} is not an executable file'.format(full_path))
    return full_path

def run_cmd(cmd, cwd=None, env=None, timeout=None, input=None):
    '''
    Run a shell command and return its stdout.

    Raises RunCmdError when the command exits with non-zero status,
    and RunCmdTimeout when it does not finish within timeout seconds.
    '''
    if isinstance(input, str):
        input = input.encode('utf-8')
    pipe = subprocess.Popen(
        cmd, stdin=subprocess.PIPE if input is not None else None,
        stdout=subprocess.PIPE, stderr=subprocess.PIPE,
        shell=True, cwd=cwd, env=env)
    try:
        out, err = pipe.communicate(input=input, timeout=timeout)
    except subprocess.TimeoutExpired:
        pipe.kill()
        out, err = pipe.communicate()
        raise RunCmdTimeout(cmd, _decode(out), _decode(err))
    out = _decode(out)
    err = _decode(err)

    if pipe.returncode != 0:
        raise RunCmdError(cmd, out, err, returncode=pipe.returncode)

    return out

def _decode(data):
    if isinstance(data, bytes):
        return data.decode('utf-8', errors='replace')
    if data is None:
        return ''
    return data

def make_env(**overrides):
    env = dict(os.environ)
    for key, value in overrides.items():
        if value is None:
            env.pop(key, None)
        else:
            env[key] = str(value)
    return env
