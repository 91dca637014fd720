import os
import re
import shlex
import subprocess
import tempfile
import time
from collections import deque
from enum import Enum

from . import ui
from .config import serial_for_port, BOOT_COMPLETED_PROP, BOOT_COMPLETED_VALUE
from .errors import EmulatorCrashed, BootTimeout, ShutdownCommandFailed
from .utils import require_tool

_console_port_pattern = re.compile(r'console on port (\d+),')

def build_emulator_cmd(emulator_path, avd_name, port, show_window=False, options=None):
    emulator_cmd = [emulator_path,
        '-avd', avd_name,
        '-port', str(port),
        '-gpu', 'on',
        '-no-boot-anim',
    ]
    if not show_window:
        emulator_cmd.append('-no-window')
    if options:
        emulator_cmd.extend(shlex.split(options))
    return emulator_cmd

class EmulatorProcess:
    '''
    A running emulator and the file receiving its stdout and stderr.

    The output file is opened in append mode, so the emulator keeps writing
    at the end while drain_output() reads it from the start with its own
    file offset.
    '''
    def __init__(self, proc, output_path, output_file, avd_name, port):
        self.proc = proc
        self.output_path = output_path
        self._output_file = output_file
        self.avd_name = avd_name
        self.port = port
        self.closed = False

    @property
    def serial(self):
        return serial_for_port(self.port)

    @property
    def pid(self):
        return self.proc.pid

    def poll(self):
        # None while running, return code once exited
        return self.proc.poll()

    def is_alive(self):
        return self.poll() is None

    def wait(self, timeout):
        try:
            self.proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def kill(self, timeout=10):
        if not self.is_alive():
            return
        self.proc.kill()
        if not self.wait(timeout):
            ui.error('Emulator process {} did not exit after kill'.format(self.pid),
                self.avd_name, self.serial)

    def drain_output(self):
        if self.closed:
            return
        with open(self.output_path, 'rb') as f:
            for line in f:
                yield line.decode('utf-8', errors='replace').rstrip('\r\n')

    def output_tail(self, max_lines=200):
        return list(deque(self.drain_output(), maxlen=max_lines))

    def console_port(self):
        for line in self.drain_output():
            m = _console_port_pattern.search(line)
            if m:
                return int(m.group(1))
        return None

    def close(self):
        if self.closed:
            raise RuntimeError('Output of emulator {} is already closed'.format(self.serial))
        self.closed = True
        self._output_file.close()
        os.unlink(self.output_path)

    def __repr__(self):
        return '<EmulatorProcess[{}] pid={}, {}>'.format(self.avd_name, self.pid,
            'running' if self.is_alive() else 'exited({})'.format(self.poll()))

def start_emulator(emulator_path, avd_name, port, show_window=False, options=None):
    '''
    Launch the emulator in background and return its EmulatorProcess.
    It does not wait for the device, see wait_for_boot().
    '''
    require_tool(emulator_path)
    emulator_cmd = build_emulator_cmd(emulator_path, avd_name, port,
        show_window=show_window, options=options)

    fd, output_path = tempfile.mkstemp(prefix='emulator_output_')
    os.close(fd)
    output_file = open(output_path, 'ab')
    try:
        proc = subprocess.Popen(emulator_cmd, stdin=subprocess.DEVNULL,
            stdout=output_file, stderr=subprocess.STDOUT,
            cwd=os.path.dirname(emulator_path))
    except OSError:
        output_file.close()
        os.unlink(output_path)
        raise
    ui.message('Started {}'.format(' '.join(emulator_cmd)), avd_name, serial_for_port(port))
    return EmulatorProcess(proc, output_path, output_file, avd_name, port)

class BootDeadline:
    def __init__(self, timeout, clock=time.monotonic):
        self._clock = clock
        self._timeout = timeout
        self._expires_at = clock() + timeout

    @property
    def timeout(self):
        return self._timeout

    @property
    def expires_at(self):
        return self._expires_at

    def remaining(self):
        return max(0.0, self._expires_at - self._clock())

    def expired(self):
        return self._clock() >= self._expires_at

class BootState(Enum):
    WAITING = 'waiting'
    BOOTED = 'booted'
    PROCESS_DIED = 'process_died'
    TIMED_OUT = 'timed_out'

class BootWaiter:
    '''
    Polls sys.boot_completed until the device reports it is booted.

    Each iteration checks that the emulator is still alive and that the
    deadline has not passed before looking at the query result, so a stale
    answer cannot hide a crash or a timeout.
    '''
    def __init__(self, adb, process, timeout, poll_interval=2, query_timeout=10,
            clock=time.monotonic, sleep=time.sleep):
        self.adb = adb
        self.process = process
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.query_timeout = query_timeout
        self.clock = clock
        self.sleep = sleep
        self.state = BootState.WAITING
        self.deadline = None
        self.polls = 0

    def wait(self):
        serial = self.process.serial
        self.deadline = BootDeadline(self.timeout, clock=self.clock)
        ui.important('Waiting for emulator to finish booting... May take a few minutes...',
            self.process.avd_name, serial)

        while True:
            self.polls += 1
            query_timeout = min(self.query_timeout, max(self.deadline.remaining(), 1))
            value = self.adb.getprop(serial, BOOT_COMPLETED_PROP, timeout=query_timeout)

            returncode = self.process.poll()
            if returncode is not None:
                self.state = BootState.PROCESS_DIED
                raise EmulatorCrashed('Emulator exited with code {} while booting'.format(
                    returncode), returncode=returncode)

            if self.deadline.expired():
                self.state = BootState.TIMED_OUT
                raise BootTimeout('Emulator did not boot within {} seconds'.format(
                    self.timeout))

            if value == BOOT_COMPLETED_VALUE:
                self.state = BootState.BOOTED
                ui.success('Emulator Booted!', self.process.avd_name, serial)
                return self.state

            self.sleep(self.poll_interval)

def wait_for_boot(adb, process, timeout, **kwargs):
    return BootWaiter(adb, process, timeout, **kwargs).wait()

def stop_emulator(adb, process, timeout=30):
    '''
    Ask the emulator to shut down with `emu kill` and wait for it to exit.
    Raises ShutdownCommandFailed if the command fails or the process is
    still running after timeout seconds.
    '''
    if not process.is_alive():
        return
    ui.important('Shutting down emulator...', process.avd_name, process.serial)
    if not adb.trigger(process.serial, 'emu kill', timeout=timeout):
        raise ShutdownCommandFailed('emu kill failed on {}'.format(process.serial))
    if not process.wait(timeout):
        raise ShutdownCommandFailed('Emulator {} is still running {} seconds after emu kill'.format(
            process.serial, timeout))
