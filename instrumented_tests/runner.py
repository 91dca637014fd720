import time
from enum import Enum

from . import ui
from .adb import Adb
from .avd import AvdManager
from .config import load_config
from .emulator import start_emulator, stop_emulator, BootWaiter
from .errors import (
    LifecycleError,
    InvalidConfig,
    ToolUnavailable,
    TestTaskFailed,
    ShutdownCommandFailed
)
from .gradle import GradleRunner

class RunState(Enum):
    INIT = 'init'
    VALIDATING = 'validating'
    CLEANING_STALE = 'cleaning_stale'
    CREATING = 'creating'
    STARTING = 'starting'
    WAITING_BOOT = 'waiting_boot'
    TESTING = 'testing'
    STOPPING = 'stopping'
    DONE = 'done'

class LifecycleResult:
    def __init__(self, error=None, output=None, task_result=None, state=RunState.DONE):
        self.error = error
        # emulator output, kept only when the run failed
        self.output = output
        self.task_result = task_result
        # last state reached before teardown
        self.state = state

    @property
    def success(self):
        return self.error is None

    @property
    def reason(self):
        if self.error is None:
            return None
        return self.error.reason

    @property
    def task_output(self):
        if self.task_result is None:
            return None
        return self.task_result.output

    def raise_for_failure(self):
        if self.error is not None:
            raise self.error

    def __repr__(self):
        if self.success:
            return '<LifecycleResult success>'
        return '<LifecycleResult failed: {}>'.format(self.error.__class__.__name__)

class InstrumentedTestRun:
    '''
    Create an AVD, boot it, run a gradle task against it and tear it down.

    Every resource acquired along the way (the AVD, the emulator process and
    its output file) is released in teardown, whichever step failed. The
    first failure is kept in the LifecycleResult returned by run().
    '''
    def __init__(self, config, avdmanager=None, adb=None, gradle=None,
            launcher=start_emulator, clock=time.monotonic, sleep=time.sleep):
        self.config = config
        self.avdmanager = avdmanager
        self.adb = adb
        self.gradle = gradle
        self.launcher = launcher
        self.clock = clock
        self.sleep = sleep

        self.state = RunState.INIT
        self.history = [RunState.INIT]
        self.process = None
        self.boot_waiter = None
        self.reached_state = None

    def _enter(self, state):
        # last state reached before teardown
        self.state = state
        self.history.append(state)

    def _say(self, func, text):
        func(text, self.config.avd_name, self.config.serial)

    def run(self):
        self._enter(RunState.VALIDATING)
        try:
            self.config.validate()
        except InvalidConfig as e:
            ui.error(e.message)
            self._enter(RunState.DONE)
            return LifecycleResult(error=e, state=RunState.VALIDATING)
        self._setup_collaborators()

        failure = None
        task_result = None
        output = None
        try:
            try:
                self._clean_stale()
                self._create()
                self._start()
                self._wait_boot()
                task_result = self._test()
                if not task_result.success:
                    failure = TestTaskFailed('Task {} failed with exit code {}'.format(
                        self.config.task, task_result.returncode),
                        returncode=task_result.returncode, task_output=task_result.output)
            except LifecycleError as e:
                failure = e
        finally:
            teardown_error, output = self._teardown(failure)

        if failure is None and teardown_error is not None:
            failure = teardown_error
        if failure is not None:
            if failure.output is None:
                failure.output = output
            self._say(ui.error, failure.message)
        else:
            self._say(ui.success, 'Instrumented tests passed')
        self._enter(RunState.DONE)
        return LifecycleResult(error=failure, output=output if failure is not None else None,
            task_result=task_result, state=self.reached_state)

    def _setup_collaborators(self):
        if self.avdmanager is None:
            self.avdmanager = AvdManager(self.config.avdmanager_path)
        if self.adb is None:
            self.adb = Adb(self.config.adb_path)
        if self.gradle is None:
            self.gradle = GradleRunner(self.config.gradle_path)

    def _clean_stale(self):
        self._enter(RunState.CLEANING_STALE)
        # Delete avd if one already exists for clean state.
        if self.config.avd_name in self.avdmanager.list():
            self._say(ui.important, 'Deleting existing AVD')
            self.avdmanager.delete(self.config.avd_name)

    def _create(self):
        self._enter(RunState.CREATING)
        self._say(ui.important, 'Creating AVD...')
        self.avdmanager.create(self.config.avd_name, self.config.avd_package,
            abi=self.config.avd_abi, tag=self.config.avd_tag,
            options=self.config.avd_options)

    def _start(self):
        self._enter(RunState.STARTING)
        self._say(ui.important, 'Starting AVD...')
        try:
            self.process = self.launcher(self.config.emulator_path, self.config.avd_name,
                self.config.port, show_window=self.config.show_window,
                options=self.config.emulator_options)
        except OSError as e:
            raise ToolUnavailable('Could not launch {}: {}'.format(self.config.emulator_path, e))

    def _wait_boot(self):
        self._enter(RunState.WAITING_BOOT)
        self.boot_waiter = BootWaiter(self.adb, self.process, self.config.boot_timeout,
            poll_interval=self.config.poll_interval,
            query_timeout=self.config.query_timeout,
            clock=self.clock, sleep=self.sleep)
        try:
            self.boot_waiter.wait()
        except LifecycleError as e:
            e.output = self.process.output_tail()
            raise

    def _test(self):
        self._enter(RunState.TESTING)
        return self.gradle.execute(self.config.task, self.config.flags,
            self.config.project_dir, self.config.serial)

    def _teardown(self, failure):
        '''
        Returns (error raised while deleting the AVD, emulator output).
        The output is only collected when the run already failed.
        '''
        self.reached_state = self.state
        self._enter(RunState.STOPPING)
        teardown_error = None
        output = None
        try:
            try:
                if self.process is not None:
                    if failure is not None:
                        output = failure.output
                        if output is None:
                            output = self._output_tail()
                    try:
                        self._stop_process()
                    finally:
                        # interrupted while stopping
                        if self.process.is_alive():
                            self.process.kill()
            finally:
                teardown_error = self._delete_avd()
        finally:
            if self.process is not None:
                self.process.close()
        return teardown_error, output

    def _output_tail(self):
        try:
            return self.process.output_tail()
        except OSError as e:
            self._say(ui.error, 'Could not read emulator output: {}'.format(e))
            return None

    def _delete_avd(self):
        try:
            if self.avdmanager.delete(self.config.avd_name, missing_ok=True):
                self._say(ui.success, 'Deleted emulator')
        except LifecycleError as e:
            self._say(ui.error, e.message)
            return e
        return None

    def _stop_process(self):
        try:
            stop_emulator(self.adb, self.process, timeout=self.config.shutdown_timeout)
        except (ShutdownCommandFailed, ToolUnavailable) as e:
            self._say(ui.important, '{}, killing emulator process'.format(e.reason))
            self.process.kill()

        try:
            console_port = self.process.console_port()
        except OSError as e:
            self._say(ui.error, 'Could not read emulator output: {}'.format(e))
            return
        if console_port is not None and console_port != self.config.port:
            self._say(ui.important, 'Emulator reported console port {}, expected {}'.format(
                console_port, self.config.port))

def instrumented_tests(config_path=None, **values):
    '''
    Run the whole lifecycle with configuration built by load_config()
    and raise the first failure, if any, after the emulator is torn down.
    '''
    config = load_config(values, config_path=config_path)
    result = InstrumentedTestRun(config).run()
    result.raise_for_failure()
    return result
