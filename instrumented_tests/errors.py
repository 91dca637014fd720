class LifecycleError(Exception):
    '''
    Base class for every failure of an instrumented test run.

    output keeps the lines captured from the emulator process, when the
    failure happened while the device was running.
    '''
    def __init__(self, reason, output=None):
        super(LifecycleError, self).__init__(reason)
        self.reason = reason
        self.output = output

    @property
    def message(self):
        msg = '{}: {}'.format(self.__class__.__name__, self.reason)
        if self.output:
            msg += '\n--- emulator output ---\n'
            msg += '\n'.join(self.output)
            msg += '\n-----------------------'
        return msg

    def __str__(self):
        return self.message

class InvalidConfig(LifecycleError):
    pass

class ToolUnavailable(LifecycleError):
    pass

class ImageCreateFailed(LifecycleError):
    pass

class EmulatorCrashed(LifecycleError):
    def __init__(self, reason, returncode=None, output=None):
        super(EmulatorCrashed, self).__init__(reason, output=output)
        self.returncode = returncode

class BootTimeout(LifecycleError):
    pass

class TestTaskFailed(LifecycleError):
    # not a test case
    __test__ = False

    def __init__(self, reason, returncode=None, task_output=None):
        super(TestTaskFailed, self).__init__(reason)
        self.returncode = returncode
        self.task_output = task_output

class ShutdownCommandFailed(LifecycleError):
    pass
