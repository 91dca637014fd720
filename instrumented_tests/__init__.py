from .utils import (
    run_cmd,
    RunCmdError,
    RunCmdTimeout
)
from .errors import (
    LifecycleError,
    InvalidConfig,
    ToolUnavailable,
    ImageCreateFailed,
    EmulatorCrashed,
    BootTimeout,
    TestTaskFailed,
    ShutdownCommandFailed
)
from .config import Config, load_config, serial_for_port
from .adb import Adb
from .avd import AvdManager
from .emulator import (
    EmulatorProcess,
    start_emulator,
    stop_emulator,
    wait_for_boot,
    BootState
)
from .gradle import GradleRunner, TaskResult
from .runner import (
    InstrumentedTestRun,
    LifecycleResult,
    RunState,
    instrumented_tests
)
