"""proc-supervisor - 子进程监管。

启动、跟踪、终止外部子进程，并捕获其 stdout/stderr：
    ProcessRegistry: 按标识符管理长期运行的子进程
    CommandRunner: 有超时限制的一次性命令执行

环境变量见 proc_supervisor.config。
"""

__version__ = "0.1.0"

from .errors import (
    InvalidArgumentError,
    LaunchFailureError,
    ProcessNotFoundError,
    ProcessSupervisorError,
)
from .models import CommandResult
from .runtime import (
    CommandRunner,
    LaunchSpec,
    ProcessRegistry,
    TrackedProcess,
    get_registry,
    run_command,
)

__all__ = [
    "__version__",
    "CommandResult",
    "CommandRunner",
    "InvalidArgumentError",
    "LaunchFailureError",
    "LaunchSpec",
    "ProcessNotFoundError",
    "ProcessRegistry",
    "ProcessSupervisorError",
    "TrackedProcess",
    "get_registry",
    "run_command",
]
