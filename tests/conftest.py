"""Pytest 配置和 fixtures。"""

from __future__ import annotations

import shlex
import subprocess
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

# 项目根目录
PROJECT_ROOT = Path(__file__).parent.parent

# 添加 src 目录到 Python 路径
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from proc_supervisor import config as config_module  # noqa: E402
from proc_supervisor.runtime.launch import IS_WINDOWS, LaunchSpec  # noqa: E402
from proc_supervisor.runtime.registry import ProcessRegistry  # noqa: E402
from proc_supervisor.runtime.runner import CommandRunner  # noqa: E402

# 测试用子进程脚本
FAKE_CHILD = PROJECT_ROOT / "tests" / "fixtures" / "fake_child.py"


def join_arguments(*args: str) -> str:
    """把参数拼成单个参数字符串（按平台规则加引号）。"""
    if IS_WINDOWS:
        return subprocess.list2cmdline(list(args))
    return shlex.join(args)


@pytest.fixture(autouse=True)
def _reset_global_config() -> Iterator[None]:
    """每个测试后清空全局配置，避免环境变量测试互相影响。"""
    yield
    config_module._config = None


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """临时工作目录。"""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace


@pytest.fixture
def child_args() -> Callable[..., str]:
    """fake_child.py 的参数字符串，配合 command=sys.executable 使用。"""

    def _make(*args: str) -> str:
        return join_arguments(str(FAKE_CHILD), *args)

    return _make


@pytest.fixture
def child_spec() -> Callable[..., LaunchSpec]:
    """构造运行 fake_child.py 的 LaunchSpec。

    用法: child_spec("--stdout", "hello", "--sleep", "1")
    """

    def _make(*args: str, cwd: Path | None = None) -> LaunchSpec:
        return LaunchSpec(
            command=sys.executable,
            arguments=join_arguments(str(FAKE_CHILD), *args),
            cwd=cwd,
        )

    return _make


@pytest.fixture
def registry() -> Iterator[ProcessRegistry]:
    """独立的 ProcessRegistry，测试结束时 reset。"""
    registry = ProcessRegistry(term_grace=0.0, kill_timeout=2.0, raise_priority=False)
    yield registry
    registry.reset()


@pytest.fixture
def runner() -> CommandRunner:
    """使用较短等待时间的 CommandRunner。"""
    return CommandRunner(term_grace=0.0, kill_timeout=2.0)
