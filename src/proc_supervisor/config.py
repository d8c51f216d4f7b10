"""PSV 环境变量配置管理。

环境变量:
    PSV_DEFAULT_TIMEOUT_MS: CommandRunner 默认超时（毫秒）
        - 默认 10000
        - 负数或非法值回退到默认值

    PSV_TERM_GRACE: 发送 SIGTERM 后等待多久再 SIGKILL（秒）
        - 0 = 直接强制结束 (默认)
        - 限制在 0-30 秒范围

    PSV_KILL_TIMEOUT: 强制结束后等待进程回收的时间（秒）
        - 默认 1.0 秒
        - 限制在 0.1-30 秒范围

    PSV_ENCODING: 子进程输出的文本编码
        - 默认 utf-8
        - 未知编码回退到 utf-8

    PSV_HIGH_PRIORITY: 创建 ProcessRegistry 时是否尝试提升本进程优先级
        - true/1/yes = 尝试提升
        - false/0/no = 不提升 (默认)

    PSV_LOG_DEBUG: 日志调试模式
        - true/1/yes = 开启 (日志输出到临时文件)
        - false/0/no = 关闭 (默认，日志输出到 stderr)
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config", "DEFAULT_TIMEOUT_MS"]

DEFAULT_TIMEOUT_MS = 10000
DEFAULT_TERM_GRACE = 0.0
DEFAULT_KILL_TIMEOUT = 1.0
DEFAULT_ENCODING = "utf-8"


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """解析布尔值环境变量。"""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_timeout_ms(value: str | None) -> int:
    """解析默认超时（毫秒）。"""
    if not value:
        return DEFAULT_TIMEOUT_MS
    try:
        timeout = int(value.strip())
    except ValueError:
        return DEFAULT_TIMEOUT_MS
    if timeout < 0:
        return DEFAULT_TIMEOUT_MS
    return timeout


def _parse_seconds(
    value: str | None,
    default: float,
    lower: float,
    upper: float,
) -> float:
    """解析秒数环境变量，并限制在 [lower, upper] 范围内。"""
    if not value:
        return default
    try:
        seconds = float(value)
    except ValueError:
        return default
    return max(lower, min(seconds, upper))


def _parse_encoding(value: str | None) -> str:
    """解析编码名称，未知编码回退到 utf-8。"""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


@dataclass
class Config:
    """PSV 配置。

    Attributes:
        default_timeout_ms: CommandRunner 默认超时（毫秒）
        term_grace: SIGTERM 到 SIGKILL 之间的等待时间（秒），0 表示直接强杀
        kill_timeout: 强杀后等待回收的时间（秒）
        encoding: 输出解码使用的编码
        high_priority: 是否尝试提升本进程优先级
        log_debug: 日志调试模式（输出到临时文件）
        log_file: 日志文件路径（当 log_debug=True 时自动设置）
    """

    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    term_grace: float = DEFAULT_TERM_GRACE
    kill_timeout: float = DEFAULT_KILL_TIMEOUT
    encoding: str = DEFAULT_ENCODING
    high_priority: bool = False
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(default_timeout_ms={self.default_timeout_ms}, "
            f"term_grace={self.term_grace}, "
            f"kill_timeout={self.kill_timeout}, "
            f"encoding={self.encoding}, "
            f"high_priority={self.high_priority}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def _generate_log_file_path() -> str:
    """生成日志文件路径。

    Returns:
        临时目录下的日志文件绝对路径
    """
    log_dir = Path(tempfile.gettempdir()) / "proc-supervisor"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"psv_debug_{timestamp}.log"

    return str(log_file.resolve())


def load_config() -> Config:
    """从环境变量加载配置。"""
    log_debug = _parse_bool(os.environ.get("PSV_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        default_timeout_ms=_parse_timeout_ms(os.environ.get("PSV_DEFAULT_TIMEOUT_MS")),
        term_grace=_parse_seconds(
            os.environ.get("PSV_TERM_GRACE"), DEFAULT_TERM_GRACE, 0.0, 30.0
        ),
        kill_timeout=_parse_seconds(
            os.environ.get("PSV_KILL_TIMEOUT"), DEFAULT_KILL_TIMEOUT, 0.1, 30.0
        ),
        encoding=_parse_encoding(os.environ.get("PSV_ENCODING")),
        high_priority=_parse_bool(os.environ.get("PSV_HIGH_PRIORITY"), default=False),
        log_debug=log_debug,
        log_file=log_file,
    )


# 全局配置实例（延迟加载）
_config: Config | None = None


def get_config() -> Config:
    """获取全局配置实例。"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """重新加载配置（用于测试）。"""
    global _config
    _config = load_config()
    return _config
