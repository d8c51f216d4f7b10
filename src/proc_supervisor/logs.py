"""日志配置。

默认输出到 stderr (INFO)；PSV_LOG_DEBUG 开启时输出到临时文件 (DEBUG)，
并尝试将日志参数中的对象 JSON 序列化。
"""

from __future__ import annotations

import dataclasses
import json
import logging
import sys

from .config import Config, get_config

__all__ = ["setup_logging", "JsonSerializingFormatter"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JsonSerializingFormatter(logging.Formatter):
    """将日志参数中的结构化对象序列化为 JSON 的格式化器。"""

    def format(self, record: logging.LogRecord) -> str:
        if record.args and isinstance(record.args, tuple):
            record.args = tuple(self._serialize(arg) for arg in record.args)
        return super().format(record)

    @staticmethod
    def _serialize(arg: object) -> object:
        try:
            if hasattr(arg, "to_dict"):
                # CommandResult
                return json.dumps(arg.to_dict(), ensure_ascii=False)
            if dataclasses.is_dataclass(arg) and not isinstance(arg, type):
                return json.dumps(dataclasses.asdict(arg), ensure_ascii=False, default=str)
            if isinstance(arg, dict):
                return json.dumps(arg, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            pass
        return arg


def setup_logging(config: Config | None = None) -> list[logging.Handler]:
    """配置日志输出。

    Args:
        config: 配置（默认使用全局配置）

    Returns:
        已安装的 handler 列表
    """
    config = config or get_config()

    log_handlers: list[logging.Handler] = []

    if config.log_debug and config.log_file:
        # LOG_DEBUG 模式：输出到临时文件
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(JsonSerializingFormatter(LOG_FORMAT))
        log_handlers.append(file_handler)
        log_level = logging.DEBUG
    else:
        # 默认模式：输出到 stderr
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log_handlers.append(stderr_handler)
        log_level = logging.INFO

    # 配置 root logger（第三方库）为 WARNING，减少噪音
    logging.basicConfig(
        level=logging.WARNING,
        handlers=log_handlers,
    )
    # 只对 proc_supervisor 命名空间启用详细日志
    logging.getLogger("proc_supervisor").setLevel(log_level)

    return log_handlers
