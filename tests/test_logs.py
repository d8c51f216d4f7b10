"""日志配置测试。"""

from __future__ import annotations

import json
import logging
from unittest import mock

from proc_supervisor.config import Config
from proc_supervisor.logs import LOG_FORMAT, JsonSerializingFormatter, setup_logging
from proc_supervisor.models import CommandResult


def _record(msg: str, *args: object) -> logging.LogRecord:
    return logging.LogRecord("proc_supervisor.test", logging.INFO, __file__, 1, msg, args, None)


class TestJsonSerializingFormatter:
    """测试结构化参数序列化。"""

    def test_command_result_arg(self):
        """带 to_dict 的对象被序列化为 JSON。"""
        result = CommandResult.not_started("tool -x")
        line = JsonSerializingFormatter("%(message)s").format(_record("result=%s", result))

        payload = json.loads(line.removeprefix("result="))
        assert payload["command"] == "tool -x"
        assert payload["started"] is False

    def test_dict_arg(self):
        line = JsonSerializingFormatter("%(message)s").format(_record("%s", {"pid": 1}))
        assert json.loads(line) == {"pid": 1}

    def test_plain_args_untouched(self):
        line = JsonSerializingFormatter("%(message)s").format(_record("%s-%d", "a", 3))
        assert line == "a-3"


class TestSetupLogging:
    """测试 handler 选择。"""

    def test_default_stderr(self):
        """默认输出到 stderr，INFO 级别。"""
        with mock.patch("logging.basicConfig") as basic_config:
            handlers = setup_logging(Config())

        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert not isinstance(handlers[0], logging.FileHandler)
        assert logging.getLogger("proc_supervisor").level == logging.INFO
        basic_config.assert_called_once_with(level=logging.WARNING, handlers=handlers)
        logging.getLogger("proc_supervisor").setLevel(logging.NOTSET)

    def test_debug_file(self, tmp_path):
        """调试模式输出到文件，DEBUG 级别。"""
        log_file = tmp_path / "psv.log"
        with mock.patch("logging.basicConfig"):
            handlers = setup_logging(Config(log_debug=True, log_file=str(log_file)))

        try:
            assert isinstance(handlers[0], logging.FileHandler)
            assert isinstance(handlers[0].formatter, JsonSerializingFormatter)
            assert handlers[0].formatter._fmt == LOG_FORMAT
            assert logging.getLogger("proc_supervisor").level == logging.DEBUG
        finally:
            for handler in handlers:
                handler.close()
            logging.getLogger("proc_supervisor").setLevel(logging.NOTSET)
