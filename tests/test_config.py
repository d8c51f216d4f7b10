"""Config 模块测试。

测试 PSV_* 环境变量解析和配置管理。
"""

from __future__ import annotations

import os
from unittest import mock

import pytest

from proc_supervisor.config import (
    DEFAULT_TIMEOUT_MS,
    Config,
    get_config,
    load_config,
    reload_config,
)


def _clean_env() -> dict[str, str]:
    """去掉所有 PSV_* 变量后的环境。"""
    return {k: v for k, v in os.environ.items() if not k.startswith("PSV_")}


class TestDefaults:
    """测试默认值。"""

    def test_all_unset(self):
        """未设置任何变量时使用默认值。"""
        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            config = load_config()
            assert config.default_timeout_ms == DEFAULT_TIMEOUT_MS == 10000
            assert config.term_grace == 0.0
            assert config.kill_timeout == 1.0
            assert config.encoding == "utf-8"
            assert config.high_priority is False
            assert config.log_debug is False
            assert config.log_file is None

    def test_dataclass_defaults(self):
        """Config() 与空环境一致。"""
        with mock.patch.dict(os.environ, _clean_env(), clear=True):
            assert load_config() == Config()


class TestParseTimeout:
    """测试默认超时解析。"""

    def test_valid(self):
        with mock.patch.dict(os.environ, {"PSV_DEFAULT_TIMEOUT_MS": "2500"}):
            assert load_config().default_timeout_ms == 2500

    def test_zero_allowed(self):
        """0 是合法值（立即超时）。"""
        with mock.patch.dict(os.environ, {"PSV_DEFAULT_TIMEOUT_MS": "0"}):
            assert load_config().default_timeout_ms == 0

    def test_whitespace(self):
        with mock.patch.dict(os.environ, {"PSV_DEFAULT_TIMEOUT_MS": " 300 "}):
            assert load_config().default_timeout_ms == 300

    @pytest.mark.parametrize("value", ["-1", "abc", "1.5", ""])
    def test_invalid_falls_back(self, value: str):
        """非法值回退到默认值。"""
        with mock.patch.dict(os.environ, {"PSV_DEFAULT_TIMEOUT_MS": value}):
            assert load_config().default_timeout_ms == DEFAULT_TIMEOUT_MS


class TestParseSeconds:
    """测试秒数解析和范围限制。"""

    def test_term_grace(self):
        with mock.patch.dict(os.environ, {"PSV_TERM_GRACE": "2.5"}):
            assert load_config().term_grace == 2.5

    def test_term_grace_clamped(self):
        """超出范围被限制。"""
        with mock.patch.dict(os.environ, {"PSV_TERM_GRACE": "120"}):
            assert load_config().term_grace == 30.0
        with mock.patch.dict(os.environ, {"PSV_TERM_GRACE": "-5"}):
            assert load_config().term_grace == 0.0

    def test_kill_timeout_clamped(self):
        with mock.patch.dict(os.environ, {"PSV_KILL_TIMEOUT": "0"}):
            assert load_config().kill_timeout == 0.1
        with mock.patch.dict(os.environ, {"PSV_KILL_TIMEOUT": "99"}):
            assert load_config().kill_timeout == 30.0

    @pytest.mark.parametrize("name", ["PSV_TERM_GRACE", "PSV_KILL_TIMEOUT"])
    def test_invalid_falls_back(self, name: str):
        """非数字回退到默认值。"""
        with mock.patch.dict(os.environ, {name: "soon"}):
            config = load_config()
            assert config.term_grace == 0.0
            assert config.kill_timeout == 1.0


class TestParseEncoding:
    """测试编码解析。"""

    def test_normalized_name(self):
        """编码名称被规范化。"""
        with mock.patch.dict(os.environ, {"PSV_ENCODING": "UTF8"}):
            assert load_config().encoding == "utf-8"

    def test_other_encoding(self):
        with mock.patch.dict(os.environ, {"PSV_ENCODING": "latin-1"}):
            assert load_config().encoding == "iso8859-1"

    @pytest.mark.parametrize("value", ["no-such-codec", "", "   "])
    def test_unknown_falls_back(self, value: str):
        """未知编码回退到 utf-8。"""
        with mock.patch.dict(os.environ, {"PSV_ENCODING": value}):
            assert load_config().encoding == "utf-8"


class TestParseBool:
    """测试布尔值解析。"""

    @pytest.mark.parametrize("value", ["true", "True", "TRUE", "1", "yes", "Yes", "on"])
    def test_truthy_values(self, value: str):
        """真值。"""
        with mock.patch.dict(os.environ, {"PSV_HIGH_PRIORITY": value}):
            assert load_config().high_priority is True

    @pytest.mark.parametrize("value", ["false", "False", "FALSE", "0", "no", "No", "off", ""])
    def test_falsy_values(self, value: str):
        """假值。"""
        with mock.patch.dict(os.environ, {"PSV_HIGH_PRIORITY": value}):
            assert load_config().high_priority is False


class TestLogDebug:
    """测试日志调试模式。"""

    def test_log_file_generated(self, tmp_path):
        """开启调试时生成临时日志文件路径。"""
        with mock.patch.dict(os.environ, {"PSV_LOG_DEBUG": "1"}), mock.patch(
            "tempfile.gettempdir", return_value=str(tmp_path)
        ):
            config = load_config()
            assert config.log_debug is True
            assert config.log_file is not None
            assert config.log_file.startswith(str(tmp_path.resolve()))
            assert os.path.basename(config.log_file).startswith("psv_debug_")
            assert (tmp_path / "proc-supervisor").is_dir()

    def test_repr(self):
        """字符串表示。"""
        config = Config(default_timeout_ms=500, high_priority=True)
        repr_str = repr(config)
        assert "default_timeout_ms=500" in repr_str
        assert "high_priority=True" in repr_str
        assert "log_file=None" in repr_str


class TestGlobalConfig:
    """测试全局配置实例。"""

    def test_get_config_returns_same_instance(self):
        """get_config 返回相同实例。"""
        reload_config()
        config1 = get_config()
        config2 = get_config()
        assert config1 is config2

    def test_reload_config_creates_new_instance(self):
        """reload_config 创建新实例。"""
        config1 = get_config()
        config2 = reload_config()
        assert config1 is not config2

    def test_reload_picks_up_environment(self):
        """reload 后读取新的环境变量。"""
        with mock.patch.dict(os.environ, {"PSV_DEFAULT_TIMEOUT_MS": "1234"}):
            assert reload_config().default_timeout_ms == 1234
            assert get_config().default_timeout_ms == 1234
