"""
采集目标配置管理测试
"""
import os
from unittest.mock import patch

from tls_cert_collector.services.target_config import TargetConfigManager


class TestTargetConfigManager:
    """目标配置管理器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.manager = TargetConfigManager()

    def test_init_default(self):
        assert self.manager.env_var_name == "TLC3_DOMAINS"

    @patch.dict(os.environ, {'TLC3_DOMAINS': 'example.test,example.org:8443,[::1]:443'})
    def test_get_targets_from_env(self):
        """测试从环境变量读取目标"""
        assert self.manager.get_targets() == ['example.test', 'example.org:8443', '[::1]:443']

    @patch.dict(os.environ, {}, clear=True)
    def test_get_targets_env_missing(self):
        assert self.manager.get_targets() == []

    def test_get_targets_keeps_order_and_duplicates(self):
        """测试保持顺序和重复项"""
        assert self.manager.get_targets("b.test,a.test,b.test") == ['b.test', 'a.test', 'b.test']

    def test_get_targets_cleans_items(self):
        """测试去除空白、引号和空项"""
        raw = ' example.test , "quoted.test:8443" ,, \'single.test\', '

        assert self.manager.get_targets(raw) == ['example.test', 'quoted.test:8443', 'single.test']

    def test_custom_env_var(self):
        manager = TargetConfigManager(env_var_name="CUSTOM_TARGETS")

        with patch.dict(os.environ, {'CUSTOM_TARGETS': 'custom.test'}):
            assert manager.get_targets() == ['custom.test']

    def test_validate_target(self):
        """测试目标格式验证"""
        assert self.manager.validate_target("example.test") is True
        assert self.manager.validate_target("example.test:8443") is True
        assert self.manager.validate_target("[2001:db8::1]:443") is True
        assert self.manager.validate_target("example.test:0") is False
        assert self.manager.validate_target("example.test:https") is False
        assert self.manager.validate_target(":443") is False
        assert self.manager.validate_target("") is False
        assert self.manager.validate_target(None) is False
