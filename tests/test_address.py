"""
目标地址规范化测试
"""
import pytest

from tls_cert_collector.exceptions import InvalidAddressError, InvalidPortError
from tls_cert_collector.models import NormalizedAddress
from tls_cert_collector.services.address import (
    ensure_default_port,
    normalize_address,
    split_host_port,
    validate_port,
)


class TestEnsureDefaultPort:
    """默认端口测试类"""

    def test_appends_default_port(self):
        """测试未指定端口时追加443"""
        assert ensure_default_port("example.test") == "example.test:443"

    def test_keeps_existing_port(self):
        """测试已有端口时保持不变"""
        assert ensure_default_port("example.test:8443") == "example.test:8443"


class TestSplitHostPort:
    """主机端口拆分测试类"""

    def test_split_host_port(self):
        assert split_host_port("example.test:8443") == ("example.test", "8443")

    def test_split_ipv6(self):
        """测试带方括号的IPv6地址"""
        assert split_host_port("[::1]:8443") == ("::1", "8443")

    @pytest.mark.parametrize("address", [
        "example.test",
        "::1:443",
        "[::1]",
        "[::1]8443",
        "[::1:443",
        ":443",
        "exa]mple.test:443",
    ])
    def test_invalid_address(self, address):
        """测试无法拆分的地址"""
        with pytest.raises(InvalidAddressError):
            split_host_port(address)


class TestValidatePort:
    """端口校验测试类"""

    @pytest.mark.parametrize("port", ["1", "443", "65535"])
    def test_valid_port(self, port):
        assert validate_port(port) == port

    @pytest.mark.parametrize("port", ["0", "65536", "https", "", "-1", "44.3"])
    def test_invalid_port(self, port):
        with pytest.raises(InvalidPortError):
            validate_port(port)


class TestNormalizeAddress:
    """地址规范化测试类"""

    def test_default_port_applied(self):
        """测试无端口目标规范化为443"""
        normalized = normalize_address("example.test")

        assert normalized == NormalizedAddress(host="example.test", port="443")
        assert normalized.address == "example.test:443"

    def test_explicit_port_kept(self):
        normalized = normalize_address("example.test:8443")

        assert normalized.host == "example.test"
        assert normalized.port == "8443"

    def test_idempotent(self):
        """测试多次规范化结果一致"""
        first = normalize_address("example.test")
        second = normalize_address(first.address)

        assert first == second
        assert normalize_address("example.test") == first

    def test_ipv6_address_roundtrip(self):
        normalized = normalize_address("[2001:db8::1]:443")

        assert normalized.host == "2001:db8::1"
        assert normalized.address == "[2001:db8::1]:443"

    def test_invalid_port_error_message(self):
        """测试端口错误信息包含地址"""
        with pytest.raises(InvalidPortError, match="example.test:99999"):
            normalize_address("example.test:99999")

    def test_empty_host(self):
        with pytest.raises(InvalidAddressError):
            normalize_address("")
