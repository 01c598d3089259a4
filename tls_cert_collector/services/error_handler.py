"""
错误处理服务
"""
import socket
import ssl
import concurrent.futures
from typing import Any, Dict
from datetime import datetime, timezone
import logging


class NetworkErrorHandler:
    """网络错误处理器（只描述错误，不做重试）"""

    def __init__(self):
        """初始化网络错误处理器"""
        self.logger = logging.getLogger(__name__)

    def handle_ssl_connection_error(self, address: str, error: Exception) -> Dict[str, Any]:
        """
        处理SSL连接错误

        Args:
            address: 目标地址
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        error_info = {
            'address': address,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self.get_suggested_action(error)
        }

        self.logger.error(
            f"目标 {address} SSL连接错误: {error_info['error_type']}: {error_info['error_message']}"
            f"（建议: {error_info['suggested_action']}）"
        )

        return error_info

    def get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()

        # socket.timeout 是 TimeoutError 的别名，需先于 OSError 判断
        if isinstance(error, (socket.timeout, TimeoutError)):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, socket.gaierror):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, ssl.SSLCertVerificationError):
            return "证书验证失败，可能是自签名证书或证书链问题，可使用insecure选项跳过验证"
        elif isinstance(error, ssl.SSLError):
            if 'handshake failure' in error_message or 'version' in error_message:
                return "SSL握手失败，检查SSL/TLS版本兼容性（最低要求TLS 1.2）"
            return "SSL连接问题，检查服务器SSL配置"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"


class DNSErrorHandler:
    """DNS错误处理器"""

    def __init__(self):
        """初始化DNS错误处理器"""
        self.logger = logging.getLogger(__name__)

    def handle_dns_resolution_failure(self, host: str, error: BaseException) -> Dict[str, Any]:
        """
        处理DNS解析失败

        解析失败不影响证书采集，只记录警告。

        Args:
            host: 主机名
            error: DNS错误

        Returns:
            Dict[str, Any]: 处理结果
        """
        if isinstance(error, concurrent.futures.TimeoutError):
            error_message = "解析超时"
        else:
            error_message = str(error)

        error_info = {
            'host': host,
            'error_type': type(error).__name__,
            'error_message': error_message,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }

        self.logger.warning(f"主机 {host} DNS解析失败，IP地址记为空: {error_message}")

        return error_info
