"""
异常定义

输入类错误（地址、端口、时区、配置）在任何网络操作之前抛出；
单个目标的致命错误（连接失败、非TLS连接、无证书）会取消整批采集，
并作为唯一的错误返回给调用方。DNS解析失败不属于错误，不在此定义。
"""
from typing import Optional


class TLSCollectorError(Exception):
    """所有采集错误的基类"""
    pass


class AddressError(TLSCollectorError):
    """目标地址无效"""

    def __init__(self, address: str, reason: str):
        self.address = address
        self.reason = reason
        super().__init__(f"无效的目标地址 \"{address}\": {reason}")


class InvalidAddressError(AddressError):
    """地址无法拆分为主机和端口"""
    pass


class InvalidPortError(AddressError):
    """端口不是合法的TCP端口号（1-65535）"""
    pass


class InvalidTimezoneError(TLSCollectorError):
    """时区标识为空或无法加载"""

    def __init__(self, timezone_name: str):
        self.timezone_name = timezone_name
        super().__init__(f"无法加载时区 \"{timezone_name}\"")


class ConfigurationError(TLSCollectorError):
    """采集配置无效"""
    pass


class TargetError(TLSCollectorError):
    """
    单个目标的致命错误

    Attributes:
        address: 出错的目标地址（host:port）
        cause: 底层异常，同时设置为 __cause__
    """

    def __init__(self, address: str, message: str, cause: Optional[BaseException] = None):
        self.address = address
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class DialError(TargetError):
    """TCP连接或TLS握手失败"""

    def __init__(self, address: str, cause: Optional[BaseException] = None):
        super().__init__(address, f"无法连接到 \"{address}\"", cause)


class ProtocolError(TargetError):
    """已建立的连接不是TLS会话"""

    def __init__(self, address: str, cause: Optional[BaseException] = None):
        super().__init__(address, f"连接 \"{address}\" 不是TLS会话", cause)


class NoCertificateError(TargetError):
    """对端未提供证书"""

    def __init__(self, address: str, host: str):
        self.host = host
        super().__init__(address, f"未找到 \"{host}\" 的证书")


class CertificateParseError(TargetError):
    """证书无法解析（DER格式错误或扩展无效）"""

    def __init__(self, address: str, cause: Optional[BaseException] = None):
        super().__init__(address, f"无法解析 \"{address}\" 的证书", cause)


class CollectionCancelledError(TLSCollectorError):
    """采集已被取消（其他目标已失败）"""
    pass
