"""
目标地址规范化服务
"""
from typing import Tuple

from ..exceptions import InvalidAddressError, InvalidPortError
from ..models import NormalizedAddress

DEFAULT_PORT = "443"
MIN_PORT = 1
MAX_PORT = 65535


def ensure_default_port(raw: str) -> str:
    """
    未指定端口时追加默认端口

    Args:
        raw: 原始目标字符串（host 或 host:port）

    Returns:
        str: 带端口的地址
    """
    if ':' not in raw:
        raw = f"{raw}:{DEFAULT_PORT}"
    return raw


def split_host_port(address: str) -> Tuple[str, str]:
    """
    将地址拆分为主机和端口

    支持 [IPv6]:port 形式；缺少端口、冒号过多、方括号不匹配或主机为空时
    抛出 InvalidAddressError。

    Args:
        address: host:port 形式的地址

    Returns:
        Tuple[str, str]: (主机, 端口)
    """
    if address.startswith('['):
        end = address.find(']')
        if end < 0:
            raise InvalidAddressError(address, "缺少 ']'")
        rest = address[end + 1:]
        if not rest:
            raise InvalidAddressError(address, "缺少端口")
        if not rest.startswith(':'):
            raise InvalidAddressError(address, "端口前缺少冒号")
        host = address[1:end]
        port = rest[1:]
    else:
        index = address.rfind(':')
        if index < 0:
            raise InvalidAddressError(address, "缺少端口")
        host = address[:index]
        port = address[index + 1:]
        if ':' in host:
            raise InvalidAddressError(address, "冒号过多")

    if '[' in host or ']' in host or '[' in port or ']' in port:
        raise InvalidAddressError(address, "方括号位置错误")
    if not host:
        raise InvalidAddressError(address, "主机为空")

    return host, port


def validate_port(port: str, address: str = "") -> str:
    """
    校验端口号

    Args:
        port: 端口字符串
        address: 所属地址，仅用于错误信息

    Returns:
        str: 原样返回合法端口
    """
    if not port.isdigit() or not port.isascii():
        raise InvalidPortError(address or port, f"端口 \"{port}\" 不是数字")
    if not MIN_PORT <= int(port) <= MAX_PORT:
        raise InvalidPortError(address or port, f"端口 {port} 超出范围 {MIN_PORT}-{MAX_PORT}")
    return port


def normalize_address(raw: str) -> NormalizedAddress:
    """
    规范化目标地址

    Args:
        raw: 原始目标字符串

    Returns:
        NormalizedAddress: 主机和端口
    """
    address = ensure_default_port(raw)
    host, port = split_host_port(address)
    validate_port(port, address)
    return NormalizedAddress(host=host, port=port)
