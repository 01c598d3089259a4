"""
IP地址缓存服务
"""
import ipaddress
import socket
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Dict, List, Optional, Tuple
import logging

from ..interfaces import IPCacheInterface
from .error_handler import DNSErrorHandler


def sort_ip_addresses(addresses) -> Tuple[str, ...]:
    """
    去重并排序IP地址（IPv4在前）

    Args:
        addresses: IP地址字符串的可迭代对象

    Returns:
        Tuple[str, ...]: 排序后的IP地址
    """
    parsed = {ipaddress.ip_address(address.split('%', 1)[0]) for address in addresses}
    return tuple(str(ip) for ip in sorted(parsed, key=lambda ip: (ip.version, ip)))


class IPCache(IPCacheInterface):
    """
    进程级IP地址缓存

    每个主机只写入一次（先写入者生效），解析失败同样缓存为空结果。
    同一主机的并发解析不做合并。每次解析使用独立的守护线程，
    超时只计算解析本身的耗时。缓存没有过期和容量限制，
    适用于短生命周期进程；常驻服务需要另加淘汰策略。
    """

    def __init__(self):
        """初始化IP缓存"""
        self.logger = logging.getLogger(__name__)
        self.dns_error_handler = DNSErrorHandler()
        self._entries: Dict[str, Tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def lookup(self, host: str, timeout: float) -> List[str]:
        """
        获取主机的IP地址

        命中缓存时直接返回，不发起网络请求；否则在超时时间内解析并缓存结果。
        解析失败不会抛出异常，返回空列表。

        Args:
            host: 主机名或IP
            timeout: 解析超时时间（秒）

        Returns:
            List[str]: 排序后的IP地址列表
        """
        with self._lock:
            cached = self._entries.get(host)
        if cached is not None:
            self.logger.debug(f"主机 {host} 命中IP缓存")
            return list(cached)

        resolved = self._resolve(host, timeout)

        with self._lock:
            stored = self._entries.setdefault(host, resolved)
        return list(stored)

    def _resolve(self, host: str, timeout: float) -> Tuple[str, ...]:
        """
        在超时时间内执行DNS解析

        Args:
            host: 主机名
            timeout: 超时时间（秒）

        Returns:
            Tuple[str, ...]: 排序后的IP地址，失败时为空
        """
        future = Future()
        resolver = threading.Thread(target=self._getaddrinfo, args=(host, future),
                                    name=f"ip-cache-resolver-{host}", daemon=True)
        resolver.start()
        try:
            infos = future.result(timeout=timeout)
        except (OSError, ValueError, FutureTimeoutError) as e:
            self.dns_error_handler.handle_dns_resolution_failure(host, e)
            return ()

        addresses = sort_ip_addresses(info[4][0] for info in infos)
        self.logger.debug(f"主机 {host} 解析到 {len(addresses)} 个IP地址")
        return addresses

    @staticmethod
    def _getaddrinfo(host: str, future: Future):
        """在解析线程中执行 getaddrinfo，结果写入 future"""
        try:
            future.set_result(socket.getaddrinfo(host, None, 0, socket.SOCK_STREAM))
        except Exception as e:
            future.set_exception(e)

    def get(self, host: str) -> Optional[List[str]]:
        """获取缓存值，未缓存时返回None"""
        with self._lock:
            cached = self._entries.get(host)
        return None if cached is None else list(cached)

    def __contains__(self, host: str) -> bool:
        with self._lock:
            return host in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self):
        """清空缓存"""
        with self._lock:
            self._entries.clear()
