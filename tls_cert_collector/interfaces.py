"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import Hashable, List, Optional, Sequence
import ssl

from .models import CertificateRecord


class IPCacheInterface(ABC):
    """IP地址缓存接口"""

    @abstractmethod
    def lookup(self, host: str, timeout: float) -> List[str]:
        """获取主机的IP地址列表（失败时返回空列表）"""
        pass


class ConnectionPoolInterface(ABC):
    """TLS连接池接口"""

    @abstractmethod
    def acquire(self, key: Hashable) -> Optional[ssl.SSLSocket]:
        """取出一个空闲连接，没有则返回None"""
        pass

    @abstractmethod
    def release(self, key: Hashable, conn: ssl.SSLSocket) -> None:
        """归还一个健康的连接"""
        pass

    @abstractmethod
    def discard(self, conn: ssl.SSLSocket) -> None:
        """关闭并丢弃失效的连接"""
        pass


class CertificateCollectorInterface(ABC):
    """证书采集器接口"""

    @abstractmethod
    def collect(self, addresses: Sequence[str], timeout: float,
                insecure: bool = False, timezone: str = "Local") -> List[CertificateRecord]:
        """并发采集多个目标的证书信息"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_collect_start(self, target_count: int):
        """记录采集开始"""
        pass

    @abstractmethod
    def log_certificate_record(self, record: CertificateRecord):
        """记录证书信息"""
        pass

    @abstractmethod
    def log_error(self, target: str, error: Exception):
        """记录错误信息"""
        pass
