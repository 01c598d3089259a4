"""
证书并发采集服务
"""
import os
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Sequence
import logging

from ..exceptions import CollectionCancelledError
from ..interfaces import (
    CertificateCollectorInterface,
    ConnectionPoolInterface,
    IPCacheInterface,
)
from ..models import CertificateRecord
from .connection_pool import ConnectionPool
from .connector import Connector, build_ssl_context
from .expiry_calculator import LOCAL_TIMEZONE, load_timezone
from .ip_cache import IPCache


class ErrorGroup:
    """
    共享取消信号的任务组

    第一个失败的任务记录错误并触发取消信号，其余任务在下一个检查点退出。
    wait() 等待所有任务结束后抛出第一个错误。
    """

    def __init__(self, executor: ThreadPoolExecutor, cancel_event: Optional[threading.Event] = None):
        self.executor = executor
        self.cancel_event = cancel_event or threading.Event()
        self._futures = []
        self._error: Optional[BaseException] = None
        self._lock = threading.Lock()

    @property
    def error(self) -> Optional[BaseException]:
        with self._lock:
            return self._error

    def go(self, func: Callable, *args):
        """提交任务"""
        self._futures.append(self.executor.submit(self._run, func, *args))

    def _run(self, func: Callable, *args):
        try:
            func(*args)
        except CollectionCancelledError:
            return
        except Exception as e:
            with self._lock:
                if self._error is None:
                    self._error = e
            self.cancel_event.set()

    def wait(self):
        """等待所有任务结束，有错误时抛出第一个错误"""
        wait(self._futures)
        error = self.error
        if error is not None:
            raise error


class TLSCertificateCollector(CertificateCollectorInterface):
    """TLS证书并发采集器"""

    def __init__(self, ip_cache: Optional[IPCacheInterface] = None,
                 connection_pool: Optional[ConnectionPoolInterface] = None,
                 max_concurrency: Optional[int] = None,
                 connector_factory: Callable[..., Connector] = Connector,
                 poll_interval: float = 0.05):
        """
        初始化采集器

        Args:
            ip_cache: IP地址缓存，进程内共享
            connection_pool: TLS连接池，进程内共享
            max_concurrency: 最大并发数，默认为CPU核数
            connector_factory: 连接器工厂
            poll_interval: 等待并发槽位时检查取消信号的间隔（秒）
        """
        self.ip_cache = ip_cache if ip_cache is not None else IPCache()
        self.connection_pool = connection_pool if connection_pool is not None else ConnectionPool()
        self.max_concurrency = max_concurrency or os.cpu_count() or 1
        self.connector_factory = connector_factory
        self.poll_interval = poll_interval
        self.logger = logging.getLogger(__name__)

    def collect(self, addresses: Sequence[str], timeout: float,
                insecure: bool = False, timezone: str = LOCAL_TIMEZONE) -> List[CertificateRecord]:
        """
        并发采集证书信息

        结果顺序与输入顺序一致。任一目标出现致命错误时取消其余任务，
        只抛出第一个错误，不返回部分结果。

        Args:
            addresses: 目标列表（host 或 host:port）
            timeout: 每个连接的超时时间（秒）
            insecure: 是否跳过证书校验
            timezone: 时间字段使用的时区

        Returns:
            List[CertificateRecord]: 证书信息列表
        """
        tz = load_timezone(timezone)
        ssl_context = build_ssl_context(insecure)

        # 先规范化全部地址，输入错误在网络操作之前抛出
        connectors = [
            self.connector_factory(address, timeout, insecure, tz,
                                   self.ip_cache, self.connection_pool,
                                   ssl_context=ssl_context)
            for address in addresses
        ]
        if not connectors:
            return []

        results: List[Optional[CertificateRecord]] = [None] * len(connectors)
        limiter = threading.BoundedSemaphore(self.max_concurrency)

        self.logger.debug(f"开始采集 {len(connectors)} 个目标，最大并发数 {self.max_concurrency}")

        with ThreadPoolExecutor(max_workers=min(self.max_concurrency, len(connectors)),
                                thread_name_prefix="tls-collector") as executor:
            group = ErrorGroup(executor)
            for index, connector in enumerate(connectors):
                if not self._acquire_slot(limiter, group.cancel_event):
                    break
                group.go(self._collect_one, connector, index, results, limiter, group.cancel_event)

            try:
                group.wait()
            except Exception as e:
                self.logger.error(f"证书采集失败，取消全部目标: {e}")
                raise

        return results

    def _acquire_slot(self, limiter: threading.BoundedSemaphore, cancel_event: threading.Event) -> bool:
        """
        获取并发槽位，期间检查取消信号

        Returns:
            bool: 是否获取成功（已取消时返回False）
        """
        while not limiter.acquire(timeout=self.poll_interval):
            if cancel_event.is_set():
                return False
        if cancel_event.is_set():
            limiter.release()
            return False
        return True

    def _collect_one(self, connector: Connector, index: int,
                     results: List[Optional[CertificateRecord]],
                     limiter: threading.BoundedSemaphore, cancel_event: threading.Event):
        """采集单个目标，结果写入对应下标"""
        try:
            with connector:
                connector.get_tls_conn(cancel_event)
                connector.lookup_ip(cancel_event)
                results[index] = connector.get_server_cert()
            self.logger.debug(f"目标 {connector.address} 采集完成")
        finally:
            limiter.release()
