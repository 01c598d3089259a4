"""
TLS连接池服务
"""
import select
import ssl
import threading
from collections import defaultdict, deque
from typing import Deque, Dict, Hashable, Optional
import logging

from ..interfaces import ConnectionPoolInterface


def probe_connection(conn: ssl.SSLSocket) -> bool:
    """
    连接存活探测

    文件描述符已关闭、未完成TLS握手或对端已关闭（收到close_notify或EOF）时视为失效。
    可读时做一次非阻塞读取：只有握手后消息（例如TLS 1.3会话票据）时
    会得到 SSLWantReadError，视为存活。

    Args:
        conn: TLS连接

    Returns:
        bool: 连接是否可用
    """
    try:
        if conn.fileno() == -1 or conn.version() is None:
            return False
        if conn.pending() == 0:
            readable, _, _ = select.select([conn], [], [], 0)
            if not readable:
                return True
    except (OSError, ValueError):
        return False

    timeout = conn.gettimeout()
    try:
        conn.settimeout(0.0)
        return bool(conn.recv(1))
    except ssl.SSLWantReadError:
        return True
    except (OSError, ValueError):
        return False
    finally:
        conn.settimeout(timeout)


class ConnectionPool(ConnectionPoolInterface):
    """
    进程级TLS连接池

    按键保存空闲连接（后进先出）。取出操作在锁内完成，
    同一个连接不会同时交给两个使用者。
    """

    def __init__(self, max_idle_per_key: Optional[int] = None):
        """
        初始化连接池

        Args:
            max_idle_per_key: 每个键最多保留的空闲连接数，None表示不限制
        """
        self.max_idle_per_key = max_idle_per_key
        self.logger = logging.getLogger(__name__)
        self._idle: Dict[Hashable, Deque[ssl.SSLSocket]] = defaultdict(deque)
        self._lock = threading.Lock()

    def acquire(self, key: Hashable) -> Optional[ssl.SSLSocket]:
        """
        取出一个空闲连接

        调用方必须先做存活探测再使用。

        Args:
            key: 连接键

        Returns:
            Optional[ssl.SSLSocket]: 空闲连接，没有则返回None
        """
        with self._lock:
            idle = self._idle.get(key)
            if not idle:
                return None
            conn = idle.pop()
            if not idle:
                del self._idle[key]
        self.logger.debug(f"从连接池取出连接: {key}")
        return conn

    def release(self, key: Hashable, conn: ssl.SSLSocket) -> None:
        """
        归还健康的连接

        Args:
            key: 连接键
            conn: TLS连接
        """
        evicted = None
        with self._lock:
            idle = self._idle[key]
            idle.append(conn)
            if self.max_idle_per_key is not None and len(idle) > self.max_idle_per_key:
                evicted = idle.popleft()
        if evicted is not None:
            self.discard(evicted)
        self.logger.debug(f"连接归还到连接池: {key}")

    def discard(self, conn: ssl.SSLSocket) -> None:
        """关闭并丢弃连接"""
        try:
            conn.close()
        except OSError as e:
            self.logger.debug(f"关闭连接时发生错误: {e}")

    def idle_count(self, key: Optional[Hashable] = None) -> int:
        """
        获取空闲连接数

        Args:
            key: 连接键，None表示全部

        Returns:
            int: 空闲连接数
        """
        with self._lock:
            if key is None:
                return sum(len(idle) for idle in self._idle.values())
            return len(self._idle.get(key, ()))

    def close(self):
        """关闭所有空闲连接"""
        with self._lock:
            connections = [conn for idle in self._idle.values() for conn in idle]
            self._idle.clear()
        for conn in connections:
            self.discard(conn)
