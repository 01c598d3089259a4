"""
TLS连接池测试
"""
import socket
import ssl
import threading
import time
from unittest.mock import MagicMock

from tls_cert_collector.services.connection_pool import ConnectionPool, probe_connection


def insecure_client_context():
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class TestConnectionPool:
    """连接池测试类"""

    def setup_method(self):
        """测试前准备"""
        self.pool = ConnectionPool()
        self.key = ('example.test', '443', False)

    def test_acquire_empty(self):
        assert self.pool.acquire(self.key) is None

    def test_release_then_acquire(self):
        """测试归还后可再次取出"""
        conn = MagicMock()
        self.pool.release(self.key, conn)

        assert self.pool.idle_count(self.key) == 1
        assert self.pool.acquire(self.key) is conn
        assert self.pool.acquire(self.key) is None
        assert self.pool.idle_count() == 0

    def test_keys_are_isolated(self):
        """测试不同键的连接互不复用"""
        conn = MagicMock()
        self.pool.release(self.key, conn)

        assert self.pool.acquire(('example.test', '443', True)) is None
        assert self.pool.acquire(('other.test', '443', False)) is None

    def test_lifo_order(self):
        first, second = MagicMock(), MagicMock()
        self.pool.release(self.key, first)
        self.pool.release(self.key, second)

        assert self.pool.acquire(self.key) is second
        assert self.pool.acquire(self.key) is first

    def test_max_idle_evicts_oldest(self):
        """测试超过空闲上限时关闭最旧的连接"""
        pool = ConnectionPool(max_idle_per_key=1)
        first, second = MagicMock(), MagicMock()

        pool.release(self.key, first)
        pool.release(self.key, second)

        first.close.assert_called_once()
        second.close.assert_not_called()
        assert pool.acquire(self.key) is second

    def test_concurrent_acquire_single_owner(self):
        """测试同一连接不会交给两个使用者"""
        conn = MagicMock()
        self.pool.release(self.key, conn)
        acquired = []
        barrier = threading.Barrier(10)

        def worker():
            barrier.wait()
            result = self.pool.acquire(self.key)
            if result is not None:
                acquired.append(result)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert acquired == [conn]

    def test_discard_ignores_close_error(self):
        conn = MagicMock()
        conn.close.side_effect = OSError("already closed")

        self.pool.discard(conn)

        conn.close.assert_called_once()

    def test_close_all(self):
        conns = [MagicMock() for _ in range(3)]
        self.pool.release(self.key, conns[0])
        self.pool.release(('other.test', '443', False), conns[1])
        self.pool.release(self.key, conns[2])

        self.pool.close()

        assert self.pool.idle_count() == 0
        for conn in conns:
            conn.close.assert_called_once()


class TestProbeConnection:
    """连接存活探测测试类"""

    def test_closed_fd(self):
        conn = MagicMock()
        conn.fileno.return_value = -1

        assert probe_connection(conn) is False

    def test_no_handshake(self):
        conn = MagicMock()
        conn.fileno.return_value = 3
        conn.version.return_value = None

        assert probe_connection(conn) is False

    def test_live_connection(self, tls_server):
        """测试握手完成的连接视为存活"""
        sock = socket.create_connection(("127.0.0.1", tls_server.port), timeout=2)
        with insecure_client_context().wrap_socket(sock, server_hostname="example.test") as conn:
            assert probe_connection(conn) is True
            # 探测后连接仍可用
            assert probe_connection(conn) is True
            assert conn.gettimeout() == 2

    def test_server_closed_connection(self, tls_server):
        """测试服务器关闭后的连接视为失效"""
        sock = socket.create_connection(("127.0.0.1", tls_server.port), timeout=2)
        with insecure_client_context().wrap_socket(sock, server_hostname="example.test") as conn:
            tls_server.stop()
            deadline = time.monotonic() + 2
            alive = True
            while alive and time.monotonic() < deadline:
                alive = probe_connection(conn)
                time.sleep(0.05)

            assert alive is False

    def test_locally_closed_connection(self, tls_server):
        sock = socket.create_connection(("127.0.0.1", tls_server.port), timeout=2)
        conn = insecure_client_context().wrap_socket(sock, server_hostname="example.test")
        conn.close()

        assert probe_connection(conn) is False
