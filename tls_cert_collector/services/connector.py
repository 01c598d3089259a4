"""
单目标TLS连接与证书提取服务
"""
import enum
import socket
import ssl
import threading
from datetime import datetime, timezone, tzinfo
from typing import List, Optional
import logging

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..exceptions import (
    CertificateParseError,
    CollectionCancelledError,
    DialError,
    NoCertificateError,
    ProtocolError,
)
from ..interfaces import ConnectionPoolInterface, IPCacheInterface
from ..models import CertificateRecord
from .address import normalize_address
from .connection_pool import probe_connection
from .error_handler import NetworkErrorHandler
from .expiry_calculator import current_time, days_left


class ConnectorState(enum.Enum):
    """连接器状态"""
    CREATED = "created"
    DIALING = "dialing"
    CONNECTED = "connected"
    EXTRACTED = "extracted"
    RELEASED = "released"
    FAILED = "failed"


def build_ssl_context(insecure: bool = False) -> ssl.SSLContext:
    """
    创建客户端SSL上下文

    最低TLS 1.2；insecure为True时跳过证书链和主机名校验。

    Args:
        insecure: 是否跳过校验

    Returns:
        ssl.SSLContext: SSL上下文
    """
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    if insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def get_sans(cert: x509.Certificate) -> List[str]:
    """
    提取SAN（顺序：DNS名、邮箱、IP、URI）

    Args:
        cert: 证书

    Returns:
        List[str]: SAN列表，没有该扩展时为空
    """
    try:
        extension = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    except x509.ExtensionNotFound:
        return []

    names = extension.value
    sans = list(names.get_values_for_type(x509.DNSName))
    sans.extend(names.get_values_for_type(x509.RFC822Name))
    sans.extend(str(ip) for ip in names.get_values_for_type(x509.IPAddress))
    sans.extend(names.get_values_for_type(x509.UniformResourceIdentifier))
    return sans


def get_common_name(name: x509.Name) -> str:
    """获取名称中的CN，没有则返回空字符串"""
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return ""
    value = attributes[0].value
    return value if isinstance(value, str) else value.decode('utf-8', 'replace')


class Connector:
    """
    单个目标的TLS会话

    生命周期: CREATED -> DIALING -> CONNECTED -> EXTRACTED -> RELEASED，
    任一步失败进入 FAILED。连接从连接池借用，用完后归还或关闭，
    作为上下文管理器使用时保证释放。
    """

    def __init__(self, address: str, timeout: float, insecure: bool, tz: tzinfo,
                 ip_cache: IPCacheInterface, connection_pool: ConnectionPoolInterface,
                 ssl_context: Optional[ssl.SSLContext] = None):
        """
        初始化连接器

        Args:
            address: 原始目标（host 或 host:port）
            timeout: 连接和解析超时时间（秒）
            insecure: 是否跳过证书校验
            tz: 时间字段使用的时区
            ip_cache: IP地址缓存
            connection_pool: TLS连接池
            ssl_context: SSL上下文，默认按insecure创建
        """
        normalized = normalize_address(address)
        self.address = normalized.address
        self.host = normalized.host
        self.port = normalized.port
        self.ips: List[str] = []
        self.timeout = timeout
        self.insecure = insecure
        self.tz = tz
        self.ip_cache = ip_cache
        self.connection_pool = connection_pool
        self.ssl_context = ssl_context or build_ssl_context(insecure)
        self.tls_conn: Optional[ssl.SSLSocket] = None
        self.state = ConnectorState.CREATED
        self.logger = logging.getLogger(__name__)
        self.error_handler = NetworkErrorHandler()

    @property
    def pool_key(self):
        """连接池键，校验模式不同的连接不互相复用"""
        return (self.host, self.port, self.insecure)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.release()
        return False

    def get_tls_conn(self, cancel_event: Optional[threading.Event] = None):
        """
        获取TLS连接

        优先复用连接池中通过存活探测的连接，否则重新建立连接。

        Args:
            cancel_event: 取消信号
        """
        self.state = ConnectorState.DIALING

        pooled = self.connection_pool.acquire(self.pool_key)
        if pooled is not None:
            if probe_connection(pooled):
                self.logger.debug(f"复用连接池中的连接: {self.address}")
                self.tls_conn = pooled
                self.state = ConnectorState.CONNECTED
                return
            self.logger.debug(f"连接池中的连接已失效，重新连接: {self.address}")
            self.connection_pool.discard(pooled)

        self._check_cancelled(cancel_event)

        try:
            sock = socket.create_connection((self.host, int(self.port)), timeout=self.timeout)
        except OSError as e:
            self._fail()
            self.error_handler.handle_ssl_connection_error(self.address, e)
            raise DialError(self.address, e) from e

        try:
            tls_conn = self.ssl_context.wrap_socket(sock, server_hostname=self.host)
        except (OSError, ValueError) as e:
            sock.close()
            self._fail()
            self.error_handler.handle_ssl_connection_error(self.address, e)
            raise DialError(self.address, e) from e

        # 默认上下文在 wrap_socket 时完成握手；注入的上下文可能返回未握手的套接字
        if not isinstance(tls_conn, ssl.SSLSocket) or tls_conn.version() is None:
            tls_conn.close()
            self._fail()
            raise ProtocolError(self.address)

        self.logger.debug(f"已建立TLS连接: {self.address} ({tls_conn.version()})")
        self.tls_conn = tls_conn
        self.state = ConnectorState.CONNECTED

    def lookup_ip(self, cancel_event: Optional[threading.Event] = None):
        """
        查询目标的IP地址

        IP查询不是主要功能，失败时只得到空列表，不抛出异常。

        Args:
            cancel_event: 取消信号
        """
        self._check_cancelled(cancel_event)
        self.ips = self.ip_cache.lookup(self.host, self.timeout)

    def get_server_cert(self) -> CertificateRecord:
        """
        提取服务器叶证书信息

        Returns:
            CertificateRecord: 证书信息
        """
        der = self.tls_conn.getpeercert(binary_form=True)
        if not der:
            self._fail()
            raise NoCertificateError(self.address, self.host)

        now = datetime.now(timezone.utc)
        # 证书结构和扩展在访问时才解析，均可能抛出 ValueError
        try:
            cert = x509.load_der_x509_certificate(der)
            not_after = cert.not_valid_after_utc
            record = CertificateRecord(
                domain_name=self.host,
                access_port=self.port,
                ip_addresses=list(self.ips),
                issuer=cert.issuer.rfc4514_string(),
                common_name=get_common_name(cert.subject),
                sans=get_sans(cert),
                not_before=cert.not_valid_before_utc.astimezone(self.tz),
                not_after=not_after.astimezone(self.tz),
                current_time=current_time(now, self.tz),
                days_left=days_left(not_after, now),
            )
        except ValueError as e:
            self._fail()
            raise CertificateParseError(self.address, e) from e
        self.state = ConnectorState.EXTRACTED
        return record

    def release(self):
        """
        释放连接

        再次探测连接，健康则归还连接池，否则关闭。无论证书提取是否成功都会执行。
        """
        conn, self.tls_conn = self.tls_conn, None
        if conn is None:
            return

        if probe_connection(conn):
            self.connection_pool.release(self.pool_key, conn)
        else:
            self.logger.debug(f"连接已失效，关闭: {self.address}")
            self.connection_pool.discard(conn)

        if self.state != ConnectorState.FAILED:
            self.state = ConnectorState.RELEASED

    def _check_cancelled(self, cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            self._fail()
            raise CollectionCancelledError(f"采集已取消: {self.address}")

    def _fail(self):
        self.state = ConnectorState.FAILED
