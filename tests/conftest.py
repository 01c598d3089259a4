"""
测试共用夹具：自签名证书和本地TLS服务器
"""
import ipaddress
import socket
import ssl
import threading
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID


def make_certificate(common_name="local test CA", sans=None, not_before=None, not_after=None):
    """生成自签名证书，返回 (证书, 私钥)"""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)

    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=90))
    )
    if sans:
        builder = builder.add_extension(x509.SubjectAlternativeName(sans), critical=False)

    return builder.sign(key, hashes.SHA256()), key


class LocalTLSServer:
    """在后台线程中运行的TLS服务器，握手后保持连接直到客户端关闭"""

    def __init__(self, cert_path, key_path):
        self.context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self.context.load_cert_chain(cert_path, key_path)
        self.sock = socket.create_server(("127.0.0.1", 0))
        self.sock.settimeout(0.1)
        self.port = self.sock.getsockname()[1]
        self.accepted = 0
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        self._thread.join(timeout=2)
        self.sock.close()

    def _serve(self):
        while not self._stop.is_set():
            try:
                client, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            self.accepted += 1
            threading.Thread(target=self._handle, args=(client,), daemon=True).start()

    def _handle(self, client):
        try:
            client.settimeout(5)
            with self.context.wrap_socket(client, server_side=True) as tls:
                tls.settimeout(0.1)
                while not self._stop.is_set():
                    try:
                        if not tls.recv(1024):
                            break
                    except socket.timeout:
                        continue
        except OSError:
            client.close()


@pytest.fixture
def self_signed_cert():
    sans = [
        x509.DNSName("example.test"),
        x509.DNSName("www.example.test"),
        x509.RFC822Name("admin@example.test"),
        x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
        x509.UniformResourceIdentifier("https://example.test/"),
    ]
    return make_certificate(sans=sans)


@pytest.fixture
def tls_server(tmp_path, self_signed_cert):
    cert, key = self_signed_cert
    cert_path = tmp_path / "cert.pem"
    key_path = tmp_path / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ))

    server = LocalTLSServer(str(cert_path), str(key_path)).start()
    yield server
    server.stop()


@pytest.fixture
def closed_port():
    """一个当前没有监听的本地端口"""
    sock = socket.create_server(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
