"""
集成测试：在本地启动TLS服务器，完整执行证书巡检
"""
import socket
import ssl
import threading
import time
from datetime import datetime, timezone, timedelta

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

from cert_inventory.inventory import CertificateInventory
from cert_inventory.models import ProblemFlag, RunContext, RunMode, StartTLSKind
from cert_inventory.services.certificate_fetcher import CertificateFetcher
from cert_inventory.services.report_renderer import render


NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def write_certificate(tmp_path, cn, not_after):
    """生成自签名证书并写入PEM文件"""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Local Test CA")]))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=365))
        .not_valid_after(not_after)
        .add_extension(x509.SubjectAlternativeName([x509.DNSName("alt.localhost")]), critical=False)
        .sign(key, hashes.SHA256())
    )
    
    cert_file = tmp_path / "cert.pem"
    key_file = tmp_path / "key.pem"
    cert_file.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_file.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    ))
    return str(cert_file), str(key_file)


class LocalTLSServer:
    """在后台线程中处理TLS连接，可选先进行SMTP STARTTLS协商"""
    
    def __init__(self, cert_file, key_file, smtp=False):
        self.context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self.context.load_cert_chain(cert_file, key_file)
        self.smtp = smtp
        self.listener = socket.create_server(("127.0.0.1", 0))
        self.listener.settimeout(5)
        self.port = self.listener.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)
    
    def __enter__(self):
        self.thread.start()
        return self
    
    def __exit__(self, *exc_info):
        self.listener.close()
        self.thread.join(timeout=5)
    
    def _serve(self):
        try:
            conn, _ = self.listener.accept()
        except OSError:
            return
        with conn:
            conn.settimeout(5)
            try:
                if self.smtp:
                    self._smtp_greeting(conn)
                with self.context.wrap_socket(conn, server_side=True) as tls:
                    tls.recv(1)
            except (OSError, ssl.SSLError):
                pass
    
    @staticmethod
    def _read_line(conn):
        data = b""
        while not data.endswith(b"\n"):
            chunk = conn.recv(1)
            if not chunk:
                break
            data += chunk
        return data
    
    def _smtp_greeting(self, conn):
        conn.sendall(b"220 localhost ESMTP ready\r\n")
        self._read_line(conn)
        conn.sendall(b"250-localhost\r\n250 STARTTLS\r\n")
        self._read_line(conn)
        conn.sendall(b"220 Ready to start TLS\r\n")


class SlowGreetingServer:
    """持续发送SMTP续行问候、从不结束的服务器"""
    
    def __init__(self, duration=3.0, interval=0.1):
        self.duration = duration
        self.interval = interval
        self.listener = socket.create_server(("127.0.0.1", 0))
        self.listener.settimeout(5)
        self.port = self.listener.getsockname()[1]
        self.thread = threading.Thread(target=self._serve, daemon=True)
    
    def __enter__(self):
        self.thread.start()
        return self
    
    def __exit__(self, *exc_info):
        self.listener.close()
        self.thread.join(timeout=5)
    
    def _serve(self):
        try:
            conn, _ = self.listener.accept()
        except OSError:
            return
        with conn:
            end = time.monotonic() + self.duration
            try:
                while time.monotonic() < end:
                    conn.sendall(b"220-still greeting\r\n")
                    time.sleep(self.interval)
            except OSError:
                pass


class TestIntegration:
    """端到端巡检测试类"""
    
    def make_inventory(self, mode=RunMode.FULL_REPORT):
        context = RunContext(renew_alert_days=30, timeout=5.0, max_workers=1, mode=mode, clock=lambda: NOW)
        return CertificateInventory(context)
    
    def test_direct_tls_endpoint(self, tmp_path):
        """测试直接TLS连接"""
        cert_file, key_file = write_certificate(tmp_path, "localhost", NOW + timedelta(days=200))
        
        with LocalTLSServer(cert_file, key_file) as server:
            report = self.make_inventory().run([f"localhost:{server.port}"])
        
        verdict = report[0]
        assert verdict.port == str(server.port)
        assert verdict.issued_to == "localhost"
        assert verdict.issued_by == "Local Test CA"
        assert verdict.problems == frozenset()
    
    def test_smtp_starttls_near_renewal(self, tmp_path):
        """测试SMTP STARTTLS并标记即将续期"""
        cert_file, key_file = write_certificate(tmp_path, "mail.localhost", NOW + timedelta(days=10))
        
        with LocalTLSServer(cert_file, key_file, smtp=True) as server:
            inventory = self.make_inventory(RunMode.RENEWAL_LIST)
            report = inventory.run([f"localhost:{server.port} -starttls smtp"])
        
        verdict = report[0]
        assert verdict.problems == frozenset({ProblemFlag.NAME_MISMATCH, ProblemFlag.NEAR_RENEWAL})
        assert verdict.issued_to == "mail.localhost"
        assert render(report, RunMode.RENEWAL_LIST) == "localhost"
    
    def test_closed_port(self):
        """测试端口未监听"""
        listener = socket.create_server(("127.0.0.1", 0))
        port = listener.getsockname()[1]
        listener.close()
        
        report = self.make_inventory().run([f"localhost:{port}"])
        
        assert report[0].problems == frozenset({ProblemFlag.NO_CERTIFICATE_FOUND})
        assert report[0].issued_to == "-"
        assert report[0].valid_until_display == "-"
    
    def test_slow_starttls_greeting_is_bounded_by_timeout(self):
        """测试不断续行的问候在超时时间内结束"""
        fetcher = CertificateFetcher(timeout=0.5)
        
        with SlowGreetingServer() as server:
            start = time.monotonic()
            info = fetcher.fetch("127.0.0.1", server.port, StartTLSKind.SMTP)
            elapsed = time.monotonic() - start
        
        assert info.is_absent
        assert elapsed < 2.0
        assert fetcher.error_handler.errors[-1]['error_type'] in ("StartTLSError", "timeout", "TimeoutError")
