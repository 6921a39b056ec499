"""
证书获取服务
"""
import ssl
import socket
import time
from dataclasses import dataclass
from typing import Optional, Sequence
import logging

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..interfaces import CertificateFetcherInterface
from ..models import CertificateInfo, StartTLSKind
from .error_handler import ConnectionErrorHandler, NoCertificateError, StartTLSError
from .starttls import StartTLSNegotiator, remaining_time


TLS_VERSIONS = {
    '-tls1': ssl.TLSVersion.TLSv1,
    '-tls1_1': ssl.TLSVersion.TLSv1_1,
    '-tls1_2': ssl.TLSVersion.TLSv1_2,
    '-tls1_3': ssl.TLSVersion.TLSv1_3,
}


@dataclass
class FetchOptions:
    """额外连接参数解析结果"""
    server_name: Optional[str]
    tls_version: Optional[ssl.TLSVersion] = None
    starttls: Optional[StartTLSKind] = None


def parse_extra_options(hostname: str, extra_options: Sequence[str]) -> FetchOptions:
    """
    解析s_client风格的额外连接参数
    
    Args:
        hostname: 目标主机名，默认用作SNI
        extra_options: 原样传入的参数
        
    Returns:
        FetchOptions: 连接参数
    """
    logger = logging.getLogger(__name__)
    options = FetchOptions(server_name=hostname)
    tokens = list(extra_options)
    
    while tokens:
        token = tokens.pop(0)
        if token == '-servername' and tokens:
            options.server_name = tokens.pop(0)
        elif token == '-noservername':
            options.server_name = None
        elif token in TLS_VERSIONS:
            options.tls_version = TLS_VERSIONS[token]
        elif token == '-starttls' and tokens:
            value = tokens.pop(0).lower()
            try:
                options.starttls = StartTLSKind(value)
            except ValueError:
                logger.warning(f"{hostname} 不支持的STARTTLS类型: {value}")
        else:
            logger.warning(f"{hostname} 忽略未知的连接参数: {token}")
    
    return options


def _first_common_name(name: x509.Name) -> Optional[str]:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return None
    value = attributes[0].value
    return value if isinstance(value, str) else value.decode('utf-8', errors='replace')


def parse_certificate(der_cert: bytes) -> CertificateInfo:
    """
    解析DER格式的叶子证书
    
    Args:
        der_cert: DER编码的证书
        
    Returns:
        CertificateInfo: 证书信息
    """
    cert = x509.load_der_x509_certificate(der_cert)
    
    try:
        ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        sans = frozenset(ext.value.get_values_for_type(x509.DNSName))
    except x509.ExtensionNotFound:
        sans = frozenset()
    
    return CertificateInfo(
        subject_cn=_first_common_name(cert.subject),
        subject_alt_names=sans,
        issuer_cn=_first_common_name(cert.issuer),
        not_after=cert.not_valid_after_utc
    )


class CertificateFetcher(CertificateFetcherInterface):
    """通过TLS握手获取服务器证书，不校验证书链"""
    
    def __init__(self, timeout: float = 10.0, error_handler: Optional[ConnectionErrorHandler] = None):
        """
        初始化证书获取器
        
        Args:
            timeout: 连接和握手的超时时间（秒）
            error_handler: 连接错误处理器
        """
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.error_handler = error_handler or ConnectionErrorHandler()
        self.negotiator = StartTLSNegotiator()
    
    def fetch(self, hostname: str, port: Optional[int], starttls: StartTLSKind,
              extra_options: Sequence[str] = ()) -> CertificateInfo:
        """
        获取单个端点的叶子证书
        
        任何失败都返回字段全部缺失的CertificateInfo，不向上抛出异常。
        
        Args:
            hostname: 主机名
            port: 端口，None表示无法解析
            starttls: STARTTLS类型
            extra_options: 额外连接参数
            
        Returns:
            CertificateInfo: 证书信息
        """
        if port is None:
            self.logger.warning(f"{hostname} 的端口无法解析，跳过连接")
            return CertificateInfo()
        
        try:
            options = parse_extra_options(hostname, extra_options)
            if options.starttls is not None:
                starttls = options.starttls
            
            der_cert = self._get_peer_certificate(hostname, port, starttls, options)
            cert_info = parse_certificate(der_cert)
            
            self.logger.debug(f"{hostname}:{port} 证书获取成功，CN={cert_info.subject_cn}")
            return cert_info
            
        except (OSError, ValueError, StartTLSError, NoCertificateError) as e:
            # ssl.SSLError 与 socket.timeout 都是 OSError
            self.error_handler.handle_connection_error(hostname, port, e)
            return CertificateInfo()
    
    def _create_context(self, options: FetchOptions) -> ssl.SSLContext:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        
        if options.tls_version is not None:
            context.minimum_version = options.tls_version
            context.maximum_version = options.tls_version
        
        return context
    
    def _get_peer_certificate(self, hostname: str, port: int, starttls: StartTLSKind,
                              options: FetchOptions) -> bytes:
        """
        建立连接并取得DER格式证书
        
        Raises:
            OSError: 连接或握手失败
            NoCertificateError: 服务器未返回证书
        """
        context = self._create_context(options)
        # 连接、协商与握手共用一个截止时间
        deadline = time.monotonic() + self.timeout
        
        with socket.create_connection((hostname, port), timeout=self.timeout) as sock:
            self.negotiator.negotiate(sock, starttls, hostname, deadline=deadline)
            sock.settimeout(remaining_time(deadline))
            with context.wrap_socket(sock, server_hostname=options.server_name) as ssock:
                der_cert = ssock.getpeercert(binary_form=True)
        
        if not der_cert:
            raise NoCertificateError(f"无法获取 {hostname}:{port} 的证书")
        
        return der_cert
