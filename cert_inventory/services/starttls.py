"""
STARTTLS明文协议升级
"""
import logging
import socket
import time
from typing import Callable, Dict, Optional

from ..models import StartTLSKind
from .error_handler import StartTLSError


MAX_LINE_LENGTH = 8192
MAX_REPLY_LINES = 100
CLIENT_NAME = "cert-inventory"

XMPP_STREAM_HEADER = (
    "<?xml version='1.0'?>"
    "<stream:stream xmlns='jabber:client' "
    "xmlns:stream='http://etherx.jabber.org/streams' "
    "to='{hostname}' version='1.0'>"
)
XMPP_STARTTLS = "<starttls xmlns='urn:ietf:params:xml:ns:xmpp-tls'/>"


def remaining_time(deadline: Optional[float]) -> Optional[float]:
    """
    计算距离截止时间的剩余秒数
    
    Args:
        deadline: time.monotonic() 时间点，None表示不限制
        
    Returns:
        Optional[float]: 剩余秒数，不限制时为None
        
    Raises:
        StartTLSError: 已超过截止时间
    """
    if deadline is None:
        return None
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise StartTLSError("STARTTLS协商超时")
    return remaining


class _Session:
    """单次协商的连接与截止时间"""
    
    def __init__(self, sock: socket.socket, hostname: str, deadline: Optional[float]):
        self.sock = sock
        self.hostname = hostname
        self.deadline = deadline
    
    def recv(self, size: int) -> bytes:
        remaining = remaining_time(self.deadline)
        if remaining is not None:
            self.sock.settimeout(remaining)
        return self.sock.recv(size)
    
    def sendall(self, data: bytes) -> None:
        remaining = remaining_time(self.deadline)
        if remaining is not None:
            self.sock.settimeout(remaining)
        self.sock.sendall(data)


class StartTLSNegotiator:
    """在TLS握手之前完成明文协议升级"""
    
    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._handlers: Dict[StartTLSKind, Callable[[_Session], None]] = {
            StartTLSKind.FTP: self._negotiate_ftp,
            StartTLSKind.IMAP: self._negotiate_imap,
            StartTLSKind.POP3: self._negotiate_pop3,
            StartTLSKind.SMTP: self._negotiate_smtp,
            StartTLSKind.XMPP: self._negotiate_xmpp,
        }
    
    def negotiate(self, sock: socket.socket, kind: StartTLSKind, hostname: str,
                  deadline: Optional[float] = None) -> None:
        """
        执行协议升级
        
        每次读写前按剩余时间重设套接字超时，整个协商不会超过截止时间。
        
        Args:
            sock: 已建立的TCP连接
            kind: STARTTLS类型
            hostname: 目标主机名
            deadline: time.monotonic() 截止时间，None表示只受套接字超时限制
            
        Raises:
            StartTLSError: 服务器拒绝升级、响应异常或超过截止时间
        """
        if kind == StartTLSKind.NONE:
            return
        
        self.logger.debug(f"{hostname} 开始 {kind.value} STARTTLS 协商")
        self._handlers[kind](_Session(sock, hostname, deadline))
    
    def _read_line(self, session: _Session) -> str:
        # 逐字节读取，避免读走TLS握手数据
        data = bytearray()
        while len(data) < MAX_LINE_LENGTH:
            chunk = session.recv(1)
            if not chunk:
                break
            data += chunk
            if chunk == b"\n":
                break
        
        if not data:
            raise StartTLSError("服务器在协商过程中关闭了连接")
        return data.decode('utf-8', errors='replace').rstrip("\r\n")
    
    def _read_reply(self, session: _Session) -> str:
        """读取FTP/SMTP风格的多行应答，返回最后一行"""
        line = self._read_line(session)
        for _ in range(MAX_REPLY_LINES):
            if not (len(line) > 3 and line[3] == '-'):
                return line
            line = self._read_line(session)
        raise StartTLSError(f"多行应答超过 {MAX_REPLY_LINES} 行")
    
    def _send(self, session: _Session, command: str) -> None:
        session.sendall(command.encode('ascii') + b"\r\n")
    
    def _expect(self, reply: str, prefix: str, step: str) -> None:
        if not reply.startswith(prefix):
            raise StartTLSError(f"{step} 失败: {reply.strip()[:200]}")
    
    def _negotiate_ftp(self, session: _Session) -> None:
        self._expect(self._read_reply(session), "220", "FTP问候")
        self._send(session, "AUTH TLS")
        self._expect(self._read_reply(session), "234", "AUTH TLS")
    
    def _negotiate_smtp(self, session: _Session) -> None:
        self._expect(self._read_reply(session), "220", "SMTP问候")
        self._send(session, f"EHLO {CLIENT_NAME}")
        self._expect(self._read_reply(session), "250", "EHLO")
        self._send(session, "STARTTLS")
        self._expect(self._read_reply(session), "220", "STARTTLS")
    
    def _negotiate_pop3(self, session: _Session) -> None:
        self._expect(self._read_line(session), "+OK", "POP3问候")
        self._send(session, "STLS")
        self._expect(self._read_line(session), "+OK", "STLS")
    
    def _negotiate_imap(self, session: _Session) -> None:
        self._expect(self._read_line(session), "* OK", "IMAP问候")
        self._send(session, "a001 STARTTLS")
        # 跳过未标记的应答
        for _ in range(MAX_REPLY_LINES):
            line = self._read_line(session)
            if not line.startswith("*"):
                self._expect(line, "a001 OK", "STARTTLS")
                return
        raise StartTLSError(f"未标记应答超过 {MAX_REPLY_LINES} 行")
    
    def _negotiate_xmpp(self, session: _Session) -> None:
        session.sendall(XMPP_STREAM_HEADER.format(hostname=session.hostname).encode('utf-8'))
        features_end = "</stream:features>"
        features = self._read_until(session, (features_end, "</stream:stream>"))
        if "starttls" not in features:
            raise StartTLSError("XMPP服务器未提供starttls特性")
        
        session.sendall(XMPP_STARTTLS.encode('utf-8'))
        # 保留特性列表之后已读到的数据
        pending = features.split(features_end, 1)[1] if features_end in features else ""
        reply = self._read_until(session, ("<proceed", "<failure", "</stream:stream>"), pending)
        if "<proceed" not in reply:
            raise StartTLSError(f"XMPP STARTTLS 被拒绝: {reply.strip()[:200]}")
    
    def _read_until(self, session: _Session, markers, data: str = "") -> str:
        while not any(marker in data for marker in markers):
            if len(data) > MAX_LINE_LENGTH * 4:
                raise StartTLSError("XMPP应答过长")
            chunk = session.recv(4096)
            if not chunk:
                raise StartTLSError("服务器在协商过程中关闭了连接")
            data += chunk.decode('utf-8', errors='replace')
        return data
