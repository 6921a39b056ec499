"""
协议配置表
"""
import re
from typing import Dict, Optional, Sequence, Tuple

from ..models import ProtocolProfile, StartTLSKind


DEFAULT_PROTOCOL_HINT = "443"

# 服务名与端口号都可作为协议提示
_PROFILES: Dict[str, Tuple[int, StartTLSKind]] = {
    'https': (443, StartTLSKind.NONE),
    'ftp': (21, StartTLSKind.FTP),
    'ftpi': (990, StartTLSKind.NONE),
    'imap': (143, StartTLSKind.IMAP),
    'imaps': (993, StartTLSKind.NONE),
    'pop3': (110, StartTLSKind.POP3),
    'pop3s': (995, StartTLSKind.NONE),
    'smtp': (25, StartTLSKind.SMTP),
    'smtps': (587, StartTLSKind.SMTP),
    'xmpp': (5222, StartTLSKind.XMPP),
    'xmpps': (5269, StartTLSKind.NONE),
    'ldaps': (636, StartTLSKind.NONE),
}

PROTOCOL_TABLE: Dict[str, Tuple[int, StartTLSKind]] = dict(_PROFILES)
PROTOCOL_TABLE.update({str(port): (port, kind) for port, kind in _PROFILES.values()})

# 形如 custom-9999 的自定义服务名
_LABELLED_PORT = re.compile(r'^[A-Za-z][\w.]*-(\d+)$')


def is_known_hint(protocol_hint: str) -> bool:
    """协议提示是否在配置表中"""
    return protocol_hint.strip().lower() in PROTOCOL_TABLE


def parse_port(token: str) -> Optional[int]:
    """
    将协议提示解析为端口号
    
    Args:
        token: 协议提示
        
    Returns:
        Optional[int]: 端口号，无法解析或超出范围时返回None
    """
    token = token.strip()
    match = _LABELLED_PORT.match(token)
    if match:
        token = match.group(1)
    
    try:
        port = int(token)
    except ValueError:
        return None
    
    if not 1 <= port <= 65535:
        return None
    return port


def resolve_profile(protocol_hint: str, extra_tokens: Sequence[str] = ()) -> ProtocolProfile:
    """
    查找协议提示对应的端口与STARTTLS类型
    
    Args:
        protocol_hint: 服务名或端口号
        extra_tokens: 同一行中协议提示之后的其他参数
        
    Returns:
        ProtocolProfile: 协议配置；未知提示的额外参数原样保留
    """
    if not protocol_hint.strip():
        protocol_hint = DEFAULT_PROTOCOL_HINT
    
    known = PROTOCOL_TABLE.get(protocol_hint.strip().lower())
    if known:
        port, starttls = known
        return ProtocolProfile(port=port, starttls=starttls)
    
    return ProtocolProfile(
        port=parse_port(protocol_hint),
        starttls=StartTLSKind.NONE,
        extra_options=tuple(extra_tokens)
    )
