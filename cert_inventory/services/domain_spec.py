"""
域名行解析服务
"""
import logging
from typing import Iterable, Iterator

from ..models import DomainSpec
from .protocol_profiles import DEFAULT_PROTOCOL_HINT, resolve_profile


logger = logging.getLogger(__name__)


def is_domain_line(line: str) -> bool:
    """跳过空行和#注释行"""
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith('#')


def parse_domain_line(line: str) -> DomainSpec:
    """
    解析一行输入：hostname[:port-or-service] [extra tokens]
    
    不做主机名格式校验，任何输入都会得到一个DomainSpec，
    无效的主机名留到连接阶段失败。
    
    Args:
        line: 原始输入行
        
    Returns:
        DomainSpec: 检查目标
    """
    tokens = line.split()
    if not tokens:
        return DomainSpec(hostname="", port=None, protocol_hint=DEFAULT_PROTOCOL_HINT)
    
    first, extra_tokens = tokens[0], tokens[1:]
    if ':' in first:
        hostname, protocol_hint = first.split(':', 1)
    else:
        hostname, protocol_hint = first, DEFAULT_PROTOCOL_HINT
    
    hostname = hostname.strip()
    protocol_hint = protocol_hint.strip() or DEFAULT_PROTOCOL_HINT
    profile = resolve_profile(protocol_hint, extra_tokens)
    
    if extra_tokens and not profile.extra_options:
        logger.debug(f"{hostname}:{protocol_hint} 为已知协议，忽略额外参数: {' '.join(extra_tokens)}")
    
    return DomainSpec(
        hostname=hostname,
        port=profile.port,
        protocol_hint=protocol_hint,
        starttls=profile.starttls,
        extra_options=profile.extra_options
    )


def iter_domain_specs(lines: Iterable[str]) -> Iterator[DomainSpec]:
    """按顺序解析所有有效行"""
    for line in lines:
        if is_domain_line(line):
            yield parse_domain_line(line)
