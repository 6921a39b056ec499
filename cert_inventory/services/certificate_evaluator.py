"""
证书评估服务
"""
import logging
from datetime import datetime, timezone, timedelta
from typing import Optional, Union

from ..models import CertificateInfo, DomainSpec, DomainVerdict, ProblemFlag


# 证书时间的常见文本格式：OpenSSL文本、ASN.1 UTCTime/GeneralizedTime
_TIME_FORMATS = (
    '%b %d %H:%M:%S %Y %Z',
    '%b %d %H:%M:%S %Y',
    '%y%m%d%H%M%SZ',
    '%Y%m%d%H%M%SZ',
)


def as_utc(value: datetime) -> datetime:
    """无时区的时间按UTC处理"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_certificate_time(value: Union[datetime, str]) -> datetime:
    """
    解析证书过期时间
    
    Args:
        value: datetime对象或文本，如 'Dec 31 23:59:59 2024 GMT'、
            '241231235959Z'、'2024-12-31T23:59:59+00:00'
            
    Returns:
        datetime: 带时区的过期时间
        
    Raises:
        ValueError: 无法识别的时间格式
    """
    if isinstance(value, datetime):
        return as_utc(value)
    
    text = " ".join(value.split())
    for fmt in _TIME_FORMATS:
        try:
            return as_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    
    # ISO 8601，带或不带时区
    return as_utc(datetime.fromisoformat(text.replace('Z', '+00:00')))


class CertificateEvaluator:
    """证书评估器：身份匹配与续期提醒"""
    
    def __init__(self, renew_alert_days: int = 30):
        """
        初始化证书评估器
        
        Args:
            renew_alert_days: 提前提醒续期的天数，默认30天
        """
        self.renew_alert_days = renew_alert_days
        self.logger = logging.getLogger(__name__)
    
    def is_near_renewal(self, not_after: datetime, now: datetime) -> bool:
        """
        判断证书是否进入续期提醒期
        
        对带时区的now按日历天数相加，再以绝对时间比较，跨越夏令时也不受影响。
        
        Args:
            not_after: 过期时间
            now: 当前时间
            
        Returns:
            bool: now + renew_alert_days 天是否晚于过期时间
        """
        threshold = as_utc(now) + timedelta(days=self.renew_alert_days)
        return threshold > as_utc(not_after)
    
    def days_until_expiry(self, not_after: datetime, now: datetime) -> int:
        """
        计算距离过期的天数
        
        Returns:
            int: 剩余天数（负数表示已过期）
        """
        return (as_utc(not_after) - as_utc(now)).days
    
    def evaluate(self, spec: DomainSpec, cert: CertificateInfo, now: datetime) -> DomainVerdict:
        """
        评估单个域名的证书
        
        Args:
            spec: 检查目标
            cert: 证书信息（可能全部缺失）
            now: 当前时间
            
        Returns:
            DomainVerdict: 检查结论
        """
        problems = set()
        hostname = spec.hostname
        
        if cert.is_absent:
            problems.add(ProblemFlag.NO_CERTIFICATE_FOUND)
            issued_to = "-"
        elif cert.subject_cn == hostname:
            issued_to = cert.subject_cn
        elif hostname in cert.subject_alt_names:
            issued_to = f"{hostname} (alt)"
        else:
            problems.add(ProblemFlag.NAME_MISMATCH)
            issued_to = cert.subject_cn or "-"
        
        valid_until: Optional[datetime] = None
        if cert.not_after is not None:
            try:
                valid_until = parse_certificate_time(cert.not_after)
            except ValueError:
                self.logger.warning(f"{hostname} 的证书过期时间无法解析: {cert.not_after!r}")
            if valid_until is not None and self.is_near_renewal(valid_until, now):
                problems.add(ProblemFlag.NEAR_RENEWAL)
        
        return DomainVerdict(
            domain=hostname,
            port=spec.port_display,
            issued_to=issued_to,
            valid_until=valid_until,
            issued_by=cert.issuer_cn or "-",
            problems=frozenset(problems)
        )


def evaluate(spec: DomainSpec, cert: CertificateInfo, renew_alert_days: int, now: datetime) -> DomainVerdict:
    """按给定的提醒天数评估证书"""
    return CertificateEvaluator(renew_alert_days).evaluate(spec, cert, now)
