"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from .models import CertificateInfo, DomainVerdict, Report, StartTLSKind


class DomainSourceInterface(ABC):
    """域名来源接口"""
    
    @abstractmethod
    def get_lines(self) -> List[str]:
        """获取原始域名行"""
        pass


class CertificateFetcherInterface(ABC):
    """证书获取器接口"""
    
    @abstractmethod
    def fetch(self, hostname: str, port: Optional[int], starttls: StartTLSKind,
              extra_options: Sequence[str] = ()) -> CertificateInfo:
        """获取单个端点的叶子证书"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""
    
    @abstractmethod
    def send_renewal_notification(self, report: Report) -> bool:
        """发送证书续期通知"""
        pass
    
    @abstractmethod
    def format_notification_content(self, verdicts: List[DomainVerdict]) -> str:
        """格式化通知内容"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""
    
    @abstractmethod
    def log_check_start(self, domain_count: int):
        """记录检查开始"""
        pass
    
    @abstractmethod
    def log_verdict(self, verdict: DomainVerdict):
        """记录检查结论"""
        pass
    
    @abstractmethod
    def log_error(self, domain: str, error: Exception):
        """记录错误信息"""
        pass
