"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, FrozenSet, Iterator, List, Optional, Tuple, Union


class StartTLSKind(Enum):
    """明文协议升级类型"""
    NONE = "none"
    FTP = "ftp"
    IMAP = "imap"
    POP3 = "pop3"
    SMTP = "smtp"
    XMPP = "xmpp"


class ProblemFlag(Enum):
    """证书问题标记"""
    NO_CERTIFICATE_FOUND = "NoCertificateFound"
    NAME_MISMATCH = "NameMismatch"
    NEAR_RENEWAL = "NearRenewal"


class RunMode(Enum):
    """运行模式"""
    FULL_REPORT = "full"
    RENEWAL_LIST = "renewal"
    PROBLEMS_LIST = "problems"
    COMMAND_DISPATCH = "exec"


@dataclass(frozen=True)
class ProtocolProfile:
    """协议配置：端口与STARTTLS类型"""
    port: Optional[int]
    starttls: StartTLSKind
    extra_options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DomainSpec:
    """单行输入解析出的检查目标"""
    hostname: str
    port: Optional[int]
    protocol_hint: str
    starttls: StartTLSKind = StartTLSKind.NONE
    extra_options: Tuple[str, ...] = ()

    @property
    def port_display(self) -> str:
        """端口未能解析时显示原始协议提示"""
        return str(self.port) if self.port is not None else self.protocol_hint


@dataclass(frozen=True)
class CertificateInfo:
    """从服务器取得的叶子证书信息，字段全部缺失表示未取得证书"""
    subject_cn: Optional[str] = None
    subject_alt_names: FrozenSet[str] = frozenset()
    issuer_cn: Optional[str] = None
    not_after: Optional[Union[datetime, str]] = None

    @property
    def is_absent(self) -> bool:
        """是否完全没有证书信息"""
        return self.not_after is None and not self.subject_cn and not self.subject_alt_names


@dataclass(frozen=True)
class DomainVerdict:
    """单个域名的检查结论"""
    domain: str
    port: str
    issued_to: str
    valid_until: Optional[datetime]
    issued_by: str
    problems: FrozenSet[ProblemFlag] = frozenset()

    @property
    def has_problems(self) -> bool:
        return bool(self.problems)

    @property
    def needs_renewal(self) -> bool:
        return ProblemFlag.NEAR_RENEWAL in self.problems

    @property
    def valid_until_display(self) -> str:
        if self.valid_until is None:
            return "-"
        return self.valid_until.strftime('%Y-%m-%d %H:%M:%S %Z').strip()

    @property
    def problems_display(self) -> str:
        # 按枚举声明顺序输出，保证结果稳定
        return ", ".join(flag.value for flag in ProblemFlag if flag in self.problems)


class Report:
    """按输入顺序保存的检查结论集合"""

    def __init__(self, verdicts: Optional[List[DomainVerdict]] = None):
        self._verdicts: List[DomainVerdict] = list(verdicts or [])

    def append(self, verdict: DomainVerdict) -> None:
        self._verdicts.append(verdict)

    def __iter__(self) -> Iterator[DomainVerdict]:
        return iter(self._verdicts)

    def __len__(self) -> int:
        return len(self._verdicts)

    def __getitem__(self, index: int) -> DomainVerdict:
        return self._verdicts[index]

    @property
    def verdicts(self) -> List[DomainVerdict]:
        return list(self._verdicts)

    def renewal_verdicts(self) -> List[DomainVerdict]:
        """需要续期的结论"""
        return [verdict for verdict in self._verdicts if verdict.needs_renewal]

    def problem_verdicts(self) -> List[DomainVerdict]:
        """存在任意问题的结论"""
        return [verdict for verdict in self._verdicts if verdict.has_problems]

    def renewal_domains(self) -> List[str]:
        """
        需要续期的域名列表

        Returns:
            List[str]: 按首次出现顺序去重后的域名
        """
        return list(dict.fromkeys(verdict.domain for verdict in self.renewal_verdicts()))

    def filter(self, mode: RunMode) -> List[DomainVerdict]:
        """
        按运行模式筛选结论

        Args:
            mode: 运行模式

        Returns:
            List[DomainVerdict]: 筛选后的结论
        """
        if mode in (RunMode.RENEWAL_LIST, RunMode.COMMAND_DISPATCH):
            return self.renewal_verdicts()
        if mode == RunMode.PROBLEMS_LIST:
            return self.problem_verdicts()
        return self.verdicts


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RunContext:
    """单次运行的全局配置"""
    renew_alert_days: int = 30
    timeout: float = 10.0
    max_workers: int = 8
    mode: RunMode = RunMode.FULL_REPORT
    command: Optional[str] = None
    clock: Callable[[], datetime] = field(default=utc_now, compare=False)

    def now(self) -> datetime:
        return self.clock()


@dataclass
class CheckResult:
    """检查结果统计"""
    total_domains: int
    healthy_domains: int
    problem_domains: List[str]
    renewal_domains: List[str]
    execution_time: float
