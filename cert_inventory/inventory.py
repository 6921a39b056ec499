"""
证书巡检主流程
"""
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional

from .interfaces import CertificateFetcherInterface
from .models import CertificateInfo, CheckResult, DomainSpec, DomainVerdict, Report, RunContext, RunMode
from .services.certificate_evaluator import CertificateEvaluator
from .services.certificate_fetcher import CertificateFetcher
from .services.command_dispatcher import CommandDispatcher
from .services.domain_spec import iter_domain_specs
from .services.logger import LoggerService
from .services.report_renderer import render


def select_run_mode(renewal: bool = False, problems: bool = False, command: Optional[str] = None) -> RunMode:
    """
    确定运行模式，优先级：命令分发 > 续期列表 > 问题列表 > 完整报告
    """
    if command:
        return RunMode.COMMAND_DISPATCH
    if renewal:
        return RunMode.RENEWAL_LIST
    if problems:
        return RunMode.PROBLEMS_LIST
    return RunMode.FULL_REPORT


class CertificateInventory:
    """证书巡检器主类"""
    
    def __init__(self, context: RunContext,
                 fetcher: Optional[CertificateFetcherInterface] = None,
                 logger_service: Optional[LoggerService] = None):
        """
        初始化巡检器
        
        Args:
            context: 运行配置
            fetcher: 证书获取器，默认使用 CertificateFetcher
            logger_service: 日志服务
        """
        self.context = context
        self.logger_service = logger_service or LoggerService()
        self.fetcher = fetcher or CertificateFetcher(timeout=context.timeout)
        self.evaluator = CertificateEvaluator(renew_alert_days=context.renew_alert_days)
        
        self.logger_service.log_configuration_info({
            'renew_alert_days': context.renew_alert_days,
            'timeout': context.timeout,
            'max_workers': context.max_workers,
            'mode': context.mode.value,
            'command': context.command,
        })
    
    def run(self, lines: Iterable[str]) -> Report:
        """
        检查所有域名并生成报告
        
        Args:
            lines: 原始域名行
            
        Returns:
            Report: 与输入顺序一致的检查报告
        """
        specs = list(iter_domain_specs(lines))
        self.logger_service.log_check_start(len(specs))
        
        # 按输入位置预留结果槽位，并发完成顺序不影响报告顺序
        slots: List[Optional[DomainVerdict]] = [None] * len(specs)
        
        if self.context.max_workers <= 1 or len(specs) <= 1:
            for index, spec in enumerate(specs):
                slots[index] = self.check(spec)
        else:
            with ThreadPoolExecutor(max_workers=self.context.max_workers) as executor:
                futures = {index: executor.submit(self.check, spec) for index, spec in enumerate(specs)}
                for index, future in futures.items():
                    slots[index] = future.result()
        
        report = Report()
        for verdict in slots:
            report.append(verdict)
            self.logger_service.log_verdict(verdict)
        
        self.logger_service.log_check_end()
        return report
    
    def check(self, spec: DomainSpec) -> DomainVerdict:
        """
        检查单个域名：获取证书并评估
        
        获取器本身不抛出连接错误；其他意外异常也按未取得证书处理，
        保证每个输入都有一条结论。
        """
        try:
            cert = self.fetcher.fetch(spec.hostname, spec.port, spec.starttls, spec.extra_options)
        except Exception as e:
            self.logger_service.log_error(spec.hostname, e)
            cert = CertificateInfo()
        
        return self.evaluator.evaluate(spec, cert, self.context.now())
    
    def render(self, report: Report) -> str:
        return render(report, self.context.mode)
    
    def dispatch(self, report: Report) -> Dict[str, bool]:
        """在命令分发模式下为需要续期的域名执行命令"""
        if self.context.mode != RunMode.COMMAND_DISPATCH or not self.context.command:
            return {}
        return CommandDispatcher(self.context.command).dispatch(report)
    
    @staticmethod
    def summarize(report: Report, execution_time: float) -> CheckResult:
        problem_domains = [verdict.domain for verdict in report.problem_verdicts()]
        return CheckResult(
            total_domains=len(report),
            healthy_domains=len(report) - len(problem_domains),
            problem_domains=problem_domains,
            renewal_domains=report.renewal_domains(),
            execution_time=execution_time
        )
