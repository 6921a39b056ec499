"""
报告输出格式化
"""
from typing import List, Sequence

from ..models import DomainVerdict, Report, RunMode


TABLE_HEADER = ("Host", "Port", "Issued To", "Valid Until", "Issued By", "Problems")
SEPARATOR = " | "


def verdict_row(verdict: DomainVerdict) -> List[str]:
    return [
        verdict.domain,
        verdict.port,
        verdict.issued_to,
        verdict.valid_until_display,
        verdict.issued_by,
        verdict.problems_display or "-",
    ]


def format_table(verdicts: Sequence[DomainVerdict]) -> str:
    """
    格式化为列对齐的表格
    
    Args:
        verdicts: 检查结论
        
    Returns:
        str: 以 | 分隔的表格，含表头
    """
    rows = [list(TABLE_HEADER)] + [verdict_row(verdict) for verdict in verdicts]
    widths = [max(len(row[i]) for row in rows) for i in range(len(TABLE_HEADER))]
    
    lines = []
    for row in rows:
        cells = [cell.ljust(width) for cell, width in zip(row, widths)]
        lines.append(SEPARATOR.join(cells).rstrip())
    return "\n".join(lines)


def format_renewal_list(report: Report) -> str:
    """需要续期的域名，每行一个"""
    return "\n".join(report.renewal_domains())


def format_problems(report: Report) -> str:
    """只输出有问题的行，没有问题时输出为空"""
    problems = report.problem_verdicts()
    if not problems:
        return ""
    return format_table(problems)


def render(report: Report, mode: RunMode) -> str:
    """
    按运行模式渲染报告
    
    Args:
        report: 检查报告
        mode: 运行模式；命令分发模式没有文本输出
        
    Returns:
        str: 输出文本
    """
    if mode == RunMode.RENEWAL_LIST:
        return format_renewal_list(report)
    if mode == RunMode.PROBLEMS_LIST:
        return format_problems(report)
    if mode == RunMode.COMMAND_DISPATCH:
        return ""
    return format_table(report.verdicts)
