"""
续期命令分发
"""
import shlex
import subprocess
from typing import Dict, List, Optional
import logging

from ..models import Report


class CommandDispatcher:
    """对每个需要续期的域名执行一次外部命令"""
    
    def __init__(self, command: str, timeout: Optional[float] = None):
        """
        初始化命令分发器
        
        Args:
            command: 外部命令，域名作为最后一个参数追加
            timeout: 单次命令超时时间（秒），None表示不限制
        """
        self.command = command
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
    
    def build_argv(self, domain: str) -> List[str]:
        return [*shlex.split(self.command), domain]
    
    def dispatch(self, report: Report) -> Dict[str, bool]:
        """
        依次执行续期命令，失败不重试也不中断
        
        Args:
            report: 检查报告
            
        Returns:
            Dict[str, bool]: 域名到执行是否成功的映射
        """
        results: Dict[str, bool] = {}
        
        for verdict in report.renewal_verdicts():
            results[verdict.domain] = self.run_for(verdict.domain)
        
        succeeded = sum(1 for ok in results.values() if ok)
        self.logger.info(f"续期命令执行完成: 成功 {succeeded} 个, 失败 {len(results) - succeeded} 个")
        return results
    
    def run_for(self, domain: str) -> bool:
        argv = self.build_argv(domain)
        self.logger.info(f"为 {domain} 执行续期命令: {' '.join(argv)}")
        
        try:
            completed = subprocess.run(argv, timeout=self.timeout, check=False)
        except (OSError, subprocess.TimeoutExpired) as e:
            self.logger.error(f"{domain} 续期命令执行失败: {type(e).__name__}: {e}")
            return False
        
        if completed.returncode != 0:
            self.logger.error(f"{domain} 续期命令返回非零状态: {completed.returncode}")
            return False
        return True
