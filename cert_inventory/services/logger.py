"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import DomainVerdict


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""
    
    def __init__(self, logger_name: str = "cert_inventory", log_level: Optional[str] = None):
        """
        初始化日志服务
        
        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')
        
        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()
        
        self.reset_stats()
    
    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)
        
        # 避免重复添加处理器；输出到stderr，stdout只留给报告
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)
            
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)
            
            self.logger.addHandler(handler)
        else:
            for handler in self.logger.handlers:
                handler.setLevel(level)
        
        self.logger.propagate = False
    
    def log_check_start(self, domain_count: int):
        """
        记录检查开始
        
        Args:
            domain_count: 要检查的域名数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_domains'] = domain_count
        
        self.logger.info(f"开始证书巡检，共 {domain_count} 个域名")
    
    def log_verdict(self, verdict: DomainVerdict):
        """
        记录检查结论
        
        Args:
            verdict: 检查结论
        """
        if verdict.has_problems:
            self.execution_stats['problem_domains'] += 1
            self.logger.warning(
                f"证书存在问题 - 域名: {verdict.domain}:{verdict.port}, "
                f"问题: {verdict.problems_display}, "
                f"颁发给: {verdict.issued_to}, "
                f"过期时间: {verdict.valid_until_display}"
            )
        else:
            self.execution_stats['healthy_domains'] += 1
            self.logger.info(
                f"证书正常 - 域名: {verdict.domain}:{verdict.port}, "
                f"过期时间: {verdict.valid_until_display}, "
                f"颁发者: {verdict.issued_by}"
            )
        
        if verdict.needs_renewal:
            self.execution_stats['renewal_domains'] += 1
    
    def log_error(self, domain: str, error: Exception):
        """
        记录错误信息
        
        Args:
            domain: 域名
            error: 异常对象
        """
        error_info = {
            'domain': domain,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
        
        self.execution_stats['errors'].append(error_info)
        
        self.logger.error(f"域名 {domain} 检查时发生错误: {type(error).__name__}: {str(error)}")
        self.logger.debug(f"域名 {domain} 错误堆栈跟踪:\n{traceback.format_exc()}")
    
    def log_check_end(self):
        """记录检查结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)
        
        self.logger.info(
            f"证书巡检完成: 总计 {self.execution_stats['total_domains']} 个域名, "
            f"正常 {self.execution_stats['healthy_domains']} 个, "
            f"有问题 {self.execution_stats['problem_domains']} 个, "
            f"需续期 {self.execution_stats['renewal_domains']} 个"
        )
    
    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息
        
        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)
        
        self.logger.debug("运行配置:")
        for key, value in safe_config.items():
            self.logger.debug(f"  {key}: {value}")
    
    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        隐藏配置中的敏感信息
        
        Args:
            config: 原始配置
            
        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()
            is_sensitive = key_lower.endswith(('_arn', '_secret', '_token', '_password', '_key'))
            
            if is_sensitive and isinstance(value, str) and value:
                parts = value.split(':')
                if value.startswith('arn:') and len(parts) >= 6:
                    safe_config[key] = f"{':'.join(parts[:3])}:***:{parts[-2]}:{parts[-1]}"
                else:
                    safe_config[key] = value[:3] + "***" if len(value) > 3 else "***"
            else:
                safe_config[key] = value
        
        return safe_config
    
    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要
        
        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0.0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()
        
        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_domains': stats['total_domains'],
            'healthy_domains': stats['healthy_domains'],
            'problem_domains': stats['problem_domains'],
            'renewal_domains': stats['renewal_domains'],
            'error_count': len(stats['errors']),
            'errors': stats['errors']
        }
    
    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = {
            'start_time': None,
            'end_time': None,
            'total_domains': 0,
            'healthy_domains': 0,
            'problem_domains': 0,
            'renewal_domains': 0,
            'errors': []
        }
