"""
配置验证服务
"""
import os
import re
from typing import Any, Dict, Mapping, Optional
import logging

from ..models import RunContext, RunMode
from .error_handler import ConfigurationError


SNS_ARN_PATTERN = r'^arn:aws:sns:[a-z0-9-]+:\d{12}:[a-zA-Z0-9_-]+$'
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

DEFAULT_RENEW_ALERT = 30
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_WORKERS = 8


class ConfigValidator:
    """配置验证器"""
    
    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        初始化配置验证器
        
        Args:
            environ: 环境变量映射，默认为 os.environ
        """
        self.environ = environ if environ is not None else os.environ
        self.logger = logging.getLogger(__name__)
        
        # 数值型配置：(类型, 默认值, 最小值, 说明)
        self.numeric_env_vars = {
            'RENEW_ALERT': (int, DEFAULT_RENEW_ALERT, 0, '续期提醒天数'),
            'CHECK_TIMEOUT': (float, DEFAULT_TIMEOUT, 0.1, '连接超时时间（秒）'),
            'MAX_WORKERS': (int, DEFAULT_MAX_WORKERS, 1, '并发检查数'),
        }
    
    def validate_all_configurations(self) -> Dict[str, Any]:
        """
        验证所有配置
        
        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'values': {}
        }
        
        for var_name, (cast, default, minimum, description) in self.numeric_env_vars.items():
            raw = self.environ.get(var_name)
            if raw is None or not raw.strip():
                validation_result['values'][var_name] = default
                continue
            
            try:
                value = self.validate_number(var_name, raw, cast, minimum)
            except ConfigurationError as e:
                validation_result['is_valid'] = False
                validation_result['errors'].append(f"{description}: {e}")
            else:
                validation_result['values'][var_name] = value
        
        log_level = self.environ.get('LOG_LEVEL', 'INFO')
        if log_level.upper() not in LOG_LEVELS:
            validation_result['warnings'].append(f"未知的日志级别 {log_level}，使用INFO")
        
        topic_arn = self.environ.get('SNS_TOPIC_ARN')
        if topic_arn:
            sns_validation = self.validate_sns_topic_arn(topic_arn)
            if not sns_validation['is_valid']:
                validation_result['warnings'].extend(sns_validation['errors'])
        
        return validation_result
    
    def validate_number(self, name: str, raw: Any, cast=int, minimum: float = 0) -> Any:
        """
        验证数值配置
        
        Raises:
            ConfigurationError: 格式无效或小于最小值
        """
        try:
            value = cast(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(f"{name} 格式无效: {raw}") from None
        
        if value < minimum:
            raise ConfigurationError(f"{name} 不能小于 {minimum}: {raw}")
        return value
    
    def validate_sns_topic_arn(self, topic_arn: str) -> Dict[str, Any]:
        """
        验证SNS主题ARN格式
        
        Returns:
            Dict[str, Any]: SNS配置验证结果
        """
        result = {'is_valid': True, 'errors': [], 'topic_arn': topic_arn}
        
        if not re.match(SNS_ARN_PATTERN, topic_arn):
            result['is_valid'] = False
            result['errors'].append(f"SNS主题ARN格式无效: {topic_arn}")
        
        return result
    
    def build_run_context(self, renew_alert_days: Optional[int] = None, timeout: Optional[float] = None,
                          max_workers: Optional[int] = None, mode: RunMode = RunMode.FULL_REPORT,
                          command: Optional[str] = None) -> RunContext:
        """
        构建运行配置，显式参数优先于环境变量
        
        Raises:
            ConfigurationError: 配置无效
        """
        for warning in self.validate_all_configurations()['warnings']:
            self.logger.warning(warning)

        explicit = {
            'RENEW_ALERT': renew_alert_days,
            'CHECK_TIMEOUT': timeout,
            'MAX_WORKERS': max_workers,
        }
        
        values = {}
        for var_name, (cast, default, minimum, _) in self.numeric_env_vars.items():
            raw = explicit[var_name]
            if raw is None:
                raw = self.environ.get(var_name) or default
            values[var_name] = self.validate_number(var_name, raw, cast, minimum)
        
        if mode == RunMode.COMMAND_DISPATCH and not (command and command.strip()):
            raise ConfigurationError("命令分发模式需要指定要执行的命令")
        
        return RunContext(
            renew_alert_days=values['RENEW_ALERT'],
            timeout=values['CHECK_TIMEOUT'],
            max_workers=values['MAX_WORKERS'],
            mode=mode,
            command=command
        )
