"""
AWS Lambda函数入口点
"""
import os
import time
from typing import Any, Dict, List
from datetime import datetime, timezone

from .inventory import CertificateInventory
from .services.certificate_fetcher import CertificateFetcher
from .services.config_validator import ConfigValidator
from .services.domain_sources import EnvironmentDomainSource
from .services.error_handler import CertInventoryError
from .services.logger import LoggerService
from .services.sns_notification import SNSNotificationService


def _event_lines(event: Dict[str, Any]) -> List[str]:
    """事件中的 domains 优先于 DOMAINS 环境变量"""
    domains = (event or {}).get('domains')
    if isinstance(domains, str):
        domains = [domains]
    if domains:
        return [str(line).strip() for line in domains if str(line).strip()]
    return EnvironmentDomainSource().get_lines()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点
    
    Args:
        event: EventBridge触发事件，可包含 domains 列表
        context: Lambda运行时上下文
        
    Returns:
        dict: 执行结果和统计信息
    """
    logger_service = LoggerService()
    
    try:
        run_context = ConfigValidator().build_run_context()
        lines = _event_lines(event)
        
        if not lines:
            return {
                'statusCode': 400,
                'body': {
                    'message': 'No domains configured',
                    'timestamp': datetime.now(timezone.utc).isoformat()
                }
            }
        
        fetcher = CertificateFetcher(timeout=run_context.timeout)
        inventory = CertificateInventory(run_context, fetcher=fetcher, logger_service=logger_service)
        
        start_time = time.monotonic()
        report = inventory.run(lines)
        result = inventory.summarize(report, time.monotonic() - start_time)
        
        notification_sent = None
        if os.getenv('SNS_TOPIC_ARN'):
            notifier = SNSNotificationService(renew_alert_days=run_context.renew_alert_days)
            notification_sent = notifier.send_renewal_notification(report)
        
        return {
            'statusCode': 200,
            'body': {
                'message': 'Certificate inventory executed successfully',
                'summary': {
                    'total_domains': result.total_domains,
                    'healthy_domains': result.healthy_domains,
                    'problem_domains': len(result.problem_domains),
                    'renewal_domains': len(result.renewal_domains),
                    'execution_time_seconds': result.execution_time,
                },
                'renewal_domains': result.renewal_domains,
                'problem_domains': result.problem_domains,
                'notification_sent': notification_sent,
                'execution': logger_service.get_execution_summary(),
                'connection_errors': fetcher.error_handler.get_error_statistics(),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }
        
    except CertInventoryError as e:
        logger_service.logger.error(f"Lambda函数配置错误: {str(e)}")
        return {
            'statusCode': 500,
            'body': {
                'message': 'Certificate inventory configuration error',
                'error': str(e),
                'timestamp': datetime.now(timezone.utc).isoformat()
            }
        }
