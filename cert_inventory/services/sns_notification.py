"""
SNS通知服务
"""
import os
import time
from typing import List, Optional
import logging
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import NotificationServiceInterface
from ..models import DomainVerdict, Report


class SNSNotificationService(NotificationServiceInterface):
    """SNS通知服务：发布需要续期的域名列表"""
    
    def __init__(self, topic_arn: Optional[str] = None, region_name: Optional[str] = None,
                 renew_alert_days: int = 30):
        """
        初始化SNS通知服务
        
        Args:
            topic_arn: SNS主题ARN，如果为None则从环境变量读取
            region_name: AWS区域名称，如果为None则从ARN中解析
            renew_alert_days: 续期提醒天数，用于通知文本
        """
        self.topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')
        self.renew_alert_days = renew_alert_days
        
        if region_name:
            self.region_name = region_name
        elif self.topic_arn and self.topic_arn.startswith('arn:aws:sns:'):
            # 从SNS ARN中提取区域
            self.region_name = self.topic_arn.split(':')[3]
        else:
            self.region_name = os.getenv('AWS_REGION', 'us-east-1')
        
        self.logger = logging.getLogger(__name__)
        self.sns_client = boto3.client('sns', region_name=self.region_name)
    
    def send_renewal_notification(self, report: Report) -> bool:
        """
        发送证书续期通知
        
        Args:
            report: 检查报告
            
        Returns:
            bool: 发送是否成功；没有需要续期的域名时直接返回True
        """
        verdicts = report.renewal_verdicts()
        if not verdicts:
            self.logger.info("没有需要续期的证书，跳过通知发送")
            return True
        
        if not self.topic_arn:
            self.logger.error("SNS主题ARN未配置")
            return False
        
        subject = self._format_subject(verdicts)
        message = self.format_notification_content(verdicts)
        return self._publish_with_retry(subject, message)
    
    def _publish_with_retry(self, subject: str, message: str, max_retries: int = 3) -> bool:
        """
        带重试机制的SNS消息发布
        
        Args:
            subject: 消息主题
            message: 消息内容
            max_retries: 最大重试次数
            
        Returns:
            bool: 发送是否成功
        """
        for attempt in range(max_retries + 1):
            try:
                response = self.sns_client.publish(
                    TopicArn=self.topic_arn,
                    Subject=subject,
                    Message=message
                )
                self.logger.info(f"SNS通知发送成功，MessageId: {response.get('MessageId')}")
                return True
                
            except ClientError as e:
                error_code = e.response['Error']['Code']
                error_message = e.response['Error']['Message']
                
                if self._is_retryable_error(error_code) and attempt < max_retries:
                    wait_time = 2 ** attempt  # 指数退避
                    self.logger.warning(
                        f"SNS发送失败 (尝试 {attempt + 1}/{max_retries + 1}) - {error_code}: {error_message}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue
                
                self.logger.error(f"SNS发送失败 - {error_code}: {error_message}")
                return False
                
            except BotoCoreError as e:
                self.logger.error(f"发送SNS通知时发生错误: {str(e)}")
                return False
        
        return False
    
    def _is_retryable_error(self, error_code: str) -> bool:
        retryable_errors = {
            'Throttling',
            'ServiceUnavailable',
            'InternalError',
            'RequestTimeout'
        }
        return error_code in retryable_errors
    
    def format_notification_content(self, verdicts: List[DomainVerdict]) -> str:
        """
        格式化通知内容
        
        Args:
            verdicts: 需要续期的检查结论
            
        Returns:
            str: 格式化的通知内容
        """
        if not verdicts:
            return "所有证书均不需要续期。"
        
        lines = [
            "证书续期提醒",
            "=" * 30,
            f"检查时间: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC",
            f"提醒阈值: {self.renew_alert_days} 天",
            ""
        ]
        
        for verdict in verdicts:
            lines.append(f"• {verdict.domain}:{verdict.port}")
            lines.append(f"  过期时间: {verdict.valid_until_display}")
            lines.append(f"  颁发给: {verdict.issued_to}")
            lines.append(f"  颁发者: {verdict.issued_by}")
            lines.append("")
        
        lines.append("此消息由证书巡检工具自动发送。")
        return "\n".join(lines)
    
    def _format_subject(self, verdicts: List[DomainVerdict]) -> str:
        return f"⚠️ 证书续期提醒: {len(verdicts)}个证书即将过期"
