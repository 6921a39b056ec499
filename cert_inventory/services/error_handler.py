"""
错误处理服务
"""
import socket
import ssl
from typing import Any, Dict, List
from datetime import datetime, timezone
import logging


class CertInventoryError(Exception):
    """证书巡检错误基类"""


class ConfigurationError(CertInventoryError):
    """配置错误，在开始检查前终止运行"""


class MissingDependencyError(CertInventoryError):
    """缺少必需的外部程序"""


class StartTLSError(CertInventoryError):
    """明文协议升级失败"""


class NoCertificateError(CertInventoryError):
    """服务器未返回证书"""


class ConnectionErrorHandler:
    """连接错误处理器，将网络异常整理为可记录的错误信息"""
    
    def __init__(self):
        """初始化连接错误处理器"""
        self.logger = logging.getLogger(__name__)
        self.errors: List[Dict[str, Any]] = []
    
    def handle_connection_error(self, domain: str, port: Any, error: Exception) -> Dict[str, Any]:
        """
        处理连接错误
        
        Args:
            domain: 域名
            port: 端口
            error: 异常对象
            
        Returns:
            Dict[str, Any]: 错误处理结果
        """
        error_info = {
            'domain': domain,
            'port': port,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error)
        }
        self.errors.append(error_info)
        
        self.logger.warning(
            f"域名 {domain}:{port} 未能取得证书 - {error_info['error_type']}: "
            f"{error_info['error_message']}（{error_info['suggested_action']}）"
        )
        
        return error_info
    
    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案
        
        Args:
            error: 异常对象
            
        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()
        
        if isinstance(error, socket.timeout):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, socket.gaierror):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, StartTLSError):
            return "服务器不支持或拒绝STARTTLS，检查协议类型是否正确"
        elif isinstance(error, NoCertificateError):
            return "服务器未提供证书，检查服务的TLS配置"
        elif isinstance(error, ssl.SSLError):
            if 'handshake failure' in error_message:
                return "SSL握手失败，检查SSL/TLS版本兼容性"
            return "SSL连接问题，检查服务器SSL配置"
        elif isinstance(error, ValueError):
            return "证书内容无法解析"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"
    
    def get_error_statistics(self) -> Dict[str, Any]:
        """
        获取错误统计信息
        
        Returns:
            Dict[str, Any]: 错误统计
        """
        error_types: Dict[str, int] = {}
        for error_info in self.errors:
            error_type = error_info.get('error_type', 'Unknown')
            error_types[error_type] = error_types.get(error_type, 0) + 1
        
        most_common_error = max(error_types.items(), key=lambda x: x[1]) if error_types else None
        
        return {
            'total_errors': len(self.errors),
            'error_types': error_types,
            'most_common_error': most_common_error[0] if most_common_error else None,
            'most_common_error_count': most_common_error[1] if most_common_error else 0
        }
