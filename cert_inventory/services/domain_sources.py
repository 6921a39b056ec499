"""
域名来源服务
"""
import os
import re
import shutil
import subprocess
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from ..interfaces import DomainSourceInterface
from .error_handler import ConfigurationError, MissingDependencyError


# 控制面板的域名枚举命令
CONTROL_PANEL_COMMANDS: Dict[str, Tuple[str, ...]] = {
    'plesk': ('plesk', 'bin', 'site', '--list'),
    'virtualmin': ('virtualmin', 'list-domains', '--name-only'),
}


class LiteralDomainSource(DomainSourceInterface):
    """命令行直接给出的域名"""
    
    def __init__(self, lines: Iterable[str]):
        self.lines = [line for line in lines if line]
    
    def get_lines(self) -> List[str]:
        return list(self.lines)


class EnvironmentDomainSource(DomainSourceInterface):
    """从环境变量读取域名列表（逗号或换行分隔）"""
    
    def __init__(self, env_var_name: str = "DOMAINS"):
        """
        初始化环境变量域名来源
        
        Args:
            env_var_name: 环境变量名称，默认为"DOMAINS"
        """
        self.env_var_name = env_var_name
        self.logger = logging.getLogger(__name__)
    
    def get_lines(self) -> List[str]:
        domains_str = os.getenv(self.env_var_name, "")
        
        if not domains_str.strip():
            self.logger.warning(f"环境变量 {self.env_var_name} 为空")
            return []
        
        lines = [line.strip() for line in re.split(r'[,\n]', domains_str)]
        return [line for line in lines if line]


class FileDomainSource(DomainSourceInterface):
    """域名列表文件，每行 hostname[:port-or-service] [extra tokens]"""
    
    def __init__(self, path: str):
        self.path = path
        self.logger = logging.getLogger(__name__)
    
    def get_lines(self) -> List[str]:
        """
        读取文件中的有效行
        
        Returns:
            List[str]: 去除注释和空行后的原始行
            
        Raises:
            ConfigurationError: 文件无法读取
        """
        try:
            # 非UTF-8字节按替换字符处理，不影响其他行
            with open(self.path, encoding='utf-8', errors='replace') as f:
                lines = [line.strip() for line in f]
        except OSError as e:
            raise ConfigurationError(f"无法读取域名文件 {self.path}: {e}") from e
        
        lines = [line for line in lines if line and not line.startswith('#')]
        self.logger.info(f"从文件 {self.path} 加载 {len(lines)} 个域名")
        return lines


class DirectoryDomainSource(DomainSourceInterface):
    """以子目录名作为域名，例如 /var/www/vhosts"""
    
    def __init__(self, path: str):
        self.path = path
        self.logger = logging.getLogger(__name__)
    
    def get_lines(self) -> List[str]:
        try:
            entries = sorted(os.listdir(self.path))
        except OSError as e:
            raise ConfigurationError(f"无法读取目录 {self.path}: {e}") from e
        
        lines = [
            entry for entry in entries
            if not entry.startswith('.') and os.path.isdir(os.path.join(self.path, entry))
        ]
        self.logger.info(f"从目录 {self.path} 加载 {len(lines)} 个域名")
        return lines


class ControlPanelDomainSource(DomainSourceInterface):
    """通过控制面板命令枚举托管的域名"""
    
    def __init__(self, kind: str, timeout: float = 60.0):
        """
        初始化控制面板域名来源
        
        Args:
            kind: 控制面板类型（plesk、virtualmin）
            timeout: 枚举命令超时时间（秒）
            
        Raises:
            ConfigurationError: 不支持的控制面板类型
        """
        self.kind = kind.lower()
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        
        if self.kind not in CONTROL_PANEL_COMMANDS:
            supported = ", ".join(sorted(CONTROL_PANEL_COMMANDS))
            raise ConfigurationError(f"不支持的服务器类型: {kind}（支持: {supported}）")
        self.command = CONTROL_PANEL_COMMANDS[self.kind]
    
    def check_dependency(self) -> str:
        """
        检查枚举命令是否存在
        
        Returns:
            str: 命令的完整路径
            
        Raises:
            MissingDependencyError: 命令不在PATH中
        """
        executable = shutil.which(self.command[0])
        if not executable:
            raise MissingDependencyError(f"找不到 {self.kind} 所需的命令: {self.command[0]}")
        return executable
    
    def get_lines(self) -> List[str]:
        executable = self.check_dependency()
        
        try:
            completed = subprocess.run(
                [executable, *self.command[1:]],
                capture_output=True, text=True, encoding='utf-8', errors='replace',
                timeout=self.timeout, check=True
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise ConfigurationError(f"{self.kind} 域名枚举失败: {e}") from e
        
        lines = [line.strip() for line in completed.stdout.splitlines() if line.strip()]
        self.logger.info(f"从 {self.kind} 加载 {len(lines)} 个域名")
        return lines


class DomainSourceCollector:
    """按来源顺序合并域名行"""
    
    def __init__(self, sources: Optional[Sequence[DomainSourceInterface]] = None):
        self.sources: List[DomainSourceInterface] = list(sources or [])
        self.logger = logging.getLogger(__name__)
    
    @classmethod
    def from_options(cls, domains: Sequence[str] = (), files: Sequence[str] = (),
                     directories: Sequence[str] = (), servers: Sequence[str] = ()) -> 'DomainSourceCollector':
        """
        根据命令行选项构建来源
        
        控制面板来源在构建时即检查类型和依赖，任何错误都发生在检查开始之前。
        """
        sources: List[DomainSourceInterface] = []
        if domains:
            sources.append(LiteralDomainSource(domains))
        sources.extend(FileDomainSource(path) for path in files)
        sources.extend(DirectoryDomainSource(path) for path in directories)
        
        for kind in servers:
            panel = ControlPanelDomainSource(kind)
            panel.check_dependency()
            sources.append(panel)
        
        return cls(sources)
    
    def collect(self) -> List[str]:
        lines: List[str] = []
        for source in self.sources:
            lines.extend(source.get_lines())
        
        self.logger.debug(f"共收集 {len(lines)} 行域名输入")
        return lines
