"""
续期命令分发测试
"""
import subprocess
from unittest.mock import patch, MagicMock

from cert_inventory.models import DomainVerdict, ProblemFlag, Report
from cert_inventory.services.command_dispatcher import CommandDispatcher


def make_verdict(domain, problems=()):
    return DomainVerdict(domain=domain, port="443", issued_to=domain, valid_until=None,
                         issued_by="-", problems=frozenset(problems))


class TestCommandDispatcher:
    """命令分发测试类"""
    
    def setup_method(self):
        """测试前准备"""
        self.report = Report([
            make_verdict("a.com", [ProblemFlag.NEAR_RENEWAL]),
            make_verdict("b.com"),
            make_verdict("c.com", [ProblemFlag.NEAR_RENEWAL, ProblemFlag.NAME_MISMATCH]),
            make_verdict("d.com", [ProblemFlag.NO_CERTIFICATE_FOUND]),
        ])
        self.dispatcher = CommandDispatcher("certbot renew --cert-name")
    
    def test_build_argv(self):
        """测试命令参数构建"""
        assert self.dispatcher.build_argv("a.com") == ["certbot", "renew", "--cert-name", "a.com"]
    
    @patch('cert_inventory.services.command_dispatcher.subprocess.run')
    def test_dispatch_only_renewal_domains_in_order(self, mock_run):
        """测试只为需要续期的域名按顺序执行"""
        mock_run.return_value = MagicMock(returncode=0)
        
        results = self.dispatcher.dispatch(self.report)
        
        assert results == {"a.com": True, "c.com": True}
        called = [call[0][0][-1] for call in mock_run.call_args_list]
        assert called == ["a.com", "c.com"]
    
    @patch('cert_inventory.services.command_dispatcher.subprocess.run')
    def test_failures_do_not_stop_dispatch(self, mock_run):
        """测试失败不重试也不中断"""
        mock_run.side_effect = [FileNotFoundError("certbot"), MagicMock(returncode=0)]
        
        results = self.dispatcher.dispatch(self.report)
        
        assert results == {"a.com": False, "c.com": True}
        assert mock_run.call_count == 2
    
    @patch('cert_inventory.services.command_dispatcher.subprocess.run')
    def test_non_zero_exit_and_timeout(self, mock_run):
        """测试非零返回值和超时"""
        mock_run.side_effect = [MagicMock(returncode=3), subprocess.TimeoutExpired("certbot", 5)]
        
        results = self.dispatcher.dispatch(self.report)
        
        assert results == {"a.com": False, "c.com": False}
    
    @patch('cert_inventory.services.command_dispatcher.subprocess.run')
    def test_nothing_to_dispatch(self, mock_run):
        """测试没有需要续期的域名"""
        assert self.dispatcher.dispatch(Report([make_verdict("ok.com")])) == {}
        mock_run.assert_not_called()
