"""
域名行解析测试
"""
from cert_inventory.models import StartTLSKind
from cert_inventory.services.domain_spec import is_domain_line, iter_domain_specs, parse_domain_line


class TestDomainSpecParser:
    """域名行解析测试类"""
    
    def test_plain_hostname_defaults_to_443(self):
        """测试只有主机名的行"""
        spec = parse_domain_line("example.com")
        
        assert spec.hostname == "example.com"
        assert spec.port == 443
        assert spec.protocol_hint == "443"
        assert spec.starttls == StartTLSKind.NONE
        assert spec.extra_options == ()
    
    def test_service_name(self):
        """测试带服务名的行"""
        spec = parse_domain_line("mail.example.com:pop3")
        
        assert spec.hostname == "mail.example.com"
        assert spec.port == 110
        assert spec.protocol_hint == "pop3"
        assert spec.starttls == StartTLSKind.POP3
    
    def test_numeric_port(self):
        """测试带端口号的行"""
        spec = parse_domain_line("  imap.example.com:993  ")
        
        assert spec.hostname == "imap.example.com"
        assert spec.port == 993
        assert spec.starttls == StartTLSKind.NONE
    
    def test_custom_port_with_extra_tokens(self):
        """测试自定义端口和额外参数"""
        spec = parse_domain_line("svc.example.com:custom-9999 -flag1 -tls1_2")
        
        assert spec.port == 9999
        assert spec.protocol_hint == "custom-9999"
        assert spec.extra_options == ("-flag1", "-tls1_2")
    
    def test_known_service_ignores_extra_tokens(self):
        """测试已知服务忽略额外参数"""
        spec = parse_domain_line("example.com:smtp -foo")
        
        assert spec.port == 25
        assert spec.extra_options == ()
    
    def test_garbage_is_tolerated(self):
        """测试无效输入不会抛出异常"""
        spec = parse_domain_line("not a host:::")
        
        assert spec.hostname == "not"
        assert spec.port == 443
        
        spec = parse_domain_line("host.example:bogus")
        assert spec.port is None
        assert spec.port_display == "bogus"
    
    def test_empty_port_part_defaults(self):
        """测试冒号后为空"""
        assert parse_domain_line("example.com:").port == 443
    
    def test_is_domain_line(self):
        """测试注释和空行判断"""
        assert is_domain_line("example.com")
        assert not is_domain_line("")
        assert not is_domain_line("   ")
        assert not is_domain_line("# comment")
        assert not is_domain_line("   # indented comment")
    
    def test_iter_domain_specs_keeps_order_and_duplicates(self):
        """测试按顺序解析且不去重"""
        lines = ["b.com", "# skip", "", "a.com:993", "b.com"]
        
        specs = list(iter_domain_specs(lines))
        
        assert [spec.hostname for spec in specs] == ["b.com", "a.com", "b.com"]
        assert specs[1].port == 993
