"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class NormalizedAddress:
    """规范化后的目标地址"""
    host: str
    port: str

    @property
    def address(self) -> str:
        """拼接回 host:port 形式（IPv6 地址加方括号）"""
        if ':' in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class CertificateRecord:
    """TLS证书信息"""
    domain_name: str
    access_port: str
    ip_addresses: List[str]
    issuer: str
    common_name: str
    sans: List[str]
    not_before: datetime
    not_after: datetime
    current_time: datetime
    days_left: int

    @property
    def is_expired(self) -> bool:
        """判断是否已过期"""
        return self.days_left < 0

    def to_dict(self) -> Dict[str, Any]:
        """转换为可直接序列化为JSON的字典"""
        return {
            'DomainName': self.domain_name,
            'AccessPort': self.access_port,
            'IPAddresses': list(self.ip_addresses),
            'Issuer': self.issuer,
            'CommonName': self.common_name,
            'SANs': list(self.sans),
            'NotBefore': self.not_before.isoformat(),
            'NotAfter': self.not_after.isoformat(),
            'CurrentTime': self.current_time.isoformat(),
            'DaysLeft': self.days_left,
        }


@dataclass
class CollectorConfig:
    """采集配置"""
    targets: List[str]
    timeout: float = 5.0
    insecure: bool = False
    timezone: str = "Local"
    log_level: str = "INFO"


@dataclass
class CollectionResult:
    """采集结果统计"""
    total_targets: int
    records: List[CertificateRecord] = field(default_factory=list)
    expiring_records: List[CertificateRecord] = field(default_factory=list)
    expired_records: List[CertificateRecord] = field(default_factory=list)
    error: Optional[str] = None
    execution_time: float = 0.0

    @property
    def succeeded(self) -> bool:
        """整批采集是否成功"""
        return self.error is None
