"""
AWS Lambda函数入口点
"""
from typing import Dict, Any, Optional
from datetime import datetime, timezone

from .exceptions import TLSCollectorError
from .services.collector import TLSCertificateCollector
from .services.config_validator import ConfigValidator
from .services.connection_pool import ConnectionPool
from .services.expiry_calculator import ExpiryCalculator
from .services.ip_cache import IPCache
from .services.logger import LoggerService
from .models import CollectionResult

# 进程级缓存，Lambda容器复用期间跨调用共享
IP_CACHE = IPCache()
CONNECTION_POOL = ConnectionPool()


class TLSCertificateMonitor:
    """TLS证书采集监控器主类"""

    def __init__(self, ip_cache: IPCache = IP_CACHE, connection_pool: ConnectionPool = CONNECTION_POOL):
        """
        初始化监控器

        Args:
            ip_cache: IP地址缓存
            connection_pool: TLS连接池
        """
        self.logger_service = LoggerService()
        self.config_validator = ConfigValidator()
        self.collector = TLSCertificateCollector(ip_cache=ip_cache, connection_pool=connection_pool)
        self.expiry_calculator = ExpiryCalculator()

    def execute(self, event: Optional[Dict[str, Any]] = None) -> CollectionResult:
        """
        执行证书采集

        Args:
            event: 调用事件，可包含 domains、timeout、insecure、timezone

        Returns:
            CollectionResult: 采集结果
        """
        start_time = datetime.now(timezone.utc)

        try:
            config = self.config_validator.build_config(event)
        except TLSCollectorError as e:
            self.logger_service.log_error("配置", e)
            return CollectionResult(total_targets=0, error=str(e), execution_time=self._elapsed(start_time))

        self.logger_service.set_level(config.log_level)
        self.logger_service.log_configuration_info({
            'targets': len(config.targets),
            'timeout': config.timeout,
            'insecure': config.insecure,
            'timezone': config.timezone,
        })
        self.logger_service.log_collect_start(len(config.targets))

        try:
            records = self.collector.collect(config.targets, config.timeout, config.insecure, config.timezone)
        except TLSCollectorError as e:
            self.logger_service.log_error("证书采集", e)
            self.logger_service.log_collect_end()
            return CollectionResult(
                total_targets=len(config.targets),
                error=str(e),
                execution_time=self._elapsed(start_time)
            )

        for record in records:
            self.logger_service.log_certificate_record(record)
        self.logger_service.log_collect_end()

        categorized = self.expiry_calculator.categorize_records(records)
        self.logger_service.logger.info(self.expiry_calculator.get_expiry_summary(records))

        return CollectionResult(
            total_targets=len(config.targets),
            records=records,
            expiring_records=categorized['expiring_soon'],
            expired_records=categorized['expired'],
            execution_time=self._elapsed(start_time)
        )

    @staticmethod
    def _elapsed(start_time: datetime) -> float:
        return (datetime.now(timezone.utc) - start_time).total_seconds()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: 调用事件
        context: Lambda运行时上下文

    Returns:
        dict: 证书信息和统计信息
    """
    monitor = TLSCertificateMonitor()
    result = monitor.execute(event)
    timestamp = datetime.now(timezone.utc).isoformat()

    if not result.succeeded:
        return {
            'statusCode': 500,
            'body': {
                'message': 'TLS certificate collection failed',
                'error': result.error,
                'timestamp': timestamp
            }
        }

    return {
        'statusCode': 200,
        'body': {
            'message': 'TLS certificate collection completed',
            'certificates': [record.to_dict() for record in result.records],
            'summary': {
                'total_targets': result.total_targets,
                'expired_certificates': len(result.expired_records),
                'expiring_certificates': len(result.expiring_records),
                'execution_time_seconds': result.execution_time
            },
            'timestamp': timestamp
        }
    }
