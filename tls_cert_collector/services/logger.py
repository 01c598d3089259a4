"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import CertificateRecord


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "tls_cert_collector", log_level: Optional[str] = None,
                 warning_days: int = 30):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
            warning_days: 剩余天数不超过该值时按即将过期记录
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')
        self.warning_days = warning_days

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 执行统计
        self.execution_stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'start_time': None,
            'end_time': None,
            'total_targets': 0,
            'collected': 0,
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def set_level(self, log_level: str):
        """
        调整日志级别（同时作用于处理器）

        Args:
            log_level: 日志级别名称
        """
        self.log_level = log_level
        level = getattr(logging, log_level.upper(), logging.INFO)
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    def log_collect_start(self, target_count: int):
        """
        记录采集开始

        Args:
            target_count: 目标数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_targets'] = target_count

        self.logger.info(f"开始采集TLS证书信息，共 {target_count} 个目标")

    def log_certificate_record(self, record: CertificateRecord):
        """
        记录证书信息

        Args:
            record: 证书信息
        """
        self.execution_stats['collected'] += 1

        message = (
            f"目标: {record.domain_name}:{record.access_port}, "
            f"CN: {record.common_name}, "
            f"过期时间: {record.not_after.isoformat()}, "
            f"颁发者: {record.issuer}"
        )

        if record.is_expired:
            self.logger.warning(f"证书已过期 - {message}, 已过期: {abs(record.days_left)} 天")
        elif record.days_left <= self.warning_days:
            self.logger.warning(f"证书即将过期 - {message}, 剩余天数: {record.days_left} 天")
        else:
            self.logger.info(f"证书正常 - {message}, 剩余天数: {record.days_left} 天")

    def log_error(self, target: str, error: Exception):
        """
        记录错误信息

        Args:
            target: 目标（或批次描述）
            error: 异常对象
        """
        error_info = {
            'target': target,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        self.execution_stats['errors'].append(error_info)

        self.logger.error(f"{target} 采集时发生错误: {type(error).__name__}: {str(error)}")

        # 记录详细的堆栈跟踪（调试级别）
        self.logger.debug(f"{target} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_collect_end(self):
        """记录采集结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        self.logger.info(
            f"采集完成，耗时 {self._duration():.2f} 秒，"
            f"成功 {self.execution_stats['collected']}/{self.execution_stats['total_targets']} 个目标"
        )

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        self.logger.info("采集配置信息:")
        for key, value in config.items():
            self.logger.info(f"  {key}: {value}")

    def _duration(self) -> float:
        start = self.execution_stats['start_time']
        end = self.execution_stats['end_time']
        if start and end:
            return (end - start).total_seconds()
        return 0

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': self._duration(),
            'total_targets': stats['total_targets'],
            'collected': stats['collected'],
            'error_count': len(stats['errors']),
            'errors': stats['errors']
        }

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = self._empty_stats()
