"""
采集配置验证服务
"""
import os
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
import logging

from ..exceptions import ConfigurationError, TLSCollectorError
from ..models import CollectorConfig
from .address import normalize_address
from .expiry_calculator import LOCAL_TIMEZONE, load_timezone
from .target_config import TargetConfigManager

DEFAULT_TIMEOUT = 5.0
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ('DEBUG', 'INFO', 'WARN', 'WARNING', 'ERROR')

_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'μs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}
_DURATION_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)')

_TRUE_VALUES = {'1', 't', 'T', 'TRUE', 'true', 'True'}
_FALSE_VALUES = {'0', 'f', 'F', 'FALSE', 'false', 'False'}


def parse_duration(value: Union[str, int, float]) -> float:
    """
    解析超时时间

    支持纯数字（秒）和 "5s"、"500ms"、"1m30s" 形式，结果必须大于0。

    Args:
        value: 超时时间

    Returns:
        float: 秒数
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"超时时间格式无效: {value!r}")

    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        try:
            seconds = float(text)
        except ValueError:
            seconds = 0.0
            position = 0
            for match in _DURATION_PART.finditer(text):
                if match.start() != position:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                position = match.end()
            if not text or position != len(text):
                raise ConfigurationError(f"超时时间格式无效: {value!r}")

    if seconds <= 0:
        raise ConfigurationError(f"超时时间必须大于0: {value!r}")
    return seconds


def parse_bool(value: Union[str, bool]) -> bool:
    """
    解析布尔值

    Args:
        value: 1/t/true/TRUE/True 或 0/f/false/FALSE/False

    Returns:
        bool: 解析结果
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"布尔值格式无效: {value!r}")


class ConfigValidator:
    """采集配置验证器"""

    def __init__(self, target_manager: Optional[TargetConfigManager] = None):
        """
        初始化配置验证器

        Args:
            target_manager: 目标配置管理器
        """
        self.logger = logging.getLogger(__name__)
        self.target_manager = target_manager or TargetConfigManager()

        # 可用的环境变量
        self.env_vars = {
            'TLC3_DOMAINS': '目标列表（逗号分隔）',
            'TLC3_TIMEOUT': '连接超时时间',
            'TLC3_INSECURE': '是否跳过证书校验',
            'TLC3_TIMEZONE': '时间字段使用的时区',
            'LOG_LEVEL': '日志级别'
        }

    def build_config(self, event: Optional[Mapping[str, Any]] = None) -> CollectorConfig:
        """
        构建采集配置

        事件中的字段优先，其次读取环境变量。

        Args:
            event: 调用事件

        Returns:
            CollectorConfig: 采集配置
        """
        event = event or {}

        targets = self._get_targets(event)
        if not targets:
            raise ConfigurationError("没有找到要采集的目标")

        timeout = parse_duration(self._get_value(event, 'timeout', 'TLC3_TIMEOUT', DEFAULT_TIMEOUT))
        insecure = parse_bool(self._get_value(event, 'insecure', 'TLC3_INSECURE', False))
        timezone_name = str(self._get_value(event, 'timezone', 'TLC3_TIMEZONE', LOCAL_TIMEZONE))
        load_timezone(timezone_name)

        log_level = str(self._get_value(event, 'log_level', 'LOG_LEVEL', DEFAULT_LOG_LEVEL)).upper()
        if log_level not in LOG_LEVELS:
            raise ConfigurationError(f"日志级别无效: {log_level}，可选: {'|'.join(LOG_LEVELS)}")
        if log_level == 'WARN':
            log_level = 'WARNING'

        return CollectorConfig(
            targets=targets,
            timeout=timeout,
            insecure=insecure,
            timezone=timezone_name,
            log_level=log_level
        )

    def validate_all_configurations(self, event: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        验证所有配置

        Args:
            event: 调用事件

        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'configurations': {}
        }

        try:
            config = self.build_config(event)
        except TLSCollectorError as e:
            validation_result['is_valid'] = False
            validation_result['errors'].append(str(e))
            return validation_result

        validation_result['configurations'] = {
            'targets': config.targets,
            'timeout': config.timeout,
            'insecure': config.insecure,
            'timezone': config.timezone,
            'log_level': config.log_level
        }

        for target in config.targets:
            try:
                normalize_address(target)
            except TLSCollectorError as e:
                validation_result['is_valid'] = False
                validation_result['errors'].append(str(e))

        if config.insecure:
            validation_result['warnings'].append("insecure已开启，将跳过证书链和主机名校验")

        for var_name, description in self.env_vars.items():
            if not os.getenv(var_name):
                self.logger.debug(f"未设置环境变量: {var_name} ({description})")

        return validation_result

    def _get_targets(self, event: Mapping[str, Any]) -> List[str]:
        domains = event.get('domains')
        if domains is None:
            return self.target_manager.get_targets()
        if isinstance(domains, str):
            return self.target_manager.get_targets(domains)
        if isinstance(domains, Iterable):
            return self.target_manager.get_targets(','.join(str(domain) for domain in domains))
        raise ConfigurationError(f"目标列表格式无效: {domains!r}")

    def _get_value(self, event: Mapping[str, Any], key: str, env_var: str, default: Any) -> Any:
        if event.get(key) is not None:
            return event[key]
        value = os.getenv(env_var)
        if value is None or not value.strip():
            return default
        return value
