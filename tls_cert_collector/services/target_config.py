"""
采集目标配置管理服务
"""
import os
from typing import List, Optional
import logging

from ..exceptions import AddressError
from .address import normalize_address


class TargetConfigManager:
    """采集目标配置管理器"""

    def __init__(self, env_var_name: str = "TLC3_DOMAINS"):
        """
        初始化目标配置管理器

        Args:
            env_var_name: 环境变量名称，默认为"TLC3_DOMAINS"
        """
        self.env_var_name = env_var_name
        self.logger = logging.getLogger(__name__)

    def get_targets(self, raw: Optional[str] = None) -> List[str]:
        """
        获取目标列表（逗号分隔）

        Args:
            raw: 目标字符串，为None时从环境变量读取

        Returns:
            List[str]: 目标列表，保持原有顺序
        """
        if raw is None:
            raw = os.getenv(self.env_var_name, "")

        targets = []
        for item in raw.split(','):
            target = self._clean_target(item)
            if target:
                targets.append(target)

        self.logger.debug(f"读取到 {len(targets)} 个目标")
        return targets

    def validate_target(self, target: str) -> bool:
        """
        验证目标格式

        Args:
            target: host 或 host:port

        Returns:
            bool: 是否有效
        """
        if not target or not isinstance(target, str):
            return False
        try:
            normalize_address(target)
        except AddressError:
            return False
        return True

    def _clean_target(self, target: str) -> str:
        """去除空白和包裹的引号"""
        return target.strip().strip('\'"')
