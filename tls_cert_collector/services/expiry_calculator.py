"""
证书过期计算服务
"""
import logging
import os
from datetime import datetime, timezone, timedelta, tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..exceptions import InvalidTimezoneError
from ..models import CertificateRecord

LOCAL_TIMEZONE = "Local"
LOCALTIME_PATH = "/etc/localtime"

logger = logging.getLogger(__name__)


def local_timezone() -> tzinfo:
    """
    获取带夏令时规则的本机时区

    依次使用环境变量 TZ（时区名或文件路径）和 /etc/localtime，
    都不可用时退化为当前的固定偏移。

    Returns:
        tzinfo: 本机时区
    """
    name = os.environ.get("TZ", "").lstrip(":")
    path = LOCALTIME_PATH
    if os.path.isabs(name):
        path = name
    elif name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            logger.debug(f"TZ={name} 不是可加载的时区名，改用 {path}: {e}")

    try:
        with open(path, "rb") as f:
            return ZoneInfo.from_file(f, key="localtime")
    except (OSError, ValueError) as e:
        logger.debug(f"无法读取本机时区文件 {path}，使用当前固定偏移: {e}")
        return datetime.now().astimezone().tzinfo


def load_timezone(name: str) -> tzinfo:
    """
    加载时区

    "Local" 表示本机时区，其他值按IANA时区标识加载。

    Args:
        name: 时区标识

    Returns:
        tzinfo: 时区对象
    """
    if not name or not name.strip():
        raise InvalidTimezoneError(name or "")
    if name == LOCAL_TIMEZONE:
        return local_timezone()
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise InvalidTimezoneError(name) from e


def days_left(not_after: datetime, now: datetime) -> int:
    """
    计算剩余天数

    向下取整：当天内到期为0，已过期为负数。

    Args:
        not_after: 证书过期时间
        now: 当前时间

    Returns:
        int: 剩余天数
    """
    return (not_after - now) // timedelta(days=1)


def current_time(now: datetime, tz: tzinfo) -> datetime:
    """转换到指定时区并截断到秒"""
    return now.astimezone(tz).replace(microsecond=0)


class ExpiryCalculator:
    """证书过期计算器"""

    def __init__(self, warning_days: int = 30):
        """
        初始化过期计算器

        Args:
            warning_days: 提前警告天数，默认30天
        """
        self.warning_days = warning_days

    def calculate_days_left(self, not_after: datetime, now: Optional[datetime] = None) -> int:
        """
        计算距离过期的天数

        Args:
            not_after: 过期时间
            now: 当前时间，默认取当前UTC时间

        Returns:
            int: 剩余天数（负数表示已过期）
        """
        return days_left(not_after, now or datetime.now(timezone.utc))

    def is_expiring_soon(self, record: CertificateRecord) -> bool:
        """判断证书是否即将过期（在警告期内）"""
        return 0 <= record.days_left <= self.warning_days

    def is_expired(self, record: CertificateRecord) -> bool:
        """判断证书是否已过期"""
        return record.days_left < 0

    def filter_expiring_records(self, records: List[CertificateRecord]) -> List[CertificateRecord]:
        return [record for record in records if self.is_expiring_soon(record)]

    def filter_expired_records(self, records: List[CertificateRecord]) -> List[CertificateRecord]:
        return [record for record in records if self.is_expired(record)]

    def categorize_records(self, records: List[CertificateRecord]) -> dict:
        """
        对证书进行分类

        Args:
            records: 证书列表

        Returns:
            dict: 分类结果
        """
        expired = self.filter_expired_records(records)
        expiring_soon = self.filter_expiring_records(records)

        return {
            'total': len(records),
            'expired': expired,
            'expiring_soon': expiring_soon,
            'healthy': [record for record in records
                        if not self.is_expired(record) and not self.is_expiring_soon(record)]
        }

    def get_expiry_summary(self, records: List[CertificateRecord]) -> str:
        """
        获取过期状态摘要

        Args:
            records: 证书列表

        Returns:
            str: 摘要信息
        """
        categorized = self.categorize_records(records)

        summary_parts = [f"总计: {categorized['total']} 个目标"]

        if categorized['expired']:
            summary_parts.append(f"已过期: {len(categorized['expired'])} 个")

        if categorized['expiring_soon']:
            summary_parts.append(f"即将过期({self.warning_days}天内): {len(categorized['expiring_soon'])} 个")

        if categorized['healthy']:
            summary_parts.append(f"健康: {len(categorized['healthy'])} 个")

        return ", ".join(summary_parts)
