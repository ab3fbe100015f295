"""配置验证工具"""

from typing import Dict, Any
from urllib.parse import urlparse

from .exceptions import ConfigError


class ConfigValidator:
    """配置验证器"""

    VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

    @staticmethod
    def validate_sites(sites: Any) -> None:
        """
        验证站点列表

        Args:
            sites: 站点URL列表

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(sites, list) or not sites:
            raise ConfigError("sites 必须是非空列表")

        for url in sites:
            if not isinstance(url, str):
                raise ConfigError(f"站点URL必须是字符串: {url!r}")
            parsed = urlparse(url)
            if parsed.scheme not in ('http', 'https') or not parsed.netloc:
                raise ConfigError(f"站点URL格式无效: {url}")

    @staticmethod
    def validate_repository(config: Dict[str, Any]) -> None:
        """
        验证仓库配置 (owner/repo)

        Args:
            config: 完整配置

        Raises:
            ConfigError: 配置验证失败
        """
        for field in ('owner', 'repo'):
            value = config.get(field)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"缺少必需的配置项: {field}")

    @staticmethod
    def validate_options(config: Dict[str, Any]) -> None:
        """
        验证可选配置项

        Args:
            config: 完整配置

        Raises:
            ConfigError: 配置验证失败
        """
        assignees = config.get('assignees')
        if assignees is not None:
            if not isinstance(assignees, list) or not all(isinstance(a, str) for a in assignees):
                raise ConfigError("assignees 必须是字符串列表")

        concurrency = config.get('concurrency')
        if concurrency is not None:
            if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency <= 0:
                raise ConfigError("concurrency 必须是正整数")

        log_level = config.get('logLevel')
        if log_level is not None:
            if str(log_level).upper() not in ConfigValidator.VALID_LOG_LEVELS:
                raise ConfigError(f"logLevel 必须是以下值之一: {ConfigValidator.VALID_LOG_LEVELS}")

        for field in ('PAT', 'userAgent', 'historyDir', 'logFile'):
            value = config.get(field)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{field} 必须是字符串")
