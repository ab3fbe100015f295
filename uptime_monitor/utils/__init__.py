"""工具模块"""

from .exceptions import (
    UptimeMonitorError, ConfigError, GitHubAPIError, GitHubNotFoundError,
    HistoryStoreError, IssueTrackerError
)
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager
from .slug import site_slug, slugify

__all__ = [
    'UptimeMonitorError', 'ConfigError', 'GitHubAPIError', 'GitHubNotFoundError',
    'HistoryStoreError', 'IssueTrackerError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager',
    'site_slug', 'slugify'
]
