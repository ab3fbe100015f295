"""自定义异常类和错误代码"""

import traceback
from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002

    # 远程接口错误 (3000-3999)
    API_REQUEST_ERROR = 3000
    API_NOT_FOUND = 3001
    API_NETWORK_ERROR = 3002

    # 历史记录错误 (4000-4999)
    HISTORY_READ_ERROR = 4000
    HISTORY_WRITE_ERROR = 4001

    # 工单错误 (5000-5999)
    ISSUE_TRACKER_ERROR = 5000


class UptimeMonitorError(Exception):
    """站点状态监控基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': traceback.format_exc() if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join([f"{k}={v}" for k, v in self.details.items()])
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {str(self.cause)})"
        return error_msg


class ConfigError(UptimeMonitorError):
    """配置相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        config_path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if config_path:
            details['config_path'] = config_path
        kwargs.setdefault('recoverable', False)
        super().__init__(message, error_code, details, **kwargs)


class GitHubAPIError(UptimeMonitorError):
    """GitHub接口调用异常"""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.API_REQUEST_ERROR,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if status is not None:
            details['status'] = status
        if path:
            details['path'] = path
        super().__init__(message, error_code, details, **kwargs)
        self.status = status
        self.path = path


class GitHubNotFoundError(GitHubAPIError):
    """GitHub资源不存在 (404)"""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            status=404,
            path=path,
            error_code=ErrorCode.API_NOT_FOUND,
            **kwargs
        )


class HistoryStoreError(UptimeMonitorError):
    """历史记录读写异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.HISTORY_WRITE_ERROR,
        slug: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if slug:
            details['slug'] = slug
        super().__init__(message, error_code, details, **kwargs)


class IssueTrackerError(UptimeMonitorError):
    """工单处理异常"""

    def __init__(self, message: str, slug: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        if slug:
            details['slug'] = slug
        super().__init__(message, ErrorCode.ISSUE_TRACKER_ERROR, details, **kwargs)
