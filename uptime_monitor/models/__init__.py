"""数据模型模块"""

from .site_status import (
    ProbeResult, SiteRecord, SiteOutcome, RunReport, classify,
    STATUS_UP, STATUS_DOWN, STATUS_UNKNOWN
)

__all__ = ['ProbeResult', 'SiteRecord', 'SiteOutcome', 'RunReport', 'classify',
           'STATUS_UP', 'STATUS_DOWN', 'STATUS_UNKNOWN']
