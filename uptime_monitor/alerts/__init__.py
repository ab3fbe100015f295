"""工单模块"""

from .issue_tracker import IssueTracker

__all__ = ['IssueTracker']
