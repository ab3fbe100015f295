"""站点状态监控: 探测站点可用性，记录状态历史，并在状态变化时开关GitHub issue"""

__version__ = "1.0.0"
