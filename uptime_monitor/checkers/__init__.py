"""站点探测模块"""

from .site_prober import SiteProber

__all__ = ['SiteProber']
