"""站点HTTP探测器"""

import asyncio
import time

import aiohttp

from ..models.site_status import ProbeResult
from ..utils.log_manager import get_logger

DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_TOTAL_TIMEOUT = 30
DEFAULT_MAX_REDIRECTS = 3
DEFAULT_USER_AGENT = 'KojBot'


class SiteProber:
    """对单个URL发起一次GET请求，返回状态码和耗时

    网络层的任何失败（DNS、TCP、TLS、超时、重定向过多）都不会抛出异常，
    而是返回 http_code=0、elapsed_ms=0 的结果。
    """

    def __init__(self,
                 connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
                 total_timeout: float = DEFAULT_TOTAL_TIMEOUT,
                 max_redirects: int = DEFAULT_MAX_REDIRECTS,
                 user_agent: str = DEFAULT_USER_AGENT):
        """
        初始化探测器

        Args:
            connect_timeout: 建立连接的超时时间（秒）
            total_timeout: 整个请求的超时时间（秒）
            max_redirects: 最多跟随的重定向次数
            user_agent: 请求使用的User-Agent
        """
        self.connect_timeout = connect_timeout
        self.total_timeout = total_timeout
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self.logger = get_logger('checker.site_prober')

    def get_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.total_timeout,
                                     sock_connect=self.connect_timeout)

    async def probe(self, url: str) -> ProbeResult:
        """
        探测站点

        Args:
            url: 站点URL

        Returns:
            ProbeResult: 探测结果
        """
        self.logger.debug(f"开始探测: {url}")
        start_time = time.monotonic()

        try:
            async with aiohttp.ClientSession(timeout=self.get_timeout()) as session:
                async with session.request(
                        'GET',
                        url,
                        headers={'User-Agent': self.user_agent},
                        allow_redirects=True,
                        # aiohttp在第N次重定向时即放弃，+1 才能跟随N次
                        max_redirects=self.max_redirects + 1
                ) as response:
                    # 读取完整响应体，耗时包含传输时间
                    await response.read()
                    http_code = response.status

        except aiohttp.TooManyRedirects as e:
            return self._failure(url, f"重定向次数超过 {self.max_redirects}: {e}")
        except aiohttp.ClientError as e:
            return self._failure(url, f"HTTP客户端错误: {e}")
        except asyncio.TimeoutError:
            return self._failure(url, "HTTP请求超时")
        except OSError as e:
            return self._failure(url, f"网络错误: {e}")

        elapsed_ms = int(round((time.monotonic() - start_time) * 1000))
        self.logger.info(f"探测完成: {url} -> {http_code} ({elapsed_ms}ms)")

        return ProbeResult(http_code=http_code, elapsed_ms=elapsed_ms)

    def _failure(self, url: str, error_message: str) -> ProbeResult:
        self.logger.warning(f"探测失败: {url} - {error_message}")
        return ProbeResult(http_code=0, elapsed_ms=0, error_message=error_message)

