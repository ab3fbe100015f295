"""站点状态更新器

逐个站点执行: 读取上一条记录 -> 探测 -> 比较状态 -> 按需提交记录 -> 按需处理issue。
所有站点处理完成后，如果有状态变化，调用一次汇总回调。
"""

import asyncio
import inspect
from datetime import datetime
from typing import List, Optional, Callable, Any

from .history_store import HistoryStore
from ..alerts.issue_tracker import IssueTracker
from ..checkers.site_prober import SiteProber
from ..models.site_status import (
    SiteOutcome, SiteRecord, RunReport, classify, format_iso, format_rfc1123,
    utc_now, STATUS_UP, STATUS_UNKNOWN
)
from ..utils.exceptions import IssueTrackerError
from ..utils.log_manager import get_logger
from ..utils.slug import site_slug


def commit_message(url: str, status: str, http_code: int, elapsed_ms: int) -> str:
    """记录提交信息"""
    icon = '🟩' if status == STATUS_UP else '🟥'
    return f"{icon} {url} is {status} ({http_code} in {elapsed_ms}ms) [skip ci]"


class StatusUpdater:
    """站点状态更新器"""

    def __init__(self,
                 sites: List[str],
                 prober: SiteProber,
                 history_store: HistoryStore,
                 issue_tracker: IssueTracker,
                 on_delta: Optional[Callable[[RunReport], Any]] = None,
                 concurrency: int = 1,
                 clock: Callable[[], datetime] = utc_now):
        """
        初始化状态更新器

        Args:
            sites: 站点URL列表
            prober: 探测器
            history_store: 历史记录存储
            issue_tracker: 工单管理器
            on_delta: 有状态变化时在运行结束调用一次的回调，可以是协程函数
            concurrency: 同时处理的站点数量，1 表示顺序处理
            clock: 当前时间函数
        """
        self.sites = sites
        self.prober = prober
        self.history_store = history_store
        self.issue_tracker = issue_tracker
        self.on_delta = on_delta
        self.concurrency = max(1, concurrency)
        self.clock = clock
        # 同一分支上的提交和issue操作必须串行，否则远端返回409
        self.write_lock = asyncio.Lock()
        self.logger = get_logger('status_updater')

    async def run(self, force_commit: bool = False) -> RunReport:
        """
        处理所有站点

        Args:
            force_commit: 为True时无论状态是否变化都提交记录

        Returns:
            RunReport: 运行汇总
        """
        report = RunReport(force_commit=force_commit, started_at=self.clock())
        self.logger.info(
            f"开始检查 {len(self.sites)} 个站点"
            f"{' (强制提交)' if force_commit else ''}, 并发数: {self.concurrency}"
        )

        if self.concurrency == 1:
            for url in self.sites:
                report.outcomes.append(await self.process_site(url, force_commit))
        else:
            report.outcomes.extend(await self._run_concurrently(force_commit))

        self.logger.info(
            f"检查完成: 提交 {report.commits} 条记录, "
            f"状态变化: {'是' if report.has_delta else '否'}, 错误: {report.errors}"
        )

        if report.has_delta:
            await self._trigger_summary(report)

        return report

    async def _run_concurrently(self, force_commit: bool) -> List[SiteOutcome]:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def limited(url: str) -> SiteOutcome:
            async with semaphore:  # 控制并发数量
                return await self.process_site(url, force_commit)

        tasks = [asyncio.create_task(limited(url)) for url in self.sites]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes = []
        for url, result in zip(self.sites, results):
            if isinstance(result, BaseException):
                self.logger.error(f"处理站点 {url} 异常: {result}")
                outcomes.append(SiteOutcome(url=url, slug=site_slug(url),
                                            error_message=str(result)))
            else:
                outcomes.append(result)
        return outcomes

    async def process_site(self, url: str, force_commit: bool = False) -> SiteOutcome:
        """
        处理单个站点，任何异常都在此处记录，不会影响其它站点

        Args:
            url: 站点URL
            force_commit: 是否强制提交记录

        Returns:
            SiteOutcome: 处理结果
        """
        slug = site_slug(url)
        outcome = SiteOutcome(url=url, slug=slug)
        stage = 'read'
        self.logger.info(f"检查站点: {url}")

        try:
            now = self.clock()
            previous = self.history_store.read_record(slug)
            outcome.previous_status = previous.status if previous else STATUS_UNKNOWN
            start_time = (previous.start_time if previous and previous.start_time
                          else format_rfc1123(now))

            stage = 'probe'
            result = await self.prober.probe(url)
            outcome.probe = result
            outcome.status = classify(result.http_code)

            if not force_commit and outcome.status == outcome.previous_status:
                self.logger.info(f"状态未变化，跳过提交: {url} is {outcome.status}")
                return outcome

            async with self.write_lock:
                stage = 'write'
                record = SiteRecord(
                    url=url,
                    status=outcome.status,
                    code=result.http_code,
                    response_time=result.elapsed_ms,
                    last_updated=format_iso(now),
                    start_time=start_time
                )
                message = commit_message(url, outcome.status, result.http_code, result.elapsed_ms)
                commit = await self.history_store.write_record(slug, record, message)
                outcome.committed = True
                outcome.commit_sha = commit.get('sha')

                if not outcome.changed:
                    self.logger.info(f"状态未变化: {outcome.previous_status} -> {outcome.status}")
                    return outcome

                self.logger.warning(f"状态变化: {url} {outcome.previous_status} -> {outcome.status}")

                stage = 'ticket'
                try:
                    await self.issue_tracker.handle_transition(outcome)
                except IssueTrackerError as e:
                    self.logger.error(f"站点 {url} 处理issue失败 [{stage}]: {e.format_error()}")

        except Exception as e:
            outcome.error_message = f"{stage}: {e}"
            self.logger.error(f"站点 {url} 处理失败 [{stage}]: {e}", exc_info=True)

        return outcome

    async def _trigger_summary(self, report: RunReport):
        if self.on_delta is None:
            return

        try:
            result = self.on_delta(report)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.error(f"生成状态汇总失败 [summary]: {e}", exc_info=True)
