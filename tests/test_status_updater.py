"""测试站点状态更新器"""

import asyncio
import pytest
from datetime import datetime, timezone
from unittest.mock import Mock, AsyncMock

from uptime_monitor.alerts.issue_tracker import IssueTracker
from uptime_monitor.models.site_status import ProbeResult, SiteRecord
from uptime_monitor.services.history_store import HistoryStore
from uptime_monitor.services.status_updater import StatusUpdater, commit_message
from uptime_monitor.utils.exceptions import GitHubAPIError, GitHubNotFoundError

NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_client(open_issues=None):
    client = Mock()
    client.get_content = AsyncMock(side_effect=GitHubNotFoundError('missing'))
    client.create_or_update_file = AsyncMock(
        return_value={'commit': {'sha': 'abcdef1234567890'}})
    client.list_issues = AsyncMock(return_value=open_issues or [])
    client.create_issue = AsyncMock(return_value={'number': 1})
    client.create_comment = AsyncMock(return_value={})
    client.update_issue = AsyncMock(return_value={})
    return client


def make_prober(results):
    """results: URL -> ProbeResult"""
    prober = Mock()
    prober.probe = AsyncMock(side_effect=lambda url: results[url])
    return prober


def write_history(workdir, slug, status, start_time='Sun, 31 Dec 2023 08:00:00 GMT'):
    history = workdir / 'history'
    history.mkdir(exist_ok=True)
    record = SiteRecord(url=f'https://{slug}', status=status, code=200, response_time=10,
                        last_updated='2023-12-31T08:00:00.000Z', start_time=start_time)
    (history / f'{slug}.yml').write_text(record.to_text(), encoding='utf-8')


class TestStatusUpdater:
    """状态更新器测试类"""

    @pytest.fixture(autouse=True)
    def workdir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        return tmp_path

    def make_updater(self, sites, results, client, on_delta=None, concurrency=1):
        return StatusUpdater(
            sites=sites,
            prober=make_prober(results),
            history_store=HistoryStore(client),
            issue_tracker=IssueTracker(client, assignees=['alice']),
            on_delta=on_delta,
            concurrency=concurrency,
            clock=lambda: NOW
        )

    def test_commit_message(self):
        assert commit_message('https://example.com', 'up', 200, 35) == \
            '🟩 https://example.com is up (200 in 35ms) [skip ci]'
        assert commit_message('https://example.com', 'down', 0, 0) == \
            '🟥 https://example.com is down (0 in 0ms) [skip ci]'

    @pytest.mark.asyncio
    async def test_up_to_down_writes_record_and_opens_issue(self, workdir):
        """测试 up -> down: 写入一条记录并创建一个issue"""
        write_history(workdir, 'example-com', 'up')
        client = make_client()
        on_delta = Mock()
        updater = self.make_updater(
            ['https://example.com'],
            {'https://example.com': ProbeResult(http_code=503, elapsed_ms=120)},
            client, on_delta=on_delta)

        report = await updater.run()

        assert client.create_or_update_file.await_count == 1
        path, content, message = client.create_or_update_file.call_args.args
        assert path == 'history/example-com.yml'
        assert '- status: down\n' in content
        assert '- code: 503\n' in content
        assert '- responseTime: 120\n' in content
        assert '- lastUpdated: 2024-01-01T12:00:00.000Z\n' in content
        assert message == '🟥 https://example.com is down (503 in 120ms) [skip ci]'

        client.create_issue.assert_awaited_once()
        kwargs = client.create_issue.call_args.kwargs
        assert 'is down' in kwargs['title']
        assert 'example-com' in kwargs['labels']

        assert report.has_delta is True
        on_delta.assert_called_once_with(report)

    @pytest.mark.asyncio
    async def test_start_time_preserved_from_prior_record(self, workdir):
        """测试已有记录时保留startTime"""
        write_history(workdir, 'example-com', 'up', start_time='Sun, 31 Dec 2023 08:00:00 GMT')
        client = make_client()
        updater = self.make_updater(
            ['https://example.com'],
            {'https://example.com': ProbeResult(http_code=500, elapsed_ms=5)},
            client)

        await updater.run()

        content = client.create_or_update_file.call_args.args[1]
        assert content.endswith('- startTime: Sun, 31 Dec 2023 08:00:00 GMT\n')

    @pytest.mark.asyncio
    async def test_new_site_start_time_is_now(self):
        """测试没有记录时startTime为当前时间"""
        client = make_client()
        updater = self.make_updater(
            ['https://example.com'],
            {'https://example.com': ProbeResult(http_code=200, elapsed_ms=30)},
            client)

        report = await updater.run()

        content = client.create_or_update_file.call_args.args[1]
        assert content.endswith('- startTime: Mon, 01 Jan 2024 12:00:00 GMT\n')
        assert report.outcomes[0].previous_status == 'unknown'
        assert report.has_delta is True
        # unknown -> up 时查询issue，但不会创建
        client.create_issue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_down_to_up_closes_open_issue(self, workdir):
        """测试 down -> up: 评论一次并关闭issue，不创建issue"""
        write_history(workdir, 'example-com', 'down')
        client = make_client(open_issues=[{'number': 9}])
        updater = self.make_updater(
            ['https://example.com'],
            {'https://example.com': ProbeResult(http_code=200, elapsed_ms=40)},
            client)

        await updater.run()

        client.create_comment.assert_awaited_once_with(9, 'https://example.com is back up in abcdef1.')
        client.update_issue.assert_awaited_once_with(9, state='closed')
        client.create_issue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self):
        """测试目标状态不变时第二次运行没有写入和issue操作"""
        client = make_client()
        sites = ['https://a.example.com', 'https://b.example.com']
        results = {
            'https://a.example.com': ProbeResult(http_code=200, elapsed_ms=10),
            'https://b.example.com': ProbeResult(http_code=0, elapsed_ms=0),
        }

        await self.make_updater(sites, results, client).run()
        writes = client.create_or_update_file.await_count
        issue_calls = (client.list_issues.await_count, client.create_issue.await_count)
        assert writes == 2

        on_delta = Mock()
        report = await self.make_updater(sites, results, client, on_delta=on_delta).run()

        assert client.create_or_update_file.await_count == writes
        assert (client.list_issues.await_count, client.create_issue.await_count) == issue_calls
        client.create_comment.assert_not_awaited()
        client.update_issue.assert_not_awaited()
        assert report.has_delta is False
        on_delta.assert_not_called()

    @pytest.mark.asyncio
    async def test_force_commit_writes_every_site(self, workdir):
        """测试强制提交时每个站点写入一条记录，状态未变化时不处理issue"""
        write_history(workdir, 'a-example-com', 'up')
        write_history(workdir, 'b-example-com', 'up')
        client = make_client()
        on_delta = Mock()
        updater = self.make_updater(
            ['https://a.example.com', 'https://b.example.com'],
            {
                'https://a.example.com': ProbeResult(http_code=200, elapsed_ms=10),
                'https://b.example.com': ProbeResult(http_code=301, elapsed_ms=20),
            },
            client, on_delta=on_delta)

        report = await updater.run(force_commit=True)

        assert client.create_or_update_file.await_count == 2
        assert report.commits == 2
        client.list_issues.assert_not_awaited()
        assert report.has_delta is False
        on_delta.assert_not_called()

    @pytest.mark.asyncio
    async def test_site_failure_does_not_block_others(self):
        """测试一个站点失败不影响其它站点"""
        client = make_client()
        client.create_or_update_file = AsyncMock(side_effect=[
            GitHubAPIError('conflict', status=409),
            {'commit': {'sha': '1111111222222'}},
        ])
        updater = self.make_updater(
            ['https://a.example.com', 'https://b.example.com'],
            {
                'https://a.example.com': ProbeResult(http_code=500, elapsed_ms=10),
                'https://b.example.com': ProbeResult(http_code=500, elapsed_ms=10),
            },
            client)

        report = await updater.run()

        first, second = report.outcomes
        assert first.error_message.startswith('write:')
        assert first.committed is False
        assert second.committed is True
        assert client.create_issue.await_count == 1

    @pytest.mark.asyncio
    async def test_ticket_failure_keeps_delta(self, workdir):
        """测试issue处理失败时记录仍然计为状态变化"""
        write_history(workdir, 'example-com', 'up')
        client = make_client()
        client.list_issues = AsyncMock(side_effect=GitHubAPIError('rate limited', status=403))
        on_delta = AsyncMock()
        updater = self.make_updater(
            ['https://example.com'],
            {'https://example.com': ProbeResult(http_code=0, elapsed_ms=0)},
            client, on_delta=on_delta)

        report = await updater.run()

        assert report.outcomes[0].committed is True
        assert report.outcomes[0].error_message is None
        assert report.has_delta is True
        on_delta.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_summary_failure_is_not_fatal(self):
        """测试汇总回调失败不影响运行结果"""
        client = make_client()
        updater = self.make_updater(
            ['https://example.com'],
            {'https://example.com': ProbeResult(http_code=200, elapsed_ms=10)},
            client, on_delta=Mock(side_effect=RuntimeError('disk full')))

        report = await updater.run()

        assert report.has_delta is True

    @pytest.mark.asyncio
    async def test_summary_called_once_for_many_changes(self):
        """测试多个站点变化时汇总只调用一次"""
        client = make_client()
        on_delta = Mock()
        sites = [f'https://s{i}.example.com' for i in range(3)]
        updater = self.make_updater(
            sites, {url: ProbeResult(http_code=503, elapsed_ms=1) for url in sites},
            client, on_delta=on_delta)

        await updater.run()

        on_delta.assert_called_once()
        assert client.create_issue.await_count == 3

    @pytest.mark.asyncio
    async def test_concurrent_run(self):
        """测试并发处理保持每个站点的结果和顺序"""
        client = make_client()
        sites = [f'https://s{i}.example.com' for i in range(5)]
        results = {url: ProbeResult(http_code=200 if i % 2 else 500, elapsed_ms=i)
                   for i, url in enumerate(sites)}
        updater = self.make_updater(sites, results, client, concurrency=3)

        report = await updater.run()

        assert [o.url for o in report.outcomes] == sites
        assert [o.status for o in report.outcomes] == ['down', 'up', 'down', 'up', 'down']
        assert client.create_or_update_file.await_count == 5
        assert client.create_issue.await_count == 3

    @pytest.mark.asyncio
    async def test_concurrent_writes_never_overlap(self):
        """测试并发时提交记录和issue操作逐个执行"""
        client = make_client()
        in_flight = 0
        max_in_flight = 0

        def serialized(return_value):
            async def call(*args, **kwargs):
                nonlocal in_flight, max_in_flight
                in_flight += 1
                max_in_flight = max(max_in_flight, in_flight)
                await asyncio.sleep(0.01)
                in_flight -= 1
                return return_value
            return call

        client.create_or_update_file = AsyncMock(
            side_effect=serialized({'commit': {'sha': 'abcdef1234567890'}}))
        client.create_issue = AsyncMock(side_effect=serialized({'number': 1}))

        sites = [f'https://s{i}.example.com' for i in range(6)]
        updater = self.make_updater(
            sites, {url: ProbeResult(http_code=503, elapsed_ms=1) for url in sites},
            client, concurrency=3)

        report = await updater.run()

        assert max_in_flight == 1
        assert client.create_or_update_file.await_count == 6
        assert client.create_issue.await_count == 6
        assert all(o.committed for o in report.outcomes)
