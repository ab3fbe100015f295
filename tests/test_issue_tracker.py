"""测试工单管理器"""

import pytest
from unittest.mock import Mock, AsyncMock

from uptime_monitor.alerts.issue_tracker import IssueTracker
from uptime_monitor.models.site_status import ProbeResult, SiteOutcome
from uptime_monitor.utils.exceptions import GitHubAPIError, IssueTrackerError


def make_client(open_issues=None):
    client = Mock()
    client.list_issues = AsyncMock(return_value=open_issues or [])
    client.create_issue = AsyncMock(return_value={'number': 12})
    client.create_comment = AsyncMock(return_value={})
    client.update_issue = AsyncMock(return_value={})
    return client


def make_outcome(previous_status, status, http_code=503, elapsed_ms=120):
    return SiteOutcome(
        url='https://example.com',
        slug='example-com',
        previous_status=previous_status,
        status=status,
        probe=ProbeResult(http_code=http_code, elapsed_ms=elapsed_ms),
        committed=True,
        commit_sha='abcdef1234567890'
    )


class TestIssueTracker:
    """工单管理器测试类"""

    @pytest.mark.asyncio
    async def test_down_without_open_issue_creates_one(self):
        """测试站点down且无打开的issue时创建issue"""
        client = make_client()
        tracker = IssueTracker(client, assignees=['alice'])

        action = await tracker.handle_transition(make_outcome('up', 'down'))

        assert action == 'opened'
        client.list_issues.assert_awaited_once_with(
            labels='example-com', state='open', sort='created', direction='desc', per_page=1)
        client.create_issue.assert_awaited_once()
        kwargs = client.create_issue.call_args.kwargs
        assert kwargs['title'] == '⚠️ https://example.com is down'
        assert kwargs['body'] == (
            "In abcdef1, https://example.com was **down**:\n"
            "\n"
            "- HTTP code: 503\n"
            "- Response time: 120 ms\n"
        )
        assert kwargs['assignees'] == ['alice']
        assert kwargs['labels'] == ['status', 'example-com']

    @pytest.mark.asyncio
    async def test_down_with_open_issue_is_noop(self):
        """测试已有打开的issue时不重复创建"""
        client = make_client(open_issues=[{'number': 5}])

        action = await IssueTracker(client).handle_transition(make_outcome('up', 'down'))

        assert action is None
        client.create_issue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_up_with_open_issue_comments_and_closes(self):
        """测试恢复时评论并关闭issue"""
        client = make_client(open_issues=[{'number': 5}])

        action = await IssueTracker(client).handle_transition(
            make_outcome('down', 'up', http_code=200, elapsed_ms=80))

        assert action == 'closed'
        client.create_comment.assert_awaited_once_with(5, 'https://example.com is back up in abcdef1.')
        client.update_issue.assert_awaited_once_with(5, state='closed')
        client.create_issue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_up_without_open_issue_is_noop(self):
        """测试恢复但没有打开的issue"""
        client = make_client()

        action = await IssueTracker(client).handle_transition(
            make_outcome('unknown', 'up', http_code=200))

        assert action is None
        client.create_comment.assert_not_awaited()
        client.update_issue.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self):
        """测试接口错误转换为IssueTrackerError"""
        client = make_client()
        client.create_issue = AsyncMock(side_effect=GitHubAPIError('boom', status=500))

        with pytest.raises(IssueTrackerError) as exc_info:
            await IssueTracker(client).handle_transition(make_outcome('up', 'down'))

        assert exc_info.value.details['slug'] == 'example-com'
