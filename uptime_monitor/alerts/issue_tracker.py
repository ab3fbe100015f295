"""工单管理

站点状态变为 down 时打开issue，恢复为 up 时评论并关闭issue。
每个站点只查询最近创建的一个打开的issue，不跨运行跟踪issue编号。
"""

from typing import List, Optional, Dict, Any

from ..models.site_status import STATUS_DOWN, STATUS_UP, SiteOutcome
from ..services.github_client import GitHubClient
from ..utils.exceptions import GitHubAPIError, IssueTrackerError
from ..utils.log_manager import get_logger

ISSUE_LABEL = 'status'


class IssueTracker:
    """基于GitHub issue的工单管理器"""

    def __init__(self, client: GitHubClient, assignees: Optional[List[str]] = None):
        """
        初始化工单管理器

        Args:
            client: GitHub接口客户端
            assignees: 新建issue的负责人
        """
        self.client = client
        self.assignees = assignees or []
        self.logger = get_logger('alerts.issue_tracker')

    async def find_open_issue(self, slug: str) -> Optional[Dict[str, Any]]:
        """查询站点最近创建的打开的issue"""
        issues = await self.client.list_issues(labels=slug, state='open', sort='created',
                                               direction='desc', per_page=1)
        self.logger.debug(f"找到 {len(issues)} 个打开的issue: {slug}")
        return issues[0] if issues else None

    async def handle_transition(self, outcome: SiteOutcome) -> Optional[str]:
        """
        根据状态变化处理issue

        Args:
            outcome: 站点处理结果，必须是状态已变化且已提交的结果

        Returns:
            Optional[str]: 执行的动作 "opened" / "closed"，无动作时返回None

        Raises:
            IssueTrackerError: 接口调用失败
        """
        try:
            issue = await self.find_open_issue(outcome.slug)

            if outcome.status == STATUS_DOWN:
                if issue is None:
                    await self._open_issue(outcome)
                    return 'opened'
                self.logger.info(f"已有打开的issue #{issue.get('number')}: {outcome.url}")
                return None

            if outcome.status == STATUS_UP and outcome.previous_status != STATUS_UP:
                if issue is not None:
                    await self._close_issue(outcome, issue)
                    return 'closed'
                self.logger.info(f"未找到相关的issue: {outcome.url}")
            return None

        except GitHubAPIError as e:
            raise IssueTrackerError(f"处理issue失败: {outcome.url}", slug=outcome.slug, cause=e)

    async def _open_issue(self, outcome: SiteOutcome):
        probe = outcome.probe
        body = (
            f"In {outcome.commit_sha[:7] if outcome.commit_sha else 'unknown'}, "
            f"{outcome.url} was **down**:\n"
            f"\n"
            f"- HTTP code: {probe.http_code if probe else 0}\n"
            f"- Response time: {probe.elapsed_ms if probe else 0} ms\n"
        )
        issue = await self.client.create_issue(
            title=f"⚠️ {outcome.url} is down",
            body=body,
            assignees=self.assignees,
            labels=[ISSUE_LABEL, outcome.slug]
        )
        self.logger.warning(f"已创建issue #{(issue or {}).get('number')}: {outcome.url} is down")

    async def _close_issue(self, outcome: SiteOutcome, issue: Dict[str, Any]):
        number = issue['number']
        short_sha = outcome.commit_sha[:7] if outcome.commit_sha else 'unknown'
        await self.client.create_comment(number, f"{outcome.url} is back up in {short_sha}.")
        self.logger.info(f"已在issue #{number} 中添加恢复评论")
        await self.client.update_issue(number, state='closed')
        self.logger.info(f"已关闭issue #{number}: {outcome.url}")
