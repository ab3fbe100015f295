"""历史记录存储

读取本地工作副本中的 history/<slug>.yml 获取上一次的状态，
通过GitHub内容接口提交新记录，并同步写回本地副本。
"""

from pathlib import Path
from typing import Optional, Dict, Any, List

from .github_client import GitHubClient
from ..models.site_status import SiteRecord
from ..utils.exceptions import GitHubAPIError, GitHubNotFoundError, HistoryStoreError
from ..utils.log_manager import get_logger


class HistoryStore:
    """站点历史记录存取器"""

    def __init__(self, client: GitHubClient, history_dir: str = 'history'):
        """
        初始化历史记录存储

        Args:
            client: GitHub接口客户端
            history_dir: 历史记录目录，本地可以是绝对路径，仓库内路径去掉首尾的 /
        """
        self.client = client
        self.local_dir = Path(history_dir.rstrip('/') or 'history')
        self.history_dir = history_dir.strip('/') or 'history'
        self.logger = get_logger('history_store')

    def record_path(self, slug: str) -> str:
        """仓库内的记录路径"""
        return f"{self.history_dir}/{slug}.yml"

    def local_path(self, slug: str) -> Path:
        return self.local_dir / f"{slug}.yml"

    def read_record(self, slug: str) -> Optional[SiteRecord]:
        """
        读取站点的上一条记录

        Args:
            slug: 站点slug

        Returns:
            Optional[SiteRecord]: 记录不存在或无法读取时返回None
        """
        path = self.local_path(slug)
        if not path.exists():
            self.logger.debug(f"历史记录不存在: {path}")
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return SiteRecord.from_text(f.read())
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning(f"读取历史记录失败: {path} - {e}")
            return None

    def list_records(self) -> List[SiteRecord]:
        """读取本地所有历史记录"""
        directory = self.local_dir
        if not directory.is_dir():
            return []

        records = []
        for path in sorted(directory.glob('*.yml')):
            try:
                records.append(SiteRecord.from_text(path.read_text(encoding='utf-8')))
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning(f"读取历史记录失败: {path} - {e}")
        return records

    async def get_version(self, slug: str) -> Optional[str]:
        """
        获取远程记录文件当前的sha

        Args:
            slug: 站点slug

        Returns:
            Optional[str]: 文件不存在时返回None
        """
        try:
            content = await self.client.get_content(self.record_path(slug))
            return content.get('sha')
        except GitHubNotFoundError:
            self.logger.debug(f"远程记录不存在，将新建: {self.record_path(slug)}")
            return None

    async def write_record(self, slug: str, record: SiteRecord, message: str) -> Dict[str, Any]:
        """
        提交新记录

        Args:
            slug: 站点slug
            record: 新记录
            message: 提交信息

        Returns:
            Dict[str, Any]: 包含 sha（提交的完整sha）和 short_sha

        Raises:
            HistoryStoreError: 提交失败
        """
        path = self.record_path(slug)
        text = record.to_text()

        try:
            sha = await self.get_version(slug)
            result = await self.client.create_or_update_file(path, text, message, sha=sha)
        except GitHubAPIError as e:
            raise HistoryStoreError(f"提交历史记录失败: {path}", slug=slug, cause=e)

        commit_sha = ((result or {}).get('commit') or {}).get('sha') or ''
        self.logger.info(f"已提交历史记录: {path} ({commit_sha[:7]})")

        self._write_local(slug, text)

        return {'sha': commit_sha, 'short_sha': commit_sha[:7]}

    def _write_local(self, slug: str, text: str):
        """同步本地副本，使同一工作目录下的后续运行看到最新状态"""
        path = self.local_path(slug)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(text)
        except OSError as e:
            self.logger.warning(f"写入本地历史记录失败: {path} - {e}")
