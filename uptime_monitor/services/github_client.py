"""GitHub REST接口客户端

只封装状态更新需要的几个接口：仓库文件内容读写和issue的查询、创建、评论、关闭。
"""

import asyncio
import base64
from typing import Dict, Any, List, Optional
from urllib.parse import quote

import aiohttp

from ..utils.exceptions import GitHubAPIError, GitHubNotFoundError, ErrorCode
from ..utils.log_manager import get_logger

API_URL = 'https://api.github.com'


class GitHubClient:
    """基于aiohttp的GitHub接口客户端"""

    def __init__(self, owner: str, repo: str, token: Optional[str] = None,
                 user_agent: str = 'KojBot', api_url: str = API_URL,
                 timeout: float = 30):
        """
        初始化客户端

        Args:
            owner: 仓库所有者
            repo: 仓库名称
            token: 访问令牌，为空时以匿名身份访问
            user_agent: 请求使用的User-Agent
            api_url: 接口根地址
            timeout: 单个请求的超时时间（秒）
        """
        self.owner = owner
        self.repo = repo
        self.token = token
        self.user_agent = user_agent
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.logger = get_logger('github_client')
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> 'GitHubClient':
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def open(self):
        """创建HTTP会话"""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self._headers()
            )

    async def close(self):
        """关闭HTTP会话"""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _headers(self) -> Dict[str, str]:
        headers = {
            'Accept': 'application/vnd.github+json',
            'User-Agent': self.user_agent,
        }
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def _repo_path(self, suffix: str) -> str:
        return f"/repos/{self.owner}/{self.repo}{suffix}"

    async def _request(self, method: str, path: str,
                       params: Optional[Dict[str, Any]] = None,
                       json_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        发送接口请求

        Args:
            method: HTTP方法
            path: 接口路径（以 / 开头）
            params: 查询参数
            json_data: JSON请求体

        Returns:
            解析后的JSON响应

        Raises:
            GitHubNotFoundError: 资源不存在
            GitHubAPIError: 其它非2xx响应或网络错误
        """
        await self.open()
        url = f"{self.api_url}{path}"
        self.logger.debug(f"GitHub {method} {path}")

        try:
            async with self._session.request(method, url, params=params,
                                             json=json_data) as response:
                if response.status == 404:
                    raise GitHubNotFoundError(f"GitHub {method} {path} 资源不存在", path=path)

                if response.status >= 300:
                    text = await response.text()
                    raise GitHubAPIError(
                        f"GitHub {method} {path} 失败: {response.status} {text[:200]}",
                        status=response.status,
                        path=path
                    )

                return await response.json(content_type=None)

        except aiohttp.ClientError as e:
            raise GitHubAPIError(f"GitHub {method} {path} 网络请求失败: {e}",
                                 path=path, error_code=ErrorCode.API_NETWORK_ERROR,
                                 cause=e)
        except asyncio.TimeoutError as e:
            raise GitHubAPIError(f"GitHub {method} {path} 请求超时",
                                 path=path, error_code=ErrorCode.API_NETWORK_ERROR,
                                 cause=e)

    async def get_content(self, file_path: str) -> Dict[str, Any]:
        """
        读取仓库中的文件

        Args:
            file_path: 仓库内的文件路径

        Returns:
            Dict[str, Any]: 包含 sha 和解码后的 content

        Raises:
            GitHubNotFoundError: 文件不存在
        """
        data = await self._request('GET', self._repo_path(f"/contents/{quote(file_path)}"))
        content = data.get('content') or ''
        if data.get('encoding') == 'base64':
            content = base64.b64decode(content).decode('utf-8')
        return {'sha': data.get('sha'), 'content': content}

    async def create_or_update_file(self, file_path: str, content: str, message: str,
                                    sha: Optional[str] = None) -> Dict[str, Any]:
        """
        创建或更新仓库中的文件

        Args:
            file_path: 仓库内的文件路径
            content: 文件文本内容
            message: 提交信息
            sha: 已有文件的sha，为空时创建新文件

        Returns:
            Dict[str, Any]: 接口响应，包含 content 和 commit
        """
        payload = {
            'message': message,
            'content': base64.b64encode(content.encode('utf-8')).decode('ascii'),
        }
        if sha:
            payload['sha'] = sha
        return await self._request('PUT', self._repo_path(f"/contents/{quote(file_path)}"),
                                   json_data=payload)

    async def list_issues(self, labels: str, state: str = 'open', sort: str = 'created',
                          direction: str = 'desc', per_page: int = 1) -> List[Dict[str, Any]]:
        """按标签查询issue，默认返回最新创建的一个打开的issue"""
        params = {
            'labels': labels,
            'filter': 'all',
            'state': state,
            'sort': sort,
            'direction': direction,
            'per_page': per_page,
        }
        return await self._request('GET', self._repo_path('/issues'), params=params)

    async def create_issue(self, title: str, body: str,
                           assignees: Optional[List[str]] = None,
                           labels: Optional[List[str]] = None) -> Dict[str, Any]:
        payload = {'title': title, 'body': body}
        if assignees:
            payload['assignees'] = assignees
        if labels:
            payload['labels'] = labels
        return await self._request('POST', self._repo_path('/issues'), json_data=payload)

    async def create_comment(self, issue_number: int, body: str) -> Dict[str, Any]:
        return await self._request('POST', self._repo_path(f"/issues/{issue_number}/comments"),
                                   json_data={'body': body})

    async def update_issue(self, issue_number: int, state: str) -> Dict[str, Any]:
        return await self._request('PATCH', self._repo_path(f"/issues/{issue_number}"),
                                   json_data={'state': state})
