"""站点状态相关的数据模型"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional, Dict, List

STATUS_UP = 'up'
STATUS_DOWN = 'down'
STATUS_UNKNOWN = 'unknown'

# 记录文件中的字段顺序，写入时必须保持
RECORD_FIELDS = ['url', 'status', 'code', 'responseTime', 'lastUpdated', 'startTime']

_RECORD_LINE = re.compile(r'^\s*-\s*([A-Za-z_]+)\s*:(.*)$')


def classify(http_code: int) -> str:
    """
    根据HTTP状态码判断站点状态

    Args:
        http_code: HTTP状态码，0表示网络层失败

    Returns:
        str: 200 <= code < 400 为 "up"，其余为 "down"
    """
    return STATUS_UP if 200 <= http_code < 400 else STATUS_DOWN


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_iso(moment: datetime) -> str:
    """ISO8601格式，毫秒精度，以Z结尾"""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def format_rfc1123(moment: datetime) -> str:
    """RFC1123格式，例如 "Mon, 01 Jan 2024 12:00:00 GMT" """
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)


@dataclass
class ProbeResult:
    """单次探测结果，网络失败时 http_code 和 elapsed_ms 均为0"""
    http_code: int
    elapsed_ms: int
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def status(self) -> str:
        return classify(self.http_code)

    @property
    def failed(self) -> bool:
        return self.http_code == 0


@dataclass
class SiteRecord:
    """站点状态记录，对应 history/<slug>.yml"""
    url: str
    status: str = STATUS_UNKNOWN
    code: int = 0
    response_time: int = 0
    last_updated: Optional[str] = None
    start_time: Optional[str] = None

    def to_text(self) -> str:
        """
        序列化为 "- key: value" 文本格式

        Returns:
            str: 记录文本，以换行结尾
        """
        values = {
            'url': self.url,
            'status': self.status,
            'code': self.code,
            'responseTime': self.response_time,
            'lastUpdated': self.last_updated or '',
            'startTime': self.start_time or '',
        }
        return ''.join(f"- {key}: {values[key]}\n" for key in RECORD_FIELDS)

    @classmethod
    def from_text(cls, text: str) -> 'SiteRecord':
        """
        从记录文本解析

        字段名不区分大小写，值为第一个冒号之后的全部内容（去除首尾空白）。
        重复字段以第一次出现为准，未知字段忽略。

        Args:
            text: 记录文本

        Returns:
            SiteRecord: 解析出的记录，缺失字段使用默认值
        """
        fields: Dict[str, str] = {}
        for line in text.splitlines():
            match = _RECORD_LINE.match(line)
            if not match:
                continue
            key = match.group(1).lower()
            if key not in fields:
                fields[key] = match.group(2).strip()

        return cls(
            url=fields.get('url', ''),
            status=fields.get('status') or STATUS_UNKNOWN,
            code=_to_int(fields.get('code')),
            response_time=_to_int(fields.get('responsetime')),
            last_updated=fields.get('lastupdated') or None,
            start_time=fields.get('starttime') or None,
        )


def _to_int(value: Optional[str]) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        return 0


@dataclass
class SiteOutcome:
    """单个站点的处理结果"""
    url: str
    slug: str
    previous_status: str = STATUS_UNKNOWN
    status: str = STATUS_UNKNOWN
    probe: Optional[ProbeResult] = None
    committed: bool = False
    commit_sha: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def changed(self) -> bool:
        """状态是否发生变化且已成功写入记录"""
        return self.committed and self.previous_status != self.status


@dataclass
class RunReport:
    """一次运行的汇总"""
    outcomes: List[SiteOutcome] = field(default_factory=list)
    force_commit: bool = False
    started_at: datetime = field(default_factory=utc_now)

    @property
    def has_delta(self) -> bool:
        return any(outcome.changed for outcome in self.outcomes)

    @property
    def commits(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.committed)

    @property
    def errors(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.error_message)
