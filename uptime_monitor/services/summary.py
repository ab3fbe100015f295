"""状态汇总生成

在本次运行中有站点状态变化时调用一次，根据本地历史记录生成 summary.json。
"""

import json
from pathlib import Path
from typing import Dict, Any, List

from ..models.site_status import SiteRecord, STATUS_UP, utc_now, format_iso
from ..utils.log_manager import get_logger

logger = get_logger('summary')


def build_summary(records: List[SiteRecord]) -> Dict[str, Any]:
    """
    根据历史记录构建汇总数据

    Args:
        records: 所有站点的记录

    Returns:
        Dict[str, Any]: 汇总数据
    """
    sites = [
        {
            'url': record.url,
            'status': record.status,
            'code': record.code,
            'responseTime': record.response_time,
            'lastUpdated': record.last_updated,
            'startTime': record.start_time,
        }
        for record in records
    ]
    up_count = sum(1 for record in records if record.status == STATUS_UP)
    return {
        'generated': format_iso(utc_now()),
        'total': len(records),
        'up': up_count,
        'down': len(records) - up_count,
        'sites': sites,
    }


def generate_summary(records: List[SiteRecord], output_path: str) -> Dict[str, Any]:
    """
    生成汇总文件

    Args:
        records: 所有站点的记录
        output_path: 输出文件路径

    Returns:
        Dict[str, Any]: 写入的汇总数据
    """
    summary = build_summary(records)

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(summary, f, ensure_ascii=False, indent=2)

    logger.info(f"已生成状态汇总: {path} ({summary['up']}/{summary['total']} 正常)")
    return summary
