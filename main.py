#!/usr/bin/env python3
"""
站点状态监控主程序入口

读取 .statusrc.yml，逐个探测站点并更新状态记录和issue。
由外部调度（例如定时任务）每次运行一遍后退出。
"""

import argparse
import asyncio
import sys
from typing import Optional, List

from uptime_monitor import __version__
from uptime_monitor.alerts.issue_tracker import IssueTracker
from uptime_monitor.checkers.site_prober import SiteProber
from uptime_monitor.models.site_status import RunReport
from uptime_monitor.services.config_manager import ConfigManager, DEFAULT_CONFIG_PATH
from uptime_monitor.services.github_client import GitHubClient
from uptime_monitor.services.history_store import HistoryStore
from uptime_monitor.services.status_updater import StatusUpdater
from uptime_monitor.services.summary import generate_summary
from uptime_monitor.utils.exceptions import ConfigError, UptimeMonitorError
from uptime_monitor.utils.log_manager import log_manager, get_logger, configure_logging

COMMIT_MODE = 'commit'


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='uptime-monitor',
        description='站点状态监控 - 探测站点可用性，记录状态历史并在状态变化时开关issue',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s                              # 仅在状态变化时提交记录
  %(prog)s commit                       # 强制为每个站点提交记录
  %(prog)s --config path/.statusrc.yml  # 使用指定配置文件
  %(prog)s --concurrency 4              # 同时探测4个站点
        """
    )

    # 位置参数：只有 "commit" 有意义
    parser.add_argument(
        'mode',
        nargs='?',
        help='为 commit 时强制为每个站点提交记录'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config', '-c',
        default=DEFAULT_CONFIG_PATH,
        help=f'YAML配置文件路径（默认: {DEFAULT_CONFIG_PATH}）'
    )

    parser.add_argument(
        '--concurrency',
        type=int,
        help='同时处理的站点数量（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='设置日志级别（覆盖配置文件设置）'
    )

    return parser


async def run_update(config_manager: ConfigManager, force_commit: bool = False,
                     concurrency: Optional[int] = None) -> RunReport:
    """
    执行一次状态更新

    Args:
        config_manager: 已加载配置的配置管理器
        force_commit: 是否强制提交
        concurrency: 并发数，为None时使用配置文件设置

    Returns:
        RunReport: 运行汇总
    """
    user_agent = config_manager.get_user_agent()
    history_dir = config_manager.get_history_dir()

    async with GitHubClient(
            owner=config_manager.get_owner(),
            repo=config_manager.get_repo(),
            token=config_manager.get_token(),
            user_agent=user_agent
    ) as client:
        history_store = HistoryStore(client, history_dir)

        def write_summary(report: RunReport):
            generate_summary(history_store.list_records(),
                             str(history_store.local_dir / 'summary.json'))

        updater = StatusUpdater(
            sites=config_manager.get_sites(),
            prober=SiteProber(user_agent=user_agent),
            history_store=history_store,
            issue_tracker=IssueTracker(client, config_manager.get_assignees()),
            on_delta=write_summary,
            concurrency=concurrency or config_manager.get_concurrency()
        )
        return await updater.run(force_commit=force_commit)


async def main(argv: Optional[List[str]] = None) -> int:
    """主函数

    Returns:
        进程退出码
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if args.concurrency is not None and args.concurrency <= 0:
        parser.error('--concurrency 必须是正整数')

    force_commit = args.mode == COMMIT_MODE

    try:
        config_manager = ConfigManager(args.config)
        config_manager.load_config()

        log_config = config_manager.get_log_config()
        if args.log_level:
            log_config['log_level'] = args.log_level
        configure_logging(log_config)

        logger = get_logger('main')
        logger.info(f"站点状态监控 v{__version__} 开始运行")

        report = await run_update(config_manager, force_commit, args.concurrency)
        logger.info(f"运行结束，共处理 {len(report.outcomes)} 个站点")
        return 0

    except ConfigError as e:
        print(f"配置错误: {e.format_error()}", file=sys.stderr)
        return 1
    except UptimeMonitorError as e:
        print(f"站点状态监控错误: {e.format_error()}", file=sys.stderr)
        return 1
    finally:
        log_manager.cleanup()


def cli():
    """命令行入口"""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
