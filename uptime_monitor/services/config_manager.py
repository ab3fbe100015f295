"""配置管理器"""

import os
from typing import Dict, Any, List, Optional

import yaml

from ..utils.config_validator import ConfigValidator
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.log_manager import get_logger

DEFAULT_CONFIG_PATH = '.statusrc.yml'
DEFAULT_USER_AGENT = 'KojBot'


class ConfigManager:
    """配置管理器，负责 .statusrc.yml 的加载、验证和环境变量回退"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, env: Optional[Dict[str, str]] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径
            env: 环境变量，默认使用 os.environ
        """
        self.config_path = config_path
        self.env = os.environ if env is None else env
        self.config: Dict[str, Any] = {}
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件

        Returns:
            Dict[str, Any]: 配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        if not os.path.exists(self.config_path):
            self.logger.error(f"配置文件不存在: {self.config_path}")
            raise ConfigError(f"配置文件不存在: {self.config_path}",
                              ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path)

        try:
            with open(self.config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误: {e}")
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path, cause=e)
        except OSError as e:
            self.logger.error(f"读取配置文件失败: {e}")
            raise ConfigError(f"读取配置文件失败: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path, cause=e)

        if config is None:
            self.logger.error("配置文件为空")
            raise ConfigError("配置文件为空", config_path=self.config_path)

        self._validate_config(config)
        self.config = config

        self.logger.info(f"配置验证成功，包含 {len(config['sites'])} 个站点")
        return self.config

    def _validate_config(self, config: Any) -> None:
        """
        验证配置文件内容

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型")

        ConfigValidator.validate_sites(config.get('sites'))
        ConfigValidator.validate_repository(config)
        ConfigValidator.validate_options(config)

    def get_sites(self) -> List[str]:
        return list(self.config.get('sites', []))

    def get_owner(self) -> str:
        return self.config.get('owner', '')

    def get_repo(self) -> str:
        return self.config.get('repo', '')

    def get_token(self) -> Optional[str]:
        """访问令牌: PAT -> GH_PAT -> GITHUB_TOKEN"""
        return (self.config.get('PAT')
                or self.env.get('GH_PAT')
                or self.env.get('GITHUB_TOKEN')
                or None)

    def get_user_agent(self) -> str:
        """User-Agent: userAgent -> USER_AGENT -> KojBot"""
        return (self.config.get('userAgent')
                or self.env.get('USER_AGENT')
                or DEFAULT_USER_AGENT)

    def get_assignees(self) -> List[str]:
        return list(self.config.get('assignees') or [])

    def get_concurrency(self) -> int:
        return self.config.get('concurrency') or 1

    def get_history_dir(self) -> str:
        return self.config.get('historyDir') or 'history'

    def get_log_config(self) -> Dict[str, Any]:
        """
        获取日志配置

        Returns:
            Dict[str, Any]: 可直接传给 LogManager.configure 的配置
        """
        log_config = {'log_level': self.config.get('logLevel', 'INFO')}
        if self.config.get('logFile'):
            log_config['log_file'] = self.config['logFile']
        return log_config
