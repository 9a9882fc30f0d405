# --- START OF FILE core/config.py ---
import logging
import os
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)

CONFIG_PATH = "config/system.yaml"

# 环境变量覆盖配置文件中的值
ENV_OVERRIDES = {
    "MYSQL_HOST": "host",
    "MYSQL_PORT": "port",
    "MYSQL_USER": "user",
    "MYSQL_PASSWORD": "password",
    "MYSQL_DATABASE": "database",
    "MYSQL_CHARSET": "charset",
}

# 兼容旧配置里的键名
KEY_ALIASES = {
    "db": "database",
    "username": "user",
}


class DatabaseSettings(BaseModel):
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = ""
    charset: str = "utf8mb4"
    connect_timeout: int = 10
    autocommit: bool = True
    # True: 出错时记录日志并直接退出进程
    fatal_errors: bool = False


class ServiceSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8899


def _read_yaml(path) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path=CONFIG_PATH) -> DatabaseSettings:
    """读取 database 段, 再叠加环境变量"""
    section = dict(_read_yaml(path).get("database") or {})
    for old, new in KEY_ALIASES.items():
        if old in section:
            section.setdefault(new, section.pop(old))

    for env_key, field in ENV_OVERRIDES.items():
        value = os.getenv(env_key)
        if value is not None:
            section[field] = value

    return DatabaseSettings(**section)


def load_service_config(path=CONFIG_PATH) -> ServiceSettings:
    return ServiceSettings(**(_read_yaml(path).get("service") or {}))
