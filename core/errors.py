# --- START OF FILE core/errors.py ---
import logging

logger = logging.getLogger(__name__)

# 阶段名 -> 诊断信息前缀
STAGE_LABELS = {
    "connect": "Connection",
    "prepare": "Prepare statement",
    "bind": "Bind parameters",
    "execute": "Query execution",
}


class DatabaseError(Exception):
    """
    数据库操作异常基类
    stage: 出错阶段 (connect / prepare / bind / execute)
    driver_message: 底层驱动 (PyMySQL) 返回的错误文本
    """
    stage = "execute"

    def __init__(self, driver_message, errno=None):
        self.driver_message = str(driver_message)
        self.errno = errno
        super().__init__(self.driver_message)

    def __str__(self):
        label = STAGE_LABELS.get(self.stage, self.stage)
        return f"{label} failed: {self.driver_message}"


class DatabaseConnectionError(DatabaseError):
    stage = "connect"


class PrepareError(DatabaseError):
    stage = "prepare"


class BindError(DatabaseError):
    stage = "bind"


class ExecuteError(DatabaseError):
    stage = "execute"


def fail(error: DatabaseError, fatal: bool = False):
    """
    统一的错误出口：先记录日志，再决定抛出异常还是直接终止进程
    fatal=True 时保持 "出错即退出" 的老行为
    """
    logger.error(str(error))
    if fatal:
        raise SystemExit(1) from error
    raise error
