# --- START OF FILE core/statement.py ---
import logging
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import pymysql
import pymysql.cursors
from pymysql.constants import ER

from core.errors import BindError, ExecuteError, PrepareError

logger = logging.getLogger(__name__)

# PyMySQL 使用 format 风格占位符: %s 是参数, %% 是字面量百分号
_PLACEHOLDER_RE = re.compile(r"%%|%s")


class ParamKind(str, Enum):
    """绑定参数类型标记 (i / d / s / b)"""
    INTEGER = "i"
    FLOAT = "d"
    TEXT = "s"
    BLOB = "b"

    @classmethod
    def of(cls, value: Any) -> "ParamKind":
        # bool 是 int 的子类, 这里单独归为 BLOB
        if isinstance(value, bool):
            return cls.BLOB
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, float):
            return cls.FLOAT
        if isinstance(value, str):
            return cls.TEXT
        return cls.BLOB


def infer_param_types(params: Sequence[Any]) -> str:
    """按顺序推断每个参数的类型标记, 例如 [1, "active", 3.5] -> "isd" """
    return "".join(ParamKind.of(p).value for p in params)


def count_placeholders(sql: str) -> int:
    return sum(1 for m in _PLACEHOLDER_RE.finditer(sql) if m.group() == "%s")


def _errno(exc: Exception) -> Optional[int]:
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return None


def _driver_text(exc: Exception) -> str:
    if len(exc.args) >= 2:
        return str(exc.args[1])
    return str(exc)


class PreparedStatement:
    """
    单次查询的语句对象: prepare -> bind -> execute, 然后读取结果
    不做缓存, 每次 query 调用都会新建一个
    """

    def __init__(self, cursor, sql: str):
        self.sql = sql
        self.params: tuple = ()
        self.types = ""
        self.executed = False
        self._cursor = cursor

    @classmethod
    def prepare(cls, connection, sql: str) -> "PreparedStatement":
        if not sql or not sql.strip():
            raise PrepareError("query is empty")
        if connection is None or not connection.open:
            raise PrepareError("connection is not open")
        try:
            cursor = connection.cursor(pymysql.cursors.DictCursor)
        except pymysql.MySQLError as e:
            raise PrepareError(_driver_text(e), _errno(e)) from e
        return cls(cursor, sql)

    def bind(self, params: Sequence[Any]) -> "PreparedStatement":
        params = tuple(params)
        expected = count_placeholders(self.sql)
        if len(params) != expected:
            raise BindError(
                f"statement expects {expected} parameter(s), {len(params)} given"
            )
        self.params = params
        self.types = infer_param_types(params)
        return self

    def execute(self) -> "PreparedStatement":
        # 没有绑定参数时不做 % 格式化, 与驱动行为一致
        args = self.params if self.params else None
        logger.debug("Executing [%s] types=%r", self.sql, self.types)
        try:
            self._cursor.execute(self.sql, args)
        except pymysql.MySQLError as e:
            errno = _errno(e)
            # 文本协议下语法错误在执行时才返回, 归为 prepare 阶段
            if errno == ER.PARSE_ERROR:
                raise PrepareError(_driver_text(e), errno) from e
            raise ExecuteError(_driver_text(e), errno) from e
        except (TypeError, ValueError) as e:
            # 占位符格式与参数不匹配时驱动在格式化阶段报错
            raise BindError(str(e)) from e
        self.executed = True
        return self

    # --- 结果读取 ---

    def fetch_all(self) -> List[Dict[str, Any]]:
        rows = self._cursor.fetchall()
        return list(rows) if rows else []

    def fetch_one(self) -> Optional[Dict[str, Any]]:
        return self._cursor.fetchone()

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def lastrowid(self) -> Optional[int]:
        return self._cursor.lastrowid

    def close(self):
        self._cursor.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
