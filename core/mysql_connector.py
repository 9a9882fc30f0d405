# --- START OF FILE core/mysql_connector.py ---
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import pymysql
import pymysql.cursors
from pymysql.charset import charset_by_name

from core.config import DatabaseSettings, load_settings
from core.errors import DatabaseConnectionError, DatabaseError, ExecuteError, fail
from core.statement import PreparedStatement, _driver_text, _errno

logger = logging.getLogger(__name__)

_CREATE_KEY = object()


def _known_charset(name: str) -> bool:
    # 旧版 PyMySQL 对未知字符集抛 KeyError, 新版返回 None
    try:
        return charset_by_name(name) is not None
    except KeyError:
        return False


class ConnectionManager:
    """
    进程内唯一的 MySQL 连接 (单例)
    - get_instance: 首次调用时建立连接, 之后直接返回同一个实例 (新参数被忽略)
    - close: 关闭连接并清空单例, 之后再 get_instance 会重新建连
    """

    _instance: Optional["ConnectionManager"] = None
    _lock = threading.Lock()

    def __init__(self, host, username, password, database, charset="utf8mb4",
                 port=3306, connect_timeout=10, autocommit=True, fatal_errors=False,
                 _key=None):
        # 只能通过 get_instance 创建, 保证进程内只有一个连接
        if _key is not _CREATE_KEY:
            raise TypeError("ConnectionManager must be acquired via ConnectionManager.get_instance()")

        self._host = host
        self._username = username
        self._password = password
        self._database = database
        self._charset = charset
        self._port = port
        self._connect_timeout = connect_timeout
        self._autocommit = autocommit
        self.fatal_errors = fatal_errors

        self._connection = None

        self._connect()

    # ==========================================
    # 1. 单例入口
    # ==========================================

    @classmethod
    def get_instance(cls, host, username, password, database, charset="utf8mb4",
                     **options) -> "ConnectionManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls(host, username, password, database, charset,
                                    _key=_CREATE_KEY, **options)
            return cls._instance

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> "ConnectionManager":
        return cls.get_instance(
            settings.host,
            settings.user,
            settings.password,
            settings.database,
            settings.charset,
            port=settings.port,
            connect_timeout=settings.connect_timeout,
            autocommit=settings.autocommit,
            fatal_errors=settings.fatal_errors,
        )

    @classmethod
    def current(cls) -> Optional["ConnectionManager"]:
        return cls._instance

    def _connect(self):
        if not _known_charset(self._charset):
            fail(DatabaseConnectionError(f"Error loading character set {self._charset}"),
                 self.fatal_errors)

        logger.info("Connecting to MySQL %s:%s/%s", self._host, self._port, self._database)
        try:
            self._connection = pymysql.connect(
                host=self._host,
                port=self._port,
                user=self._username,
                password=self._password,
                database=self._database,
                charset=self._charset,
                connect_timeout=self._connect_timeout,
                autocommit=self._autocommit,
                cursorclass=pymysql.cursors.DictCursor,
            )
        except pymysql.MySQLError as e:
            fail(DatabaseConnectionError(_driver_text(e), _errno(e)), self.fatal_errors)

    # ==========================================
    # 2. 只读属性
    # ==========================================

    @property
    def host(self):
        return self._host

    @property
    def username(self):
        return self._username

    @property
    def password(self):
        return self._password

    @property
    def database(self):
        return self._database

    @property
    def charset(self):
        return self._charset

    @property
    def is_open(self) -> bool:
        return self._connection is not None and self._connection.open

    # ==========================================
    # 3. 查询
    # ==========================================

    def query(self, sql: str, params: Sequence[Any] = ()) -> PreparedStatement:
        """
        预处理 + 绑定参数 + 执行, 返回已执行的语句对象
        参数类型按值推断: int -> i, float -> d, str -> s, 其他 -> b
        """
        stmt = None
        try:
            stmt = PreparedStatement.prepare(self._connection, sql)
            if params:
                stmt.bind(params)
            stmt.execute()
        except DatabaseError as e:
            if stmt is not None:
                stmt.close()
            fail(e, self.fatal_errors)
        return stmt

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        with self.query(sql, params) as stmt:
            return stmt.fetch_all()

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        with self.query(sql, params) as stmt:
            return stmt.fetch_one()

    def last_insert_id(self) -> int:
        """连接上最近一次语句的自增 ID, 与驱动一致: 非 INSERT 语句之后为 0"""
        if not self.is_open:
            return 0
        return self._connection.insert_id()

    # ==========================================
    # 4. 事务 (直接透传, 不自动回滚)
    # ==========================================

    def _call(self, action: str, method: str):
        if not self.is_open:
            fail(ExecuteError(f"{action}: connection is not open"), self.fatal_errors)
        try:
            getattr(self._connection, method)()
        except pymysql.MySQLError as e:
            fail(ExecuteError(f"{action}: {_driver_text(e)}", _errno(e)), self.fatal_errors)

    def begin_transaction(self):
        self._call("begin", "begin")

    def commit(self):
        self._call("commit", "commit")

    def rollback(self):
        self._call("rollback", "rollback")

    @contextmanager
    def transaction(self):
        """with db.transaction(): ...  正常结束提交, 出现异常回滚后继续抛出"""
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    # ==========================================
    # 5. 关闭
    # ==========================================

    def close(self):
        with ConnectionManager._lock:
            if self._connection is not None and self._connection.open:
                self._connection.close()
                logger.info("MySQL connection to %s closed", self._host)
            self._connection = None
            if ConnectionManager._instance is self:
                ConnectionManager._instance = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def get_db() -> ConnectionManager:
    """FastAPI 依赖: 返回按配置文件建立的单例连接"""
    db = ConnectionManager.current()
    if db is None:
        db = ConnectionManager.from_settings(load_settings())
    return db
