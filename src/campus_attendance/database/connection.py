from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from mysql.connector import pooling

_POOL_NAME = "campus_attendance"


@dataclass(frozen=True)
class DBConfig:
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "campus_attendance"
    pool_size: int = 5

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DBConfig":
        defaults = cls()
        return cls(
            host=str(raw.get("host") or defaults.host),
            port=int(raw.get("port") or defaults.port),
            user=str(raw.get("user") or defaults.user),
            password=str(raw.get("password") or ""),
            database=str(raw.get("database") or defaults.database),
            pool_size=int(raw.get("pool_size") or defaults.pool_size),
        )

    def connect_kwargs(self, *, with_database: bool = True) -> dict:
        kwargs = {"host": self.host, "port": self.port, "user": self.user, "password": self.password}
        if with_database:
            kwargs["database"] = self.database
        return kwargs


class DatabaseConnection:
    """Process-wide connection factory over a mysql-connector pool.

    The pool is opened lazily, so building the app (or a container in tests)
    never needs a reachable server.
    """

    _instance: Optional["DatabaseConnection"] = None
    _instance_lock = threading.Lock()

    def __init__(self, config: DBConfig):
        self.config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._pool_lock = threading.Lock()

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls(config)
            return cls._instance

    def _pool_or_create(self) -> pooling.MySQLConnectionPool:
        if self._pool is not None:
            return self._pool
        with self._pool_lock:
            if self._pool is None:
                self._pool = pooling.MySQLConnectionPool(
                    pool_name=_POOL_NAME,
                    pool_size=self.config.pool_size,
                    pool_reset_session=True,
                    charset="utf8mb4",
                    collation="utf8mb4_unicode_ci",
                    **self.config.connect_kwargs(),
                )
        return self._pool

    def connect(self):
        return self._pool_or_create().get_connection()
