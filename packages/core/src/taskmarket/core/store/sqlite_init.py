"""SQLite 数据库初始化

PRAGMA 配置 + 表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# 用户目录（由外部认证子系统写入）
_USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id             TEXT PRIMARY KEY,
    username            TEXT NOT NULL UNIQUE,
    first_name          TEXT NOT NULL DEFAULT '',
    last_name           TEXT NOT NULL DEFAULT '',
    is_service_provider INTEGER NOT NULL DEFAULT 0,
    created_at          TEXT NOT NULL
);
"""

_SESSIONS_DDL = """
CREATE TABLE IF NOT EXISTS sessions (
    token       TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    created_at  TEXT NOT NULL,

    FOREIGN KEY (user_id) REFERENCES users(user_id)
);
"""

_CATEGORIES_DDL = """
CREATE TABLE IF NOT EXISTS service_categories (
    category_id  TEXT PRIMARY KEY,
    name         TEXT NOT NULL UNIQUE,
    description  TEXT NOT NULL DEFAULT ''
);
"""

_PROVIDERS_DDL = """
CREATE TABLE IF NOT EXISTS service_providers (
    provider_id     TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL UNIQUE,
    category_id     TEXT NOT NULL,
    hourly_rate     REAL NOT NULL,
    bio             TEXT NOT NULL DEFAULT '',
    rating          REAL,
    completed_jobs  INTEGER NOT NULL DEFAULT 0,

    FOREIGN KEY (user_id) REFERENCES users(user_id),
    FOREIGN KEY (category_id) REFERENCES service_categories(category_id)
);
"""

# tasks 表：accepted_by_id 仅由条件更新写入一次
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id         TEXT PRIMARY KEY,
    client_id       TEXT NOT NULL,
    category_id     TEXT NOT NULL,
    title           TEXT NOT NULL,
    description     TEXT NOT NULL,
    location        TEXT NOT NULL,
    budget          REAL,
    status          TEXT NOT NULL DEFAULT 'open',
    accepted_by_id  TEXT,
    accepted_at     TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    completed_at    TEXT,
    cancelled_at    TEXT,

    FOREIGN KEY (client_id) REFERENCES users(user_id),
    FOREIGN KEY (category_id) REFERENCES service_categories(category_id),
    FOREIGN KEY (accepted_by_id) REFERENCES service_providers(provider_id)
);
"""

_SERVICE_REQUESTS_DDL = """
CREATE TABLE IF NOT EXISTS service_requests (
    request_id   TEXT PRIMARY KEY,
    task_id      TEXT,
    provider_id  TEXT NOT NULL,
    client_id    TEXT NOT NULL,
    status       TEXT NOT NULL DEFAULT 'pending',
    message      TEXT NOT NULL DEFAULT '',
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL,

    FOREIGN KEY (task_id) REFERENCES tasks(task_id),
    FOREIGN KEY (provider_id) REFERENCES service_providers(provider_id),
    FOREIGN KEY (client_id) REFERENCES users(user_id)
);
"""

# notifications 表：每个接收者一行
_NOTIFICATIONS_DDL = """
CREATE TABLE IF NOT EXISTS notifications (
    notification_id  TEXT PRIMARY KEY,
    user_id          TEXT NOT NULL,
    type             TEXT NOT NULL,
    title            TEXT NOT NULL,
    message          TEXT NOT NULL,
    data             TEXT NOT NULL DEFAULT '{}',
    read             INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT NOT NULL,

    FOREIGN KEY (user_id) REFERENCES users(user_id)
);
"""

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_providers_category ON service_providers(category_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_category ON tasks(category_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_client ON tasks(client_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_requests_provider ON service_requests(provider_id);",
    "CREATE INDEX IF NOT EXISTS idx_requests_client ON service_requests(client_id);",
    (
        "CREATE INDEX IF NOT EXISTS idx_notifications_user "
        "ON notifications(user_id, created_at DESC);"
    ),
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    for ddl in (
        _USERS_DDL,
        _SESSIONS_DDL,
        _CATEGORIES_DDL,
        _PROVIDERS_DDL,
        _TASKS_DDL,
        _SERVICE_REQUESTS_DDL,
        _NOTIFICATIONS_DDL,
    ):
        await conn.execute(ddl)

    for idx_sql in _INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
