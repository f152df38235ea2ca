"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、通知列表上限等可配置常量。
推送通道相关配置见 gateway 的 PushConfig。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKMARKET_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKMARKET_DB_PATH",
        str(_get_base_dir() / "sqlite" / "taskmarket.db"),
    )


# 通知列表单次返回上限
NOTIFICATION_LIST_LIMIT: int = int(
    os.environ.get("TASKMARKET_NOTIFICATION_LIST_LIMIT", "100")
)

# 任务标题最大长度
TASK_TITLE_MAX_LENGTH: int = 200
