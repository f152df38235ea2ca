"""packages/core 测试配置 -- 核心层 fixture"""

from datetime import UTC, datetime

import pytest
from taskmarket.core.models import Task


@pytest.fixture
def make_task():
    """Task 工厂：默认属于 marketplace 的 Lawn Care 分类与客户 C"""

    def _make(task_id: str = "01JTASK0000000000000000001", **overrides) -> Task:
        now = datetime.now(UTC)
        fields = {
            "task_id": task_id,
            "client_id": "user-c",
            "category_id": "cat-lawn",
            "title": "Mow the front lawn",
            "description": "About 200 square meters",
            "location": "12 Elm Street",
            "budget": 60.0,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return Task(**fields)

    return _make
