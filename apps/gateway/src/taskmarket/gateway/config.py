"""PushConfig -- 推送通道配置加载

从环境变量加载心跳间隔与 SSE 队列上限，非法值记录告警并回退默认值。
"""

import os

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


class PushConfig(BaseModel):
    """推送通道配置

    环境变量:
        TASKMARKET_PUSH_HEARTBEAT_INTERVAL: 心跳间隔（秒，默认 30）
        TASKMARKET_PUSH_QUEUE_MAXSIZE: SSE 连接的发送队列上限（默认 100）
        TASKMARKET_PUSH_SEND_TIMEOUT: 单连接写入 / 探测超时（秒，默认 5）
    """

    heartbeat_interval_s: float = Field(
        default=30.0,
        gt=0,
        description="心跳探测间隔（秒）",
    )
    queue_maxsize: int = Field(
        default=100,
        ge=1,
        description="SSE 发送队列上限，满队列视为不可写",
    )
    send_timeout_s: float = Field(
        default=5.0,
        gt=0,
        description="单连接写入 / 探测 / 关闭超时（秒），超时按写入失败移除",
    )


def _read_env(name: str, cast, fallback):
    val = os.environ.get(name)
    if not val:
        return None
    try:
        parsed = cast(val)
    except ValueError:
        parsed = None
    if parsed is None or parsed <= 0:
        log.warning(
            "invalid_push_config",
            env_var=name,
            value=val,
            fallback=fallback,
        )
        return None
    return parsed


def load_push_config() -> PushConfig:
    """从环境变量加载推送配置

    环境变量映射:
        TASKMARKET_PUSH_HEARTBEAT_INTERVAL -> heartbeat_interval_s (默认 30)
        TASKMARKET_PUSH_QUEUE_MAXSIZE -> queue_maxsize (默认 100)
        TASKMARKET_PUSH_SEND_TIMEOUT -> send_timeout_s (默认 5)
    """
    kwargs: dict = {}

    interval = _read_env("TASKMARKET_PUSH_HEARTBEAT_INTERVAL", float, 30.0)
    if interval is not None:
        kwargs["heartbeat_interval_s"] = interval

    maxsize = _read_env("TASKMARKET_PUSH_QUEUE_MAXSIZE", int, 100)
    if maxsize is not None:
        kwargs["queue_maxsize"] = maxsize

    send_timeout = _read_env("TASKMARKET_PUSH_SEND_TIMEOUT", float, 5.0)
    if send_timeout is not None:
        kwargs["send_timeout_s"] = send_timeout

    return PushConfig(**kwargs)
