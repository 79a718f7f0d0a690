"""限流重试策略：以显式状态机描述“指数退避 + 有限次数”的重试流程。

状态：`RetryState(attempt, next_delay)`；
迁移：失败被判定为限流且仍有剩余次数时，等待 `next_delay` 后进入下一次尝试，延迟翻倍；
终止：成功返回结果；非限流失败立即向上抛出；限流重试耗尽时抛出 `RateLimited`。

所有等待串行执行，同一时刻最多只有一次请求在途。
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ai_deck.common.errors import RateLimited
from ai_deck.common.utils import get_logger

logger = get_logger(__name__)


def is_rate_limited(error: BaseException) -> bool:
    """判断异常是否为限流信号（HTTP 429 或 RESOURCE_EXHAUSTED）。"""
    for attr in ("status_code", "code", "status"):
        if getattr(error, attr, None) == 429:
            return True
    response = getattr(error, "response", None)
    if response is not None and getattr(response, "status_code", None) == 429:
        return True
    message = str(error)
    return "429" in message or "RESOURCE_EXHAUSTED" in message


@dataclass(frozen=True)
class RetryState:
    attempt: int
    next_delay: float


@dataclass(frozen=True)
class RetryPolicy:
    """限流重试策略：默认最多重试 3 次，延迟 2s、4s、8s。"""
    max_retries: int = 3
    initial_delay: float = 2.0
    multiplier: float = 2.0

    def initial_state(self) -> RetryState:
        return RetryState(attempt=1, next_delay=self.initial_delay)

    def next_state(self, state: RetryState, error: BaseException) -> Optional[RetryState]:
        """返回下一状态；不可重试或次数耗尽时返回 `None`。"""
        if not is_rate_limited(error):
            return None
        if state.attempt > self.max_retries:
            return None
        return RetryState(attempt=state.attempt + 1, next_delay=state.next_delay * self.multiplier)

    async def call(
        self,
        fn: Callable[[], Awaitable[Any]],
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> Any:
        """执行 `fn`，按策略处理限流重试。"""
        state = self.initial_state()
        while True:
            try:
                return await fn()
            except Exception as e:
                following = self.next_state(state, e)
                if following is None:
                    if is_rate_limited(e):
                        logger.error(f"Rate limit persisted after {self.max_retries} retries: {e}")
                        raise RateLimited(
                            "Provider rate limit persisted after retries",
                            context={"attempts": state.attempt},
                        ) from e
                    raise
                remaining = self.max_retries - state.attempt + 1
                logger.warning(
                    f"Rate limit hit. Retrying in {state.next_delay:g}s... ({remaining} attempts left)"
                )
                await sleep(state.next_delay)
                state = following
