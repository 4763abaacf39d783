"""带上限的指数退避策略。"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """尝试次数与退避时间表。

    第 n 次尝试（n >= 2）之前等待 min(base * 2^(n-2), cap) 毫秒。
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000

    def delay_ms(self, attempt: int) -> int:
        if attempt < 2:
            return 0
        return min(self.base_delay_ms * 2 ** (attempt - 2), self.max_delay_ms)

    def delay_seconds(self, attempt: int) -> float:
        return self.delay_ms(attempt) / 1000.0

    def should_retry(self, attempt: int, retryable: bool) -> bool:
        """attempt 为刚刚失败的尝试序号。"""

        return retryable and attempt < self.max_attempts

    @classmethod
    def from_settings(cls, cfg) -> "RetryPolicy":
        return cls(
            max_attempts=cfg.max_attempts,
            base_delay_ms=cfg.base_delay_ms,
            max_delay_ms=cfg.max_delay_ms,
        )
