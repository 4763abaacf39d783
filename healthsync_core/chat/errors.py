"""聊天失败分类。

任何非成功结果（传输层异常，或带状态码的非 2xx 响应）都在这里
映射为 AppError：

| 条件                 | kind         | 可重试 |
|----------------------|--------------|--------|
| 连接失败/超时        | network      | 是     |
| HTTP 401 / 403       | auth         | 否     |
| HTTP 429             | rate-limit   | 是     |
| HTTP 400             | bad-request  | 否     |
| HTTP >= 500          | server-error | 是     |
| 其他                 | unknown      | 是     |
"""

from dataclasses import dataclass
from typing import Dict, Optional

from healthsync_core.domain.exceptions import AppError, ErrorKind


USER_MESSAGES: Dict[ErrorKind, str] = {
    "network": "Unable to reach the assistant. Please check your connection and try again.",
    "auth": "The assistant is not available right now due to an authorization problem. Please contact support.",
    "rate-limit": "Too many requests right now. Please wait a moment and try again.",
    "bad-request": "I couldn't process that message. Please try rephrasing it.",
    "server-error": "The assistant is having trouble right now. Please try again shortly.",
    "unknown": "I'm experiencing technical difficulties. Please try again in a moment.",
}

RETRYABLE: Dict[ErrorKind, bool] = {
    "network": True,
    "auth": False,
    "rate-limit": True,
    "bad-request": False,
    "server-error": True,
    "unknown": True,
}


def make_error(kind: ErrorKind, status_code: Optional[int] = None, details: Optional[str] = None) -> AppError:
    return AppError(
        kind=kind,
        message=USER_MESSAGES[kind],
        retryable=RETRYABLE[kind],
        status_code=status_code,
        details=details,
    )


def kind_for_status(status_code: int) -> ErrorKind:
    if status_code in (401, 403):
        return "auth"
    if status_code == 429:
        return "rate-limit"
    if status_code == 400:
        return "bad-request"
    if status_code >= 500:
        return "server-error"
    return "unknown"


def classify_status(status_code: int, details: Optional[str] = None) -> AppError:
    return make_error(kind_for_status(status_code), status_code=status_code, details=details)


def classify_transport_error(exc: BaseException) -> AppError:
    """连接失败与超时统一视为 network。"""

    return make_error("network", details=f"{type(exc).__name__}: {exc}")


def malformed_reply_error(details: str = "reply content missing") -> AppError:
    return make_error("unknown", details=details)


@dataclass(frozen=True)
class ErrorBanner:
    """错误横幅的展示参数。

    auth 与 bad-request 需要用户处理，横幅常驻；其余可关闭。
    """

    message: str
    kind: ErrorKind
    dismissable: bool
    retry_available: bool

    @classmethod
    def from_error(cls, err: AppError) -> "ErrorBanner":
        return cls(
            message=err.message,
            kind=err.kind,
            dismissable=err.kind not in ("auth", "bad-request"),
            retry_available=err.retryable,
        )
