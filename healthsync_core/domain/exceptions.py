"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 API 层或 UI 层做统一捕获与用户提示。
"""

from typing import Literal, Optional


# 聊天失败的分类（与前端错误横幅一一对应）
ErrorKind = Literal["network", "auth", "rate-limit", "bad-request", "server-error", "unknown"]


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "INVALID_INPUT"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class AppError(BusinessError):
    """一次聊天请求失败后的分类结果。

    - kind: 失败类别，决定用户提示与是否重试。
    - retryable: 是否允许自动/手动重试同一请求。
    - status_code: 端点返回的 HTTP 状态码（传输层失败时为 None）。
    - details: 诊断信息（服务端 error.message、异常文本等），不直接展示给用户。
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        retryable: bool,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ):
        super().__init__(
            code=kind.upper().replace("-", "_"),
            message=message,
            http_status=status_code or 503,
        )
        self.kind = kind
        self.retryable = retryable
        self.status_code = status_code
        self.details = details

    def __repr__(self) -> str:
        return (
            f"AppError(kind={self.kind!r}, retryable={self.retryable}, "
            f"status_code={self.status_code!r})"
        )


class ValidationError(BusinessError):
    """参数或输入校验失败，不触发任何网络请求。"""


class LocationError(BusinessError):
    """定位失败；extra["status"] 为 denied / unavailable / timeout。"""


class PlacesError(BusinessError):
    """Places API 返回非 OK 状态或网络失败。"""
