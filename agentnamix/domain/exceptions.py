"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在编排层或 UI 层做统一捕获与用户提示。

传播策略：
- RateLimitError 由 ModelGateway 负责有限次退避重试。
- 工具层错误（ToolExecutionError / NetworkTimeoutError）在执行器中被转换为
  success=False 的工具结果回传给模型，不向上抛出。
- ProviderError / PlanningError / RunFailure 最终表现为运行的 ERROR 状态。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "STORE_READ_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 task_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class NetworkError(BusinessError):
    """网络层错误，例如连接失败。"""


class NetworkTimeoutError(NetworkError):
    """等待远端响应超时（网页抓取、模型调用等）。"""


class ProviderError(BusinessError):
    """模型 Provider 返回不可恢复的错误（非 429 的 4xx/5xx、空响应等）。"""


class RateLimitError(BusinessError):
    """Provider 限流错误（HTTP 429 / quota exhausted），由网关重试。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""


class PlanningError(BusinessError):
    """规划器返回空计划或格式错误的计划。"""


class ToolExecutionError(BusinessError):
    """工具处理器内部错误，会被转换为模型可见的失败结果。"""


class RunFailure(BusinessError):
    """任务执行失败导致整个运行进入 ERROR 状态。"""
