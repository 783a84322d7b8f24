"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
便于在服务层统一捕获，并以一条描述性错误返回给调用方。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 generation、slot 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """配置缺失或为空（如搜索 API 地址/密钥），立即报告，不重试。"""


class ValidationError(BusinessError):
    """参数校验失败，例如输入文本为空。"""


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """第三方 API 返回非 2xx 状态时抛出。"""


class DecodeError(BusinessError):
    """响应体格式不符合预期。"""


class EmptyResponseError(BusinessError):
    """模型未返回任何消息。"""


class SourceIsEnglishError(BusinessError):
    """源文本已是英文，无需翻译。"""


class RequestCancelled(BusinessError):
    """请求被更新的请求取代或被显式取消。

    与 NetworkError 不同，它不是传输错误，调用方通常应静默处理。
    """

    def __init__(self, message: str = "Cancelled", **extra):
        super().__init__(code="CANCELLED", message=message, http_status=499, **extra)
