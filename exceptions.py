"""
自定义异常类模块
书籍导入流水线的错误分类：配置、输入、传输（LLM调用）和处理四类
"""


class BookImportError(Exception):
    """基础异常类，所有项目相关的异常都应继承此类"""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class ConfigurationError(BookImportError):
    """配置相关错误"""

    pass


class APIKeyError(ConfigurationError):
    """API密钥缺失、无效或无权限

    属于配置问题：重试没有意义，需要用户修改 .env。
    """

    def __init__(self, message: str, provider: str | None = None, details: str | None = None):
        self.provider = provider
        super().__init__(message, details=details)


class FileValidationError(BookImportError):
    """手稿文件或输出目录不合法"""

    pass


class InputValidationError(BookImportError):
    """输入文本不符合要求（为空或过短）"""

    def __init__(self, message: str, text_length: int = 0, min_chars: int = 0):
        self.text_length = text_length
        self.min_chars = min_chars
        super().__init__(message)


class EncodingError(BookImportError):
    """文本无法解码或无法计算token"""

    def __init__(self, message: str, encodings: list[str] | None = None):
        self.encodings = list(encodings or [])
        super().__init__(message)


class ProcessingError(BookImportError):
    """流水线中止

    ``phase`` 记录出错时所处的阶段（ProgressPhase 的取值），输入在进入流水线前就被拒绝时为 None。
    """

    def __init__(self, message: str, phase: str | None = None, details: str | None = None):
        self.phase = phase
        super().__init__(message, details=details)


class APIError(BookImportError):
    """LLM调用失败（传输层错误，整个流水线中止）"""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        is_retryable: bool = False,
        chunk_id: int | None = None,
    ):
        self.error_code = error_code
        self.is_retryable = is_retryable
        self.chunk_id = chunk_id
        super().__init__(message)


class RateLimitError(APIError):
    """API速率限制错误，``retry_after`` 为服务端建议的等待秒数"""

    def __init__(self, message: str, retry_after: int | None = None):
        self.retry_after = retry_after
        super().__init__(message, error_code="429", is_retryable=True)
