"""Battle error taxonomy"""

from llm_client import APIKeyError, LLMError


class ErrorCode:
    """Stable machine-readable error codes"""
    BAD_REQUEST = "BAD_REQUEST"
    AUTH_FAILED = "AUTH_FAILED"
    MODEL_ERROR = "MODEL_ERROR"


AUTH_FAILED_MESSAGE = "请在 .env 中配置 GROQ_API_KEY"
AUTH_REJECTED_MESSAGE = "GROQ_API_KEY 无效或无权限，请检查密钥"
MODEL_ERROR_MESSAGE = "AI服务暂时不可用"


class BattleError(Exception):
    """Base exception for rejected battle requests"""

    code = ErrorCode.BAD_REQUEST

    def __init__(self, message: str = "Bad request"):
        super().__init__(message)
        self.message = message


class BadRequestError(BattleError):
    """Raised when required input is missing, before any side effect"""
    pass


class BattleFinishedError(BadRequestError):
    """Raised when a turn is requested on a battle that is already decided"""

    def __init__(self, message: str = "Battle is already finished"):
        super().__init__(message)


def classify_error(e: Exception) -> tuple[str, str]:
    """Map an exception to a public (code, message) pair"""
    if isinstance(e, BattleError):
        return e.code, e.message
    if isinstance(e, APIKeyError):
        # a status code means the provider saw the key and refused it
        if e.status_code is not None:
            return ErrorCode.AUTH_FAILED, AUTH_REJECTED_MESSAGE
        return ErrorCode.AUTH_FAILED, AUTH_FAILED_MESSAGE
    if isinstance(e, LLMError):
        return ErrorCode.MODEL_ERROR, str(e) or MODEL_ERROR_MESSAGE
    return ErrorCode.MODEL_ERROR, MODEL_ERROR_MESSAGE
