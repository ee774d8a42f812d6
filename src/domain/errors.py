"""
Error definitions for the static server.

규칙:
- 조용한 실패 금지 → 설정/리슨 오류는 ServeError로 명시적 실패
- 숨김 경로 → VisibilityViolation (PermissionError, HTTP 403)
- 존재하지 않는 경로 → FileNotFoundError 그대로 (HTTP 404)
"""

import errno
from typing import Any


class ServeError(Exception):
    """
    프로세스 수준에서 복구 불가능한 에러.

    즉시 중단이 필요한 경우에만 사용:
    - 필수 설정(served root) 누락/오류
    - 리슨 소켓 바인드 실패

    Usage:
        raise ConfigurationError("CONFIG_STATIC_ROOT_MISSING", flag="--static")
    """

    def __init__(self, code: str, **context: Any) -> None:
        self.code = code
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"[{self.code}] {ctx_str}" if ctx_str else f"[{self.code}]"

    def to_dict(self) -> dict[str, Any]:
        """로그/JSON 직렬화용."""
        return {
            "code": self.code,
            **self.context,
        }


class ConfigurationError(ServeError):
    """시작 파라미터 누락/오류. 리스너 바인드 전에 발생."""

    pass


class ListenError(ServeError):
    """accept 소켓을 만들 수 없음."""

    pass


class VisibilityViolation(PermissionError):
    """
    요청 경로에 숨김 세그먼트가 포함됨.

    "존재하지만 숨김"과 "없음"을 구분할 수 없도록
    대상의 존재 여부와 무관하게 같은 에러를 낸다.
    """

    def __init__(self, path: str, marker: str = ".") -> None:
        self.path = path
        self.marker = marker
        super().__init__(errno.EACCES, "hidden path segment", path)


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCodes:
    """에러 코드 상수."""

    # === Configuration ===
    CONFIG_STATIC_ROOT_MISSING = "CONFIG_STATIC_ROOT_MISSING"
    CONFIG_STATIC_ROOT_NOT_DIR = "CONFIG_STATIC_ROOT_NOT_DIR"
    CONFIG_INVALID_PORT = "CONFIG_INVALID_PORT"
    CONFIG_INVALID_MARKER = "CONFIG_INVALID_MARKER"
    CONFIG_INVALID_BATCH_SIZE = "CONFIG_INVALID_BATCH_SIZE"
    CONFIG_INVALID_VALUE = "CONFIG_INVALID_VALUE"
    CONFIG_FILE_CORRUPT = "CONFIG_FILE_CORRUPT"

    # === Listen ===
    LISTEN_FAILED = "LISTEN_FAILED"
