"""
Request logging middleware.

모든 HTTP 요청의 target(raw path + query)을 기록한 뒤 그대로 위임.
- 요청/응답 수정 없음, 단락(short-circuit) 없음
- 하위 앱 예외를 잡지 않음
- 요청당 동기 로그 한 줄
"""

import logging

from starlette.types import ASGIApp, Receive, Scope, Send

_default_logger = logging.getLogger(__name__)


def request_target(scope: Scope) -> str:
    """
    ASGI scope → 요청 target 문자열 (예: "/public/app.js?v=2").

    raw_path가 있으면 클라이언트가 보낸 그대로(퍼센트 인코딩 유지) 사용.
    """
    raw_path = scope.get("raw_path")
    if raw_path:
        target = raw_path.decode("latin-1")
    else:
        target = scope.get("root_path", "") + scope.get("path", "")

    query = scope.get("query_string", b"")
    if query and "?" not in target:
        target = f"{target}?{query.decode('latin-1')}"
    return target


class RequestLoggerMiddleware:
    """
    ASGI 미들웨어: 요청 target 로그 후 하위 앱 호출.

    Args:
        app: 감쌀 ASGI 앱
        logger: 기록할 logger (기본: 이 모듈 logger)
        level: 로그 레벨 (기본: DEBUG)
    """

    def __init__(
        self,
        app: ASGIApp,
        logger: logging.Logger | None = None,
        level: int = logging.DEBUG,
    ) -> None:
        self.app = app
        self.logger = logger or _default_logger
        self.level = level

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            self.logger.log(self.level, f"ServeHTTP(request={request_target(scope)!r})")
        await self.app(scope, receive, send)
