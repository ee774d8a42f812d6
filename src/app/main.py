"""
FastAPI 애플리케이션 진입점.

실행:
- CLI: uv run dotless-serve --static ./static
- uvicorn: DOTLESS_STATIC_ROOT=./static uv run uvicorn --factory src.app.main:create_app_from_env
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import cast

from fastapi import FastAPI

from src.app.config import build_config, config_from_env, load_config, validate_config
from src.app.middleware import RequestLoggerMiddleware
from src.app.static import FilteredStaticFiles
from src.core.store import DirectoryStore
from src.core.visibility import VisibilityFilter
from src.domain.schemas import ServerConfig

logger = logging.getLogger(__name__)


# =============================================================================
# App Factory
# =============================================================================


def create_app(config: ServerConfig) -> FastAPI:
    """
    설정으로 앱 구성.

    구성: RequestLoggerMiddleware → FilteredStaticFiles("/") → VisibilityFilter → DirectoryStore

    Raises:
        ConfigurationError: served root 누락/오류 (라우트 마운트 전)
    """
    config = validate_config(config)
    static_root = cast(Path, config.static_root)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        애플리케이션 생명주기.

        시작 시: 설정 로그
        종료 시: 요청 간 공유 리소스 없음
        """
        logger.debug(f"Config: {config.to_dict()}")
        yield
        logger.info("Server stopped")

    app = FastAPI(
        title="Dotless Static Server",
        description="숨김 세그먼트를 차단하는 정적 파일 서버",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config

    filesystem = VisibilityFilter(
        DirectoryStore(static_root), hidden_marker=config.hidden_marker
    )
    app.mount(
        "/",
        FilteredStaticFiles(
            directory=static_root,
            readdir_batch_size=config.readdir_batch_size,
            filesystem=filesystem,
        ),
        name="static",
    )
    app.add_middleware(RequestLoggerMiddleware, level=logging.DEBUG)
    logger.debug("RequestLoggerMiddleware set up.")

    return app


def create_app_from_env() -> FastAPI:
    """uvicorn --factory용: default.yaml + DOTLESS_* 환경 변수."""
    config = build_config(load_config(), config_from_env())
    return create_app(config)


# =============================================================================
# CLI Entry Point
# =============================================================================

if __name__ == "__main__":
    from src.app.cli import main

    raise SystemExit(main())
