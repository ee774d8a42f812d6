#!/usr/bin/env python3
"""
dotless-serve - 숨김 세그먼트 차단 정적 파일 서버 실행

served root 아래 파일/디렉터리를 "/"에 마운트하여 제공하되
이름이 마커(기본 ".")로 시작하는 세그먼트가 있는 경로는 403.

사용법:
    # 기본 (포트 9200)
    uv run dotless-serve --static ./static

    # 요청 로그까지 출력
    uv run dotless-serve --static ./static --port 8080 -v

    # yaml 설정 사용
    uv run dotless-serve --config server.yaml

종료 코드:
    0: 정상 종료
    1: 설정 오류(served root 누락 등) 또는 리슨 실패
"""

import argparse
import logging
import socket
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from src.app.config import build_config, config_from_env, load_config
from src.app.main import create_app
from src.domain.constants import LOG_DATEFMT, LOG_FORMAT
from src.domain.errors import ConfigurationError, ErrorCodes, ListenError
from src.domain.schemas import ServerConfig

logger = logging.getLogger(__name__)


def configure_logging(verbosity: int) -> None:
    """verbosity 0 → INFO, 1 이상 → DEBUG (요청 로그 포함)."""
    level = logging.DEBUG if verbosity >= 1 else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    logging.getLogger().setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dotless-serve",
        description="숨김 세그먼트 차단 정적 파일 서버",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--static",
        dest="static_root",
        type=str,
        help="정적 파일 경로 (필수, 예: --static=`pwd`)",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="리슨 포트 (기본: 9200)",
    )
    parser.add_argument(
        "--host",
        type=str,
        help="리슨 주소 (기본: 0.0.0.0)",
    )
    parser.add_argument(
        "--hidden-marker",
        dest="hidden_marker",
        type=str,
        help='숨김 세그먼트 마커 문자 (기본: ".")',
    )
    parser.add_argument(
        "--readdir-batch-size",
        dest="readdir_batch_size",
        type=int,
        help="디렉터리 목록 readdir 페이지 크기 (기본: 100)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="yaml 설정 파일 경로 (기본: default.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        dest="verbosity",
        action="count",
        default=None,
        help="로그 상세도 (-v: 요청 로그)",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> ServerConfig:
    """yaml → 환경 변수 → CLI 순으로 병합."""
    config_path = Path(args.config) if args.config else None
    cli_values = {
        "static_root": args.static_root,
        "port": args.port,
        "host": args.host,
        "hidden_marker": args.hidden_marker,
        "readdir_batch_size": args.readdir_batch_size,
        "verbosity": args.verbosity,
    }
    return build_config(load_config(config_path), config_from_env(), cli_values)


def bind_socket(host: str, port: int) -> socket.socket:
    """
    리슨 소켓 바인드.

    Raises:
        ListenError: 주소 사용 중, 권한 없음 등
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as e:
        sock.close()
        raise ListenError(ErrorCodes.LISTEN_FAILED, host=host, port=port, error=str(e)) from e
    sock.set_inheritable(True)
    return sock


def serve(app: FastAPI, sock: socket.socket, config: ServerConfig) -> int:
    """accept 루프 실행 (프로세스 종료 시까지)."""
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            log_config=None,
            access_log=False,
            log_level="debug" if config.verbosity >= 2 else "info",
        )
    )
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()

    if not server.started:
        logger.error(f"ListenAndServe error: server failed to start on port {config.port}")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.verbosity or 0)

    try:
        config = resolve_config(args)
        configure_logging(config.verbosity)
        app = create_app(config)
    except ConfigurationError as e:
        logger.critical(f"Bad flags: {e}")
        return 1

    try:
        sock = bind_socket(config.host, config.port)
    except ListenError as e:
        logger.error(f"ListenAndServe error: {e}")
        return 1

    port = sock.getsockname()[1]
    logger.info(f"start listening at port {port}, static path: {config.static_root}")

    return serve(app, sock, config)


if __name__ == "__main__":
    raise SystemExit(main())
