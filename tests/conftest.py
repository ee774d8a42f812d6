"""
Pytest fixtures for the static server tests.

구성:
- MemoryStore: 디스크 없이 VisibilityFilter를 검증하는 메모리 저장소
- served_tree: Scenario A 디렉터리 (index.html, .secret/, public/.env ...)
- client: FastAPI TestClient
- live_server: uvicorn을 백그라운드 스레드로 실행
"""

import errno
import os
import socket
import stat
import threading
import time
from collections.abc import Callable, Generator
from pathlib import Path

import httpx
import pytest
import uvicorn
from fastapi.testclient import TestClient

from src.app.main import create_app
from src.core.store import FileHandle, FileStore, clean_virtual_path
from src.domain.schemas import DirectoryBatch, Entry, ServerConfig

# =============================================================================
# Memory Store
# =============================================================================


def _stat_result(is_dir: bool, size: int, mtime: float = 1_700_000_000.0) -> os.stat_result:
    mode = (stat.S_IFDIR | 0o755) if is_dir else (stat.S_IFREG | 0o644)
    return os.stat_result((mode, 0, 0, 1, 0, 0, size, int(mtime), int(mtime), int(mtime)))


class MemoryHandle(FileHandle):
    """메모리 저장소 핸들. readdir 호출 인자를 store.readdir_calls에 기록."""

    def __init__(self, store: "MemoryStore", name: str, resolved_path: str) -> None:
        self.store = store
        self.name = name
        self.resolved_path = resolved_path
        self._position = 0
        self.closed = False

    @property
    def real_path(self) -> str:
        return ""

    def stat(self) -> os.stat_result:
        if self.is_dir():
            return _stat_result(True, 0)
        return _stat_result(False, len(self.store.files[self.resolved_path]))

    def is_dir(self) -> bool:
        return self.resolved_path in self.store.directories

    def readdir(self, count: int) -> DirectoryBatch:
        self.store.readdir_calls.append(count)
        names = self.store.children(self.resolved_path)
        end = len(names) if count <= 0 else min(self._position + count, len(names))
        page = names[self._position:end]
        self._position = end
        entries = [self.store.entry(self.resolved_path, n) for n in page]
        return DirectoryBatch(entries=entries, exhausted=self._position >= len(names))

    def close(self) -> None:
        self.closed = True
        self.store.closed_handles.append(self.name)


class MemoryStore(FileStore):
    """
    메모리 파일 트리.

    Args:
        files: 가상 경로 → 내용 (상위 디렉터리는 자동 생성, 삽입 순서 = 열거 순서)
        links: 가상 경로 → 대상 가상 경로 (symlink 해석 흉내)
    """

    def __init__(
        self,
        files: dict[str, bytes],
        links: dict[str, str] | None = None,
    ) -> None:
        self.files = {clean_virtual_path(p): data for p, data in files.items()}
        self.links = links or {}
        self.directories: dict[str, list[str]] = {"/": []}
        for path in self.files:
            self._register(path)
        for path in self.links:
            self._register(path)
        self.open_calls: list[str] = []
        self.readdir_calls: list[int] = []
        self.closed_handles: list[str] = []

    def _register(self, path: str) -> None:
        parts = [p for p in path.split("/") if p]
        parent = "/"
        for i, part in enumerate(parts):
            if part not in self.directories[parent]:
                self.directories[parent].append(part)
            current = "/" + "/".join(parts[: i + 1])
            if i < len(parts) - 1:
                self.directories.setdefault(current, [])
            parent = current

    def children(self, directory: str) -> list[str]:
        return self.directories[directory]

    def entry(self, directory: str, name: str) -> Entry:
        path = directory.rstrip("/") + "/" + name
        is_dir = path in self.directories
        size = 0 if is_dir else len(self.files.get(path, b""))
        return Entry(name=name, is_dir=is_dir, size=size, mtime=1_700_000_000.0)

    def open(self, name: str) -> MemoryHandle:
        self.open_calls.append(name)
        virtual = clean_virtual_path(name)
        path = virtual.rstrip("/") or "/"
        path = self.links.get(path, path)
        if path not in self.files and path not in self.directories:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)
        if virtual.endswith("/") and path not in self.directories:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)
        return MemoryHandle(self, name, path)


@pytest.fixture
def memory_store() -> MemoryStore:
    """Scenario A와 같은 구조의 메모리 저장소."""
    return MemoryStore(
        {
            "/index.html": b"<html>home</html>",
            "/.secret/token.txt": b"s3cr3t",
            "/public/app.js": b"console.log(1)",
            "/public/.env": b"KEY=value",
            "/public/style.css": b"body{}",
            "/public/.cache/blob": b"cached",
        }
    )


@pytest.fixture
def memory_store_factory() -> Callable[..., MemoryStore]:
    """임의 구조의 MemoryStore 생성."""
    return MemoryStore


# =============================================================================
# Disk Tree Fixtures
# =============================================================================


def build_served_tree(root: Path) -> Path:
    """
    Scenario A 디렉터리 생성.

    포함:
    - index.html
    - .secret/token.txt
    - public/.env, public/app.js, public/style.css, public/.hidden_dir/x.txt
    - docs/ (index.html 없음 → 목록), docs/.draft.md
    - assets/data.bin (Range 테스트용 1000 bytes)
    """
    root.mkdir(parents=True, exist_ok=True)
    (root / "index.html").write_text("<html><body>home</body></html>", encoding="utf-8")

    (root / ".secret").mkdir()
    (root / ".secret" / "token.txt").write_text("s3cr3t", encoding="utf-8")

    public = root / "public"
    public.mkdir()
    (public / ".env").write_text("API_KEY=xyz", encoding="utf-8")
    (public / "app.js").write_text("console.log('app');", encoding="utf-8")
    (public / "style.css").write_text("body { margin: 0; }", encoding="utf-8")
    (public / ".hidden_dir").mkdir()
    (public / ".hidden_dir" / "x.txt").write_text("x", encoding="utf-8")

    docs = root / "docs"
    docs.mkdir()
    (docs / "readme.txt").write_text("read me", encoding="utf-8")
    (docs / ".draft.md").write_text("draft", encoding="utf-8")
    (docs / "guide").mkdir()

    assets = root / "assets"
    assets.mkdir()
    (assets / "data.bin").write_bytes(bytes(range(250)) * 4)

    return root


@pytest.fixture
def served_tree(tmp_path: Path) -> Path:
    """Scenario A served root."""
    return build_served_tree(tmp_path / "static")


@pytest.fixture
def server_config(served_tree: Path) -> ServerConfig:
    """테스트용 설정."""
    return ServerConfig(static_root=served_tree, host="127.0.0.1", port=0)


@pytest.fixture
def client(server_config: ServerConfig) -> Generator[TestClient, None, None]:
    """FastAPI TestClient (리다이렉트 자동 추적 안 함)."""
    app = create_app(server_config)
    with TestClient(app, follow_redirects=False) as client:
        yield client


# =============================================================================
# Live Server Fixture
# =============================================================================


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(scope="session")
def live_server(tmp_path_factory: pytest.TempPathFactory) -> Generator[str, None, None]:
    """
    앱을 uvicorn으로 백그라운드에서 실행하는 fixture.

    Returns:
        서버 URL (예: "http://127.0.0.1:54321")
    """
    root = build_served_tree(tmp_path_factory.mktemp("live") / "static")
    host = "127.0.0.1"
    port = _free_port()

    app = create_app(ServerConfig(static_root=root, host=host, port=port))
    config = uvicorn.Config(app, host=host, port=port, log_level="error")
    server = uvicorn.Server(config)

    def run_server() -> None:
        import asyncio
        asyncio.run(server.serve())

    thread = threading.Thread(target=run_server, daemon=True)
    thread.start()

    # 서버가 준비될 때까지 대기
    base_url = f"http://{host}:{port}"
    max_attempts = 50
    for _ in range(max_attempts):
        try:
            response = httpx.get(f"{base_url}/", timeout=1.0)
            if response.status_code == 200:
                break
        except httpx.HTTPError:
            time.sleep(0.1)
    else:
        raise RuntimeError("Failed to start test server")

    yield base_url

    # 서버 종료
    server.should_exit = True
    thread.join(timeout=5)
