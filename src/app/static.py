"""
Filtered static files: 숨김 경로를 차단하는 StaticFiles.

Starlette StaticFiles의 파일 응답(content-type 추정, ETag/Last-Modified,
304, Range/206)은 그대로 쓰고, 경로 조회만 VisibilityFilter를 거친다.

응답 매핑:
- 숨김 세그먼트 (요청 경로 또는 symlink 해석 후) → 403 (메서드/리다이렉트보다 우선)
- 없음 → 404
- 그 외 I/O 오류 → 로그 후 재발생 (500)
- GET/HEAD 외 → 405
- 디렉터리: "/"로 리다이렉트 → index.html → 없으면 목록
"""

import errno
import html
import logging
import os
from pathlib import Path
from urllib.parse import quote

import anyio.to_thread
from starlette.datastructures import URL
from starlette.exceptions import HTTPException
from starlette.responses import HTMLResponse, RedirectResponse, Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

from src.core.store import DirectoryStore, FileHandle
from src.core.visibility import VisibilityFilter, contains_hidden_segment
from src.domain.constants import (
    DEFAULT_HIDDEN_MARKER,
    DEFAULT_READDIR_BATCH_SIZE,
    INDEX_FILENAME,
)
from src.domain.schemas import Entry

logger = logging.getLogger(__name__)


def to_virtual_path(path: str, directory_request: bool = False) -> str:
    """
    StaticFiles.get_path() 결과(OS 구분자, 정규화됨) → "/" 기준 가상 경로.

    Examples:
        >>> to_virtual_path(".")
        '/'
        >>> to_virtual_path("public", directory_request=True)
        '/public/'
    """
    if path in ("", "."):
        return "/"
    virtual = "/" + path.replace(os.sep, "/")
    if directory_request:
        virtual += "/"
    return virtual


def render_listing(entries: list[Entry]) -> str:
    """디렉터리 목록 HTML (항목 순서 유지, 디렉터리는 "/" 접미)."""
    lines = [
        "<!doctype html>",
        '<meta name="viewport" content="width=device-width">',
        "<pre>",
    ]
    for entry in entries:
        name = entry.name + "/" if entry.is_dir else entry.name
        lines.append(f'<a href="{quote(name)}">{html.escape(name)}</a>')
    lines.append("</pre>")
    return "\n".join(lines) + "\n"


class FilteredStaticFiles(StaticFiles):
    """
    served root를 VisibilityFilter로 감싼 StaticFiles.

    Args:
        directory: served root
        hidden_marker: 숨김 마커 문자
        readdir_batch_size: 목록 생성 시 readdir 페이지 크기
        filesystem: 직접 구성한 VisibilityFilter (테스트/대체 저장소용)
    """

    def __init__(
        self,
        *,
        directory: str | Path,
        hidden_marker: str = DEFAULT_HIDDEN_MARKER,
        readdir_batch_size: int = DEFAULT_READDIR_BATCH_SIZE,
        filesystem: VisibilityFilter | None = None,
        check_dir: bool = True,
    ) -> None:
        super().__init__(directory=directory, check_dir=check_dir)
        self.filesystem = filesystem or VisibilityFilter(
            DirectoryStore(directory), hidden_marker
        )
        self.readdir_batch_size = readdir_batch_size

    async def get_response(self, path: str, scope: Scope) -> Response:
        request_path: str = scope["path"]
        directory_request = request_path.endswith("/")
        virtual = to_virtual_path(path, directory_request)

        # 숨김 경로는 메서드/리다이렉트 처리보다 먼저 403
        if contains_hidden_segment(virtual, self.filesystem.hidden_marker):
            logger.debug(f"Forbidden {virtual!r}: hidden path segment")
            raise HTTPException(status_code=403)

        if scope["method"] not in ("GET", "HEAD"):
            raise HTTPException(status_code=405)

        if request_path.endswith("/" + INDEX_FILENAME):
            return self.redirect(scope, request_path[: -len(INDEX_FILENAME)])

        handle = await anyio.to_thread.run_sync(self.open_path, virtual)
        with handle:
            if not handle.is_dir():
                return self.file_response(handle.real_path, handle.stat(), scope)

            if not directory_request:
                return self.redirect(scope, request_path + "/")

            index = await anyio.to_thread.run_sync(self.open_index, virtual)
            if index is not None:
                with index:
                    return self.file_response(index.real_path, index.stat(), scope)

            entries = await anyio.to_thread.run_sync(self.read_entries, handle)

        return self.listing_response(entries, scope)

    def open_path(self, virtual: str) -> FileHandle:
        """VisibilityFilter.open + 에러 → HTTP 상태 매핑."""
        try:
            return self.filesystem.open(virtual)
        except PermissionError as e:
            logger.debug(f"Forbidden {virtual!r}: {e}")
            raise HTTPException(status_code=403) from e
        except FileNotFoundError as e:
            raise HTTPException(status_code=404) from e
        except OSError as e:
            if e.errno == errno.ENAMETOOLONG:
                raise HTTPException(status_code=404) from e
            logger.error(f"Open failed {virtual!r}: {e}")
            raise

    def open_index(self, directory: str) -> FileHandle | None:
        """디렉터리의 index.html (보이는 일반 파일일 때만)."""
        try:
            index = self.filesystem.open(directory + INDEX_FILENAME)
        except (FileNotFoundError, PermissionError):
            return None
        if index.is_dir():
            index.close()
            return None
        return index

    def read_entries(self, handle: FileHandle) -> list[Entry]:
        try:
            return list(self.filesystem.iter_entries(handle, self.readdir_batch_size))
        except OSError as e:
            logger.error(f"Readdir failed {handle.name!r}: {e}")
            raise

    def listing_response(self, entries: list[Entry], scope: Scope) -> Response:
        content = render_listing(entries)
        if scope["method"] == "HEAD":
            body = content.encode("utf-8")
            return Response(
                content=b"",
                media_type="text/html",
                headers={"content-length": str(len(body))},
            )
        return HTMLResponse(content=content)

    def redirect(self, scope: Scope, new_path: str) -> RedirectResponse:
        url = URL(scope=scope).replace(path=new_path)
        return RedirectResponse(url=str(url), status_code=301)
