"""
File store: 디렉터리 기반 읽기 전용 파일 저장소.

규칙:
- 가상 경로(VirtualPath) = "/" 구분, URL 디코드 완료, served root 기준
- 저장소 밖으로 나가는 경로(.., symlink)는 존재하지 않는 것으로 취급
- 끝이 "/"인 경로 = 디렉터리 열기 요청
- 핸들은 컨텍스트 매니저: 모든 종료 경로에서 디렉터리 iterator 해제

FileStore/FileHandle 인터페이스만 지키면 메모리 기반 저장소로 교체 가능
(VisibilityFilter 단위 테스트는 tests/conftest.py의 MemoryStore 사용).
"""

import errno
import logging
import os
import posixpath
import stat
from abc import ABC, abstractmethod
from collections.abc import Iterator
from pathlib import Path
from types import TracebackType

from src.domain.schemas import DirectoryBatch, Entry

logger = logging.getLogger(__name__)


def _not_found(name: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)


def clean_virtual_path(name: str) -> str:
    """
    가상 경로 정규화.

    "/" 기준으로 ".", ".." 제거 → 루트 밖으로 나갈 수 없음.
    끝의 "/"는 보존 (디렉터리 요청 표시).

    Examples:
        >>> clean_virtual_path("a/../b/")
        '/b/'
        >>> clean_virtual_path("/../../etc/passwd")
        '/etc/passwd'
    """
    cleaned = posixpath.normpath("/" + name)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    if name.endswith("/") and cleaned != "/":
        cleaned += "/"
    return cleaned


# =============================================================================
# Abstract Interfaces
# =============================================================================

class FileHandle(ABC):
    """
    열린 파일/디렉터리 핸들.

    readdir는 페이지 단위 열거:
    - count > 0: 최대 count개
    - count <= 0: 남은 항목 전부
    """

    name: str
    resolved_path: str

    @abstractmethod
    def stat(self) -> os.stat_result:
        ...

    @abstractmethod
    def is_dir(self) -> bool:
        ...

    @abstractmethod
    def readdir(self, count: int) -> DirectoryBatch:
        """
        다음 페이지 열거.

        Returns:
            DirectoryBatch (끝에 도달하면 exhausted=True)

        Raises:
            NotADirectoryError: 디렉터리가 아닌 핸들
        """
        ...

    @property
    @abstractmethod
    def real_path(self) -> str:
        """응답 스트리밍에 쓰는 실제 파일 경로."""
        ...

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> "FileHandle":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class FileStore(ABC):
    """읽기 전용 파일 저장소 인터페이스."""

    @abstractmethod
    def open(self, name: str) -> FileHandle:
        """
        가상 경로 열기.

        Raises:
            FileNotFoundError: 경로 없음 (또는 저장소 밖)
            OSError: 그 외 I/O 오류
        """
        ...


# =============================================================================
# Disk Implementation
# =============================================================================

def _entry_from_dirent(dirent: os.DirEntry) -> Entry | None:
    """
    os.DirEntry → Entry.

    깨진 symlink는 링크 자체의 정보로, 열거 중 사라진 항목은 None.
    """
    try:
        st = dirent.stat()
    except FileNotFoundError:
        try:
            st = dirent.stat(follow_symlinks=False)
        except FileNotFoundError:
            return None
    return Entry(
        name=dirent.name,
        is_dir=stat.S_ISDIR(st.st_mode),
        size=st.st_size,
        mtime=st.st_mtime,
    )


class DiskFileHandle(FileHandle):
    """디스크 파일/디렉터리 핸들. 디렉터리 iterator는 첫 readdir에서 생성."""

    def __init__(
        self,
        name: str,
        full_path: str,
        resolved_path: str,
        stat_result: os.stat_result,
    ) -> None:
        self.name = name
        self.resolved_path = resolved_path
        self._full_path = full_path
        self._stat = stat_result
        self._iterator: Iterator[os.DirEntry] | None = None
        self._exhausted = False
        self._closed = False

    @property
    def real_path(self) -> str:
        return self._full_path

    def stat(self) -> os.stat_result:
        return self._stat

    def is_dir(self) -> bool:
        return stat.S_ISDIR(self._stat.st_mode)

    def readdir(self, count: int) -> DirectoryBatch:
        if self._closed:
            raise ValueError(f"readdir on closed handle: {self.name}")
        if not self.is_dir():
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), self.name)
        if self._exhausted:
            return DirectoryBatch(entries=[], exhausted=True)

        if self._iterator is None:
            self._iterator = os.scandir(self._full_path)

        entries: list[Entry] = []
        while count <= 0 or len(entries) < count:
            try:
                dirent = next(self._iterator)
            except StopIteration:
                self._exhausted = True
                self._close_iterator()
                break
            entry = _entry_from_dirent(dirent)
            if entry is not None:
                entries.append(entry)

        return DirectoryBatch(entries=entries, exhausted=self._exhausted)

    def _close_iterator(self) -> None:
        if self._iterator is not None:
            self._iterator.close()  # type: ignore[attr-defined]
            self._iterator = None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._close_iterator()


class DirectoryStore(FileStore):
    """
    served root 디렉터리 기반 저장소.

    symlink는 os.path.realpath로 해석하고,
    해석 결과가 root 밖이면 FileNotFoundError.
    resolved_path에는 해석 후의 가상 경로가 담긴다.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = os.path.realpath(root)

    def open(self, name: str) -> DiskFileHandle:
        if (os.sep != "/" and os.sep in name) or "\x00" in name:
            raise _not_found(name)

        virtual = clean_virtual_path(name)
        parts = [part for part in virtual.split("/") if part]
        full_path = os.path.realpath(os.path.join(self.root, *parts))

        if os.path.commonpath([full_path, self.root]) != self.root:
            logger.debug(f"Path escapes served root: {name!r} -> {full_path}")
            raise _not_found(name)

        try:
            stat_result = os.stat(full_path)
        except (FileNotFoundError, NotADirectoryError) as e:
            raise _not_found(name) from e

        if virtual.endswith("/") and not stat.S_ISDIR(stat_result.st_mode):
            raise _not_found(name)

        relative = os.path.relpath(full_path, self.root)
        resolved = "/" if relative == "." else "/" + relative.replace(os.sep, "/")

        return DiskFileHandle(name, full_path, resolved, stat_result)
