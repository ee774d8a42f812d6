"""
Visibility filter: 숨김 세그먼트 경로를 감추는 파일 저장소 데코레이터.

규칙:
- 경로의 세그먼트 하나라도 마커(기본 ".")로 시작하면 숨김
- 숨김은 전이적: 숨김 디렉터리 아래는 전부 숨김
- 숨김 경로 open → 저장소를 조회하지 않고 즉시 VisibilityViolation
  (존재 여부를 타이밍/에러 종류로 노출하지 않음)
- symlink 해석 후 경로에도 같은 검사 적용
- 디렉터리 열거는 핸들 단위로 필터링: 열린 핸들 어디서 읽어도 숨김 항목 없음
"""

import logging
import os
from collections.abc import Iterator

from src.domain.constants import DEFAULT_HIDDEN_MARKER, DEFAULT_READDIR_BATCH_SIZE
from src.domain.errors import VisibilityViolation
from src.domain.schemas import DirectoryBatch, Entry

from .store import FileHandle, FileStore

logger = logging.getLogger(__name__)


def is_hidden_name(name: str, marker: str = DEFAULT_HIDDEN_MARKER) -> bool:
    """단일 이름이 숨김인지."""
    return name.startswith(marker)


def contains_hidden_segment(path: str, marker: str = DEFAULT_HIDDEN_MARKER) -> bool:
    """
    "/" 구분 경로에 마커로 시작하는 세그먼트가 있는지.

    Examples:
        >>> contains_hidden_segment("/public/.env")
        True
        >>> contains_hidden_segment("/public/app.js")
        False
    """
    return any(is_hidden_name(part, marker) for part in path.split("/"))


class HiddenEntryFilteringHandle(FileHandle):
    """readdir 결과에서 숨김 항목을 제거하는 핸들 래퍼."""

    def __init__(self, handle: FileHandle, marker: str = DEFAULT_HIDDEN_MARKER) -> None:
        self._handle = handle
        self._marker = marker
        self.name = handle.name
        self.resolved_path = handle.resolved_path

    @property
    def real_path(self) -> str:
        return self._handle.real_path

    def stat(self) -> os.stat_result:
        return self._handle.stat()

    def is_dir(self) -> bool:
        return self._handle.is_dir()

    def readdir(self, count: int) -> DirectoryBatch:
        """
        하위 readdir를 같은 count로 한 번 호출하고 숨김 항목 제거.

        필터링으로 count보다 적게(0개 포함) 반환될 수 있으나
        exhausted는 하위 배치 값을 그대로 따른다.
        """
        logger.debug(f"Readdir(n={count})")
        batch = self._handle.readdir(count)
        visible = [e for e in batch.entries if not is_hidden_name(e.name, self._marker)]
        return DirectoryBatch(entries=visible, exhausted=batch.exhausted)

    def close(self) -> None:
        self._handle.close()


class VisibilityFilter:
    """
    FileStore 데코레이터.

    Usage:
        fs = VisibilityFilter(DirectoryStore(root))
        with fs.open("/public/") as handle:
            for entry in fs.iter_entries(handle):
                ...
    """

    def __init__(self, store: FileStore, hidden_marker: str = DEFAULT_HIDDEN_MARKER) -> None:
        self.store = store
        self.hidden_marker = hidden_marker

    def open(self, path: str) -> HiddenEntryFilteringHandle:
        """
        가상 경로 열기.

        Raises:
            VisibilityViolation: 요청 경로 또는 해석 후 경로에 숨김 세그먼트
            FileNotFoundError: 저장소에 없음
            OSError: 그 외 저장소 오류 (종류 그대로 전파)
        """
        logger.debug(f"Open(name={path!r})")
        if contains_hidden_segment(path, self.hidden_marker):
            raise VisibilityViolation(path, self.hidden_marker)

        handle = self.store.open(path)
        if contains_hidden_segment(handle.resolved_path, self.hidden_marker):
            handle.close()
            raise VisibilityViolation(path, self.hidden_marker)

        return HiddenEntryFilteringHandle(handle, self.hidden_marker)

    def list_children(self, handle: FileHandle, max_entries: int) -> DirectoryBatch:
        """
        디렉터리 한 페이지 열거 (숨김 항목 제외).

        filter.open()이 돌려준 핸들이 아니어도 안전하도록 여기서도 필터링.
        """
        if not isinstance(handle, HiddenEntryFilteringHandle):
            handle = HiddenEntryFilteringHandle(handle, self.hidden_marker)
        return handle.readdir(max_entries)

    def iter_entries(
        self,
        handle: FileHandle,
        batch_size: int = DEFAULT_READDIR_BATCH_SIZE,
    ) -> Iterator[Entry]:
        """
        보이는 항목 전체를 순서대로 yield (배치 단위로 읽음).

        한 번만 순회 가능: 핸들의 열거 위치를 소비한다.
        """
        while True:
            batch = self.list_children(handle, batch_size)
            yield from batch.entries
            if batch.exhausted:
                return
            if batch_size <= 0:
                # count <= 0 은 한 번에 남은 항목 전부
                return
