"""
Core layer: 파일 저장소와 숨김 정책.

이 모듈만 건드리면 숨김 파일 노출 사고 → 가장 보수적으로 관리

역할:
- served root 읽기 전용 접근 (store)
- 숨김 세그먼트 차단, 디렉터리 열거 필터링 (visibility)
"""

from .store import DirectoryStore, FileHandle, FileStore, clean_virtual_path
from .visibility import (
    HiddenEntryFilteringHandle,
    VisibilityFilter,
    contains_hidden_segment,
    is_hidden_name,
)

__all__ = [
    # store
    "FileStore",
    "FileHandle",
    "DirectoryStore",
    "clean_virtual_path",
    # visibility
    "VisibilityFilter",
    "HiddenEntryFilteringHandle",
    "contains_hidden_segment",
    "is_hidden_name",
]
