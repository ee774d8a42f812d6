"""
Data schemas for the static server.

규칙:
- 모든 엔티티는 요청 시점의 파일시스템에서 파생된 읽기 전용 뷰
- 요청 간에 공유되는 가변 상태 없음
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .constants import (
    DEFAULT_HIDDEN_MARKER,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_READDIR_BATCH_SIZE,
)

# =============================================================================
# Directory Listing
# =============================================================================

@dataclass(frozen=True)
class Entry:
    """디렉터리 항목 기술자."""
    name: str
    is_dir: bool
    size: int
    mtime: float


@dataclass
class DirectoryBatch:
    """
    디렉터리 열거 한 페이지.

    entries가 비어 있어도 exhausted=False이면 끝이 아님:
    숨김 항목만 있던 페이지는 필터링 후 빈 배치가 될 수 있다.
    """
    entries: list[Entry] = field(default_factory=list)
    exhausted: bool = False


# =============================================================================
# Server Configuration
# =============================================================================

@dataclass
class ServerConfig:
    """
    서버 설정.

    시작 시 한 번 결정되고 이후 모든 요청이 읽기 전용으로 공유.
    """
    static_root: Path | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    hidden_marker: str = DEFAULT_HIDDEN_MARKER
    readdir_batch_size: int = DEFAULT_READDIR_BATCH_SIZE
    verbosity: int = 0

    def to_dict(self) -> dict[str, Any]:
        """로그 출력용."""
        return {
            "static_root": str(self.static_root) if self.static_root else None,
            "host": self.host,
            "port": self.port,
            "hidden_marker": self.hidden_marker,
            "readdir_batch_size": self.readdir_batch_size,
            "verbosity": self.verbosity,
        }
