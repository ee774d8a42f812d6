"""
Domain Constants: 서버 전역 상수.

기본 포트, 숨김 마커, 디렉터리 열거 배치 크기 등
시스템 전반에서 사용되는 값들.
"""

# =============================================================================
# Visibility Policy (숨김 정책)
# =============================================================================
# 경로 세그먼트가 이 문자로 시작하면 그 세그먼트와 하위 전체가 숨김.
# 예: /.secret/token.txt, /public/.env

DEFAULT_HIDDEN_MARKER = "."

# =============================================================================
# Network (리슨 주소)
# =============================================================================

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9200
MAX_PORT = 65535

# =============================================================================
# Directory Listing (디렉터리 열거)
# =============================================================================
# 큰 디렉터리를 한 번에 읽지 않도록 배치 단위로 열거

DEFAULT_READDIR_BATCH_SIZE = 100
INDEX_FILENAME = "index.html"

# =============================================================================
# Configuration Sources
# =============================================================================
# 우선순위: CLI > 환경 변수 > yaml > 기본값

CONFIG_FILENAME = "default.yaml"
CONFIG_SECTION = "server"
ENV_PREFIX = "DOTLESS_"

# =============================================================================
# Logging
# =============================================================================

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
