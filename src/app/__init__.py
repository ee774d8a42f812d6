"""
App layer: HTTP 서버 (FastAPI + Starlette StaticFiles).

역할:
- "/" 단일 마운트, 요청 로그, 설정/CLI
- ⚠️ 숨김 정책 로직 없음 (core에 위임)
"""
