#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""로컬 개발용 .env 파일 생성

사용법:
    python scripts/setup/create-env-file.py            # 로컬 PostgreSQL
    python scripts/setup/create-env-file.py --sqlite   # 로컬 SQLite 파일 (aiosqlite 필요)
"""
import argparse
import os
from pathlib import Path

# 프로젝트 루트
project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"

POSTGRES_URL = "postgresql+asyncpg://<DB_USER>:<DB_PASSWORD>@localhost:5432/quiz_engine"
SQLITE_URL = "sqlite+aiosqlite:///./quiz_engine.db"

ENV_TEMPLATE = """# Database
# 실제 계정 정보는 서버 담당자로부터 받아서 수동으로 입력 필요
DATABASE_URL={database_url}

# CORS
ALLOWED_ORIGINS=http://localhost:5173

# Environment (development | production | test)
ENVIRONMENT=development

# 단답형 채점 정규화 정책 (trim_ignore_case | collapse_whitespace)
ANSWER_NORMALIZATION=trim_ignore_case

# 알림 webhook (비워두면 알림 이벤트를 로그로만 기록)
NOTIFICATION_WEBHOOK_URL=
NOTIFICATION_TIMEOUT_SECONDS=3.0
"""


def create_env_file(use_sqlite: bool):
    """.env 파일 생성 (UTF-8, BOM 없음)"""
    print(f"[INFO] .env 파일 생성 중: {env_file}")

    # 기존 파일이 있으면 백업
    if env_file.exists():
        backup_file = project_root / ".env.backup"
        print(f"[INFO] 기존 .env 파일 백업: {backup_file}")
        backup_file.write_text(env_file.read_text(encoding="utf-8"), encoding="utf-8")

    database_url = SQLITE_URL if use_sqlite else POSTGRES_URL
    with open(env_file, "w", encoding="utf-8", newline="\n") as f:
        f.write(ENV_TEMPLATE.format(database_url=database_url))

    print(f"[OK] .env 파일 생성 완료 (DATABASE_URL={database_url})")

    if os.name != "nt":
        os.chmod(env_file, 0o600)
        print("[INFO] 파일 권한 설정: 600")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="로컬 개발용 .env 생성")
    parser.add_argument("--sqlite", action="store_true", help="PostgreSQL 대신 로컬 SQLite 파일 사용")
    args = parser.parse_args()

    try:
        create_env_file(args.sqlite)
        print("\n[OK] 작업 완료")
    except OSError as e:
        print(f"\n[ERROR] 에러 발생: {e.__class__.__name__}: {str(e)}")
        raise SystemExit(1)
