import os
import subprocess
import sys
from pathlib import Path

from sqlalchemy.engine import make_url


def _env_default(name: str, value: str) -> None:
    current = os.environ.get(name)
    if current is None or current.strip() == "":
        os.environ[name] = value


def _prepare_environment() -> None:
    _env_default("APP_PORT", "9000")
    _env_default("DATABASE_URL", "sqlite+pysqlite:////data/geolocation.db")
    _env_default("STANDALONE_ALLOW_EXTERNAL_DB", "false")

    allow_external_db = os.environ["STANDALONE_ALLOW_EXTERNAL_DB"].strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }
    if allow_external_db:
        return

    try:
        parsed_db = make_url(os.environ["DATABASE_URL"])
    except Exception:
        return

    is_postgres = parsed_db.drivername.startswith("postgres")
    is_localhost = parsed_db.host in {"localhost", "127.0.0.1", "::1"}
    if is_postgres and is_localhost:
        print(
            "Detected localhost Postgres URL in standalone mode; switching DATABASE_URL to SQLite (/data/geolocation.db). "
            "Set STANDALONE_ALLOW_EXTERNAL_DB=true to keep external DB URL.",
            flush=True,
        )
        os.environ["DATABASE_URL"] = "sqlite+pysqlite:////data/geolocation.db"


def _ensure_storage_paths() -> None:
    try:
        parsed_url = make_url(os.environ["DATABASE_URL"])
    except Exception:
        return

    if not parsed_url.drivername.startswith("sqlite"):
        return

    db_path = parsed_url.database
    if not db_path or db_path == ":memory:":
        return

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def _run(cmd: list[str]) -> None:
    print(">", " ".join(cmd), flush=True)
    subprocess.run(cmd, check=True)


def main() -> None:
    _prepare_environment()
    _ensure_storage_paths()

    print("Starting standalone geolocation backend with:", flush=True)
    print(f"  DATABASE_URL={os.environ['DATABASE_URL']}", flush=True)
    print(f"  DDOS_BOMB_COMPANY_TOKENS={os.environ.get('DDOS_BOMB_COMPANY_TOKENS', '')}", flush=True)
    if os.environ.get("JWT_SECRET", "change_me") == "change_me":
        print("  WARNING: JWT_SECRET is not set, tokens are signed with the default secret", flush=True)

    _run([sys.executable, "-m", "alembic", "upgrade", "head"])

    os.execvp(
        "uvicorn",
        [
            "uvicorn",
            "app.main:app",
            "--host",
            "0.0.0.0",
            "--port",
            os.environ["APP_PORT"],
        ],
    )


if __name__ == "__main__":
    main()
