from __future__ import annotations

import os
from pathlib import Path


ENV_FILE_OVERRIDE = "AUTHZ_ENV_FILE"


def _parse_env_line(line: str) -> tuple[str, str] | None:
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    if line.startswith("export "):
        line = line[len("export "):]
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return key, value


def _candidate_files() -> list[Path]:
    explicit = os.environ.get(ENV_FILE_OVERRIDE)
    if explicit:
        return [Path(explicit)]
    # backend/authz/core/env.py -> repo root is three levels above `core`
    repo_root = Path(__file__).resolve().parents[3]
    return [repo_root / ".env", repo_root / "backend" / ".env"]


def load_env_if_present(*, override: bool = False) -> list[Path]:
    """Load `.env` style files into the process environment.

    Existing variables win unless `override` is set. Unreadable files are
    skipped. Returns the files that were actually applied.
    """
    applied: list[Path] = []
    for path in _candidate_files():
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8")
        except OSError:
            continue
        for raw in content.splitlines():
            parsed = _parse_env_line(raw)
            if parsed is None:
                continue
            key, value = parsed
            if not override and key in os.environ:
                continue
            os.environ[key] = value
        applied.append(path)
    return applied
