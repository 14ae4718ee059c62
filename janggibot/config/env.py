"""Loading of JANGGIBOT_ overrides from dotenv files."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


def _resolve_env_file(env_file: str | Path | None, start_dir: Path) -> Path | None:
    """Resolve dotenv path from explicit value, JANGGIBOT_ENV_FILE or ./.env."""
    env_path = env_file or os.environ.get("JANGGIBOT_ENV_FILE")
    if env_path:
        resolved = Path(env_path).expanduser()
        if not resolved.is_absolute():
            resolved = start_dir / resolved
        return resolved.resolve()

    cwd_env = (start_dir / ".env").resolve()
    if cwd_env.exists():
        return cwd_env
    return None


def load_environment_file(
    env_file: str | Path | None = None,
    *,
    override: bool = False,
    strict: bool = True,
    start_dir: Path | None = None,
) -> Path | None:
    """Load a dotenv file so its JANGGIBOT_ variables apply to load_config.

    Args:
        env_file: Optional dotenv path. If omitted, checks `JANGGIBOT_ENV_FILE`,
            then `.env` in the start directory.
        override: Whether dotenv values should override existing environment vars.
        strict: Whether an explicit but missing dotenv path should raise.
        start_dir: Base directory for resolving relative paths.

    Returns:
        Loaded dotenv path, or None when no dotenv file is found.
    """
    base_dir = (start_dir or Path.cwd()).resolve()
    resolved = _resolve_env_file(env_file, base_dir)
    if resolved is None:
        return None

    if not resolved.exists():
        if strict:
            raise FileNotFoundError(f"Dotenv file not found: {resolved}")
        return None
    if not resolved.is_file():
        raise ValueError(f"Dotenv path is not a regular file: {resolved}")

    load_dotenv(dotenv_path=str(resolved), override=override)
    return resolved
