r"""
Run configuration and environment-driven defaults.

Run profiles trade measurement quality for wall-clock time:
    - quick: 3 repeats, 5 minute cell timeout (smoke runs)
    - default: 10 repeats, no cell timeout
    - thorough: 30 repeats, no cell timeout

Every default can be overridden with a BACKEND_BENCH_* environment
variable, read from the process environment or a `.env` file.

    from backend_bench.config import get_profile

    profile = get_profile("quick")
    print(f"Repeats: {profile.repeat_count}")
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Look for .env in current dir, then next to the package
_env_file = Path(".env")
if not _env_file.exists():
    _env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

__all__ = [
    "DEFAULT_PROFILE",
    "ENV_PREFIX",
    "PROFILES",
    "RunProfile",
    "get_cell_timeout",
    "get_env",
    "get_profile",
    "get_results_dir",
    "get_token_cache_path",
    "get_upload_url",
]

ENV_PREFIX = "BACKEND_BENCH_"


@dataclass(frozen=True, slots=True)
class RunProfile:
    """Repeat and timeout policy for a run.

    Attributes:
        name: Profile name.
        repeat_count: Timed repeats per cell.
        cell_timeout_seconds: Wall-clock limit per cell (None = unlimited).
    """

    name: str
    repeat_count: int
    cell_timeout_seconds: float | None = None


PROFILES: dict[str, RunProfile] = {
    "quick": RunProfile(name="quick", repeat_count=3, cell_timeout_seconds=300),
    "default": RunProfile(name="default", repeat_count=10),
    "thorough": RunProfile(name="thorough", repeat_count=30),
}

DEFAULT_PROFILE = "default"


def get_env(key: str, *, default: str | None = None) -> str | None:
    """Get environment variable with BACKEND_BENCH_ prefix.

    Args:
        key: Variable name without prefix (e.g., "RESULTS_DIR").
        default: Default value if not set.

    Returns:
        Environment variable value or default.
    """
    return os.environ.get(f"{ENV_PREFIX}{key}", default)


def get_profile(name: str | None = None) -> RunProfile:
    """Get run profile by name.

    Args:
        name: Profile name (None = BACKEND_BENCH_PROFILE or "default").

    Returns:
        RunProfile for the requested name.

    Raises:
        ValueError: If profile name is not recognized.
    """
    if name is None:
        name = get_env("PROFILE", default=DEFAULT_PROFILE) or DEFAULT_PROFILE
    if name not in PROFILES:
        valid = ", ".join(PROFILES.keys())
        msg = f"Unknown profile '{name}'. Valid profiles: {valid}"
        raise ValueError(msg)
    return PROFILES[name]


def get_results_dir() -> Path:
    """Root directory for handoff artifacts and merged results."""
    return Path(get_env("RESULTS_DIR", default="./results") or "./results")


def get_cell_timeout() -> float | None:
    """Per-cell timeout in seconds from BACKEND_BENCH_CELL_TIMEOUT (None = unlimited)."""
    value = get_env("CELL_TIMEOUT")
    if not value:
        return None
    timeout = float(value)
    return timeout if timeout > 0 else None


def get_token_cache_path() -> Path:
    """File holding the upload credential."""
    value = get_env("TOKEN_CACHE")
    if value:
        return Path(value)
    return Path.home() / ".cache" / "backend-bench" / "token.txt"


def get_upload_url() -> str | None:
    """Endpoint that receives finalized ResultSets (None = uploads disabled)."""
    return get_env("UPLOAD_URL")
