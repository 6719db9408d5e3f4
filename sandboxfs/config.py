# sandboxfs/config.py
from pathlib import Path
from typing import Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings


def parse_mode(value: Any) -> Any:
    """Accept permission bits as an int or an octal string ("755", "0o755")."""
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0o"):
            text = text[2:]
        return int(text, 8)
    return value


class Settings(BaseSettings):
    # Filesystem sandbox
    SANDBOX_ROOT: Path = Path("./.sandbox")
    SANDBOX_CREATE_ROOT: bool = True        # mkdir the root on startup
    SANDBOX_STRICT_CONTAINMENT: bool = True # also canonicalize parents of paths without ".."

    # Directory mode used by the create_dir tool when none is given, octal in the environment
    DEFAULT_DIR_MODE: int = 0o777

    # Archives (tar + compression filter)
    ARCHIVE_COMPRESSION: Literal["bz2", "gz", "xz"] = "bz2"

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @field_validator("DEFAULT_DIR_MODE", mode="before")
    @classmethod
    def _octal_mode(cls, value: Any) -> Any:
        return parse_mode(value)
