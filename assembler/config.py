"""Configuration settings for the assembler server."""

import os
from dataclasses import dataclass
from pathlib import Path

from common.constants import SERVER_PORT as DEFAULT_SERVER_PORT


SERVER_HOST = os.environ.get("ASSEMBLER_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("ASSEMBLER_PORT", str(DEFAULT_SERVER_PORT)))

DEFAULT_TEMP_DIR = "./data/upload_temp"

DEFAULT_OUTPUT_DIR = "./data/uploads"


@dataclass(frozen=True)
class StorageConfig:
    """
    Storage locations used by the chunk store and the assembly engine.

    temp_root holds one directory per upload identifier; output_root holds
    the assembled files.
    """
    temp_root: Path
    output_root: Path
    purge_after_merge: bool = True


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> StorageConfig:
    """
    Build a StorageConfig from ASSEMBLER_* environment variables.

    Returns:
        StorageConfig with resolved paths
    """
    return StorageConfig(
        temp_root=Path(os.environ.get("ASSEMBLER_TEMP_DIR", DEFAULT_TEMP_DIR)),
        output_root=Path(os.environ.get("ASSEMBLER_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)),
        purge_after_merge=_env_flag("ASSEMBLER_PURGE_AFTER_MERGE", True),
    )
