"""Shared pytest fixtures for all tests."""

import pytest

from assembler.assembly_engine import AssemblyEngine
from assembler.chunk_store import ChunkStore
from assembler.config import StorageConfig
from assembler.services.upload_service import UploadService
from cli.config import Config


@pytest.fixture
def storage_config(tmp_path):
    """
    Create a storage configuration rooted in a temporary directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        StorageConfig with separate temp and output roots
    """
    return StorageConfig(
        temp_root=tmp_path / 'upload_temp',
        output_root=tmp_path / 'uploads',
    )


@pytest.fixture
def chunk_store(storage_config):
    """ChunkStore over the temporary temp root."""
    return ChunkStore(storage_config.temp_root)


@pytest.fixture
def engine(chunk_store, storage_config):
    """AssemblyEngine writing into the temporary output root."""
    return AssemblyEngine(chunk_store, storage_config.output_root)


@pytest.fixture
def upload_service(chunk_store, engine):
    """UploadService wired to the temporary store and engine."""
    return UploadService(chunk_store, engine)


@pytest.fixture
def temp_config(tmp_path):
    """
    Create temporary CLI config instance.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Config instance with temp config file
    """
    return Config(tmp_path / '.chunk-upload' / 'config.json')


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a 2500 byte file with non-repeating content.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to the sample file
    """
    file_path = tmp_path / 'sample.bin'
    file_path.write_bytes(bytes(i % 251 for i in range(2500)))
    return file_path
