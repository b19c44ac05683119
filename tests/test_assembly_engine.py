"""Tests for ordered chunk assembly."""

import errno
import io

import pytest

from assembler.assembly_engine import AssemblyEngine
from assembler.exceptions import (
    BadRequestError,
    EmptyChunkError,
    EmptyResultError,
    InvalidNameError,
    MissingChunkError,
    MissingChunksError,
    StorageError,
    StorageFullError,
)
from common.types import AssemblyRequest


def _request(file_size, chunk_size, file_name='out.bin', file_hash='abc'):
    return AssemblyRequest(
        file_name=file_name,
        file_hash=file_hash,
        file_size=file_size,
        chunk_size=chunk_size,
    )


class TestTotalChunks:
    """Test the chunk count derived from the request."""

    @pytest.mark.parametrize('file_size,chunk_size,expected', [
        (1536, 1024, 2),
        (2048, 1024, 2),
        (1, 1024, 1),
        (1025, 1024, 2),
        (10, 1, 10),
    ])
    def test_total_chunks_rounds_up(self, file_size, chunk_size, expected):
        assert _request(file_size, chunk_size).total_chunks == expected


class TestSuccessfulAssembly:
    """Test merges where every chunk is present."""

    def test_two_chunks_scenario(self, engine, chunk_store, storage_config):
        chunk_store.put('abc', 0, b'a' * 1024)
        chunk_store.put('abc', 1, b'b' * 512)

        result = engine.assemble(_request(1536, 1024))

        assert result.size == 1536
        assert result.total_chunks == 2
        assert result.path == str(storage_config.output_root / 'out.bin')
        assert result.purged is True
        assert result.cleanup_error is None

    def test_content_is_concatenation_in_index_order(self, engine, chunk_store, storage_config):
        parts = [b'first-', b'second-', b'third']
        for index in (2, 0, 1):
            chunk_store.put('abc', index, parts[index])

        result = engine.assemble(_request(len(b''.join(parts)), 7))

        output = storage_config.output_root / 'out.bin'
        assert output.read_bytes() == b'first-second-third'
        assert result.size == len(b'first-second-third')

    def test_output_name_is_sanitized(self, engine, chunk_store, storage_config):
        chunk_store.put('abc', 0, b'data')

        result = engine.assemble(_request(4, 4, file_name='my report.txt'))

        assert result.path == str(storage_config.output_root / 'my_report.txt')
        assert (storage_config.output_root / 'my_report.txt').read_bytes() == b'data'

    def test_existing_output_is_truncated(self, engine, chunk_store, storage_config):
        storage_config.output_root.mkdir(parents=True)
        (storage_config.output_root / 'out.bin').write_bytes(b'x' * 10000)
        chunk_store.put('abc', 0, b'new')

        result = engine.assemble(_request(3, 3))

        assert result.size == 3
        assert (storage_config.output_root / 'out.bin').read_bytes() == b'new'

    def test_purge_after_success_clears_namespace(self, engine, chunk_store):
        chunk_store.put('abc', 0, b'data')

        engine.assemble(_request(4, 4))

        assert chunk_store.exists('abc') is False
        assert chunk_store.list_indices('abc') == set()

    def test_extra_chunks_beyond_total_are_ignored(self, engine, chunk_store, storage_config):
        chunk_store.put('abc', 0, b'keep')
        chunk_store.put('abc', 1, b'extra')

        result = engine.assemble(_request(4, 4))

        assert result.size == 4
        assert (storage_config.output_root / 'out.bin').read_bytes() == b'keep'


class TestRejectedRequests:
    """Test preconditions checked before any output is written."""

    def test_path_traversal_name_rejected(self, engine, chunk_store, storage_config, tmp_path):
        chunk_store.put('abc', 0, b'data')

        with pytest.raises(InvalidNameError):
            engine.assemble(_request(4, 4, file_name='../../etc/passwd'))

        assert not storage_config.output_root.exists()
        assert not (tmp_path / 'etc').exists()
        assert chunk_store.list_indices('abc') == {0}

    def test_name_too_long_for_filesystem_rejected(self, engine, chunk_store):
        chunk_store.put('abc', 0, b'data')

        with pytest.raises(InvalidNameError):
            engine.assemble(_request(4, 4, file_name='a' * 300 + '.bin'))

        assert chunk_store.list_indices('abc') == {0}

    @pytest.mark.parametrize('file_size,chunk_size', [(0, 1024), (1024, 0), (-5, 10), (10, -1)])
    def test_non_positive_sizes_rejected(self, engine, chunk_store, file_size, chunk_size):
        chunk_store.put('abc', 0, b'data')

        with pytest.raises(BadRequestError):
            engine.assemble(_request(file_size, chunk_size))

    def test_unknown_identifier_is_missing_chunks(self, engine, storage_config):
        with pytest.raises(MissingChunksError):
            engine.assemble(_request(1536, 1024))

        assert not storage_config.output_root.exists()


class TestIncompleteUploads:
    """Test that gaps and empty chunks abort with the lowest failing index."""

    def test_missing_second_chunk_scenario(self, engine, chunk_store):
        chunk_store.put('abc', 0, b'a' * 1024)

        with pytest.raises(MissingChunkError) as exc_info:
            engine.assemble(_request(1536, 1024))

        assert exc_info.value.chunk_index == 1
        assert str(exc_info.value) == 'Missing chunk: 1'

    def test_lowest_missing_index_reported(self, engine, chunk_store):
        chunk_store.put('abc', 0, b'a')
        chunk_store.put('abc', 2, b'c')

        with pytest.raises(MissingChunkError) as exc_info:
            engine.assemble(_request(4, 1))

        assert exc_info.value.chunk_index == 1

    def test_empty_chunk_rejected(self, engine, chunk_store):
        chunk_store.put('abc', 0, b'a')
        chunk_store.put('abc', 1, b'')
        chunk_store.put('abc', 2, b'c')

        with pytest.raises(EmptyChunkError) as exc_info:
            engine.assemble(_request(3, 1))

        assert exc_info.value.chunk_index == 1

    def test_empty_chunk_before_missing_chunk_wins(self, engine, chunk_store):
        chunk_store.put('abc', 0, b'')

        with pytest.raises(EmptyChunkError) as exc_info:
            engine.assemble(_request(3, 1))

        assert exc_info.value.chunk_index == 0

    def test_failed_merge_keeps_chunks(self, engine, chunk_store):
        chunk_store.put('abc', 0, b'a')

        with pytest.raises(MissingChunkError):
            engine.assemble(_request(2, 1))

        assert chunk_store.list_indices('abc') == {0}

    def test_retry_after_uploading_missing_chunk_succeeds(self, engine, chunk_store, storage_config):
        chunk_store.put('abc', 0, b'a')
        with pytest.raises(MissingChunkError):
            engine.assemble(_request(2, 1))

        chunk_store.put('abc', 1, b'b')
        result = engine.assemble(_request(2, 1))

        assert result.size == 2
        assert (storage_config.output_root / 'out.bin').read_bytes() == b'ab'

    def test_empty_result_detected(self, engine, chunk_store, monkeypatch):
        chunk_store.put('abc', 0, b'data')
        monkeypatch.setattr(chunk_store, 'open', lambda upload_id, index: io.BytesIO(b''))

        with pytest.raises(EmptyResultError):
            engine.assemble(_request(4, 4))

        assert chunk_store.exists('abc') is True


class TestIdempotenceAndCleanup:
    """Test re-merging and cleanup failure reporting."""

    def test_merge_twice_without_purge_is_identical(self, chunk_store, storage_config):
        engine = AssemblyEngine(chunk_store, storage_config.output_root, purge_after_merge=False)
        chunk_store.put('abc', 0, b'hello ')
        chunk_store.put('abc', 1, b'world')
        output = storage_config.output_root / 'out.bin'

        first = engine.assemble(_request(11, 6))
        first_bytes = output.read_bytes()
        second = engine.assemble(_request(11, 6))

        assert first == second
        assert output.read_bytes() == first_bytes == b'hello world'
        assert first.purged is False
        assert first.cleanup_error is None
        assert chunk_store.list_indices('abc') == {0, 1}

    def test_merge_after_purge_fails_with_missing_chunks(self, engine, chunk_store):
        chunk_store.put('abc', 0, b'data')
        engine.assemble(_request(4, 4))

        with pytest.raises(MissingChunksError):
            engine.assemble(_request(4, 4))

    def test_cleanup_failure_is_reported_not_raised(self, engine, chunk_store, storage_config, monkeypatch):
        chunk_store.put('abc', 0, b'data')

        def failing_purge(upload_id):
            raise StorageError('cannot purge chunks of abc: permission denied')

        monkeypatch.setattr(chunk_store, 'purge', failing_purge)

        result = engine.assemble(_request(4, 4))

        assert result.size == 4
        assert result.purged is False
        assert 'permission denied' in result.cleanup_error
        assert (storage_config.output_root / 'out.bin').read_bytes() == b'data'


class TestStorageFailures:
    """Test that I/O errors during the merge name the chunk being copied."""

    def test_disk_full_attributed_to_chunk(self, engine, chunk_store, monkeypatch):
        chunk_store.put('abc', 0, b'a')
        chunk_store.put('abc', 1, b'b')
        calls = []

        def copy_then_fail(src, dst, length=0):
            calls.append(1)
            if len(calls) == 2:
                raise OSError(errno.ENOSPC, 'No space left on device')
            dst.write(src.read())

        monkeypatch.setattr('assembler.assembly_engine.shutil.copyfileobj', copy_then_fail)

        with pytest.raises(StorageFullError) as exc_info:
            engine.assemble(_request(2, 1))

        assert exc_info.value.chunk_index == 1
        assert chunk_store.list_indices('abc') == {0, 1}

    def test_permission_error_is_storage_error(self, engine, chunk_store, monkeypatch):
        chunk_store.put('abc', 0, b'a')

        def copy_denied(src, dst, length=0):
            raise PermissionError(errno.EACCES, 'Permission denied')

        monkeypatch.setattr('assembler.assembly_engine.shutil.copyfileobj', copy_denied)

        with pytest.raises(StorageError) as exc_info:
            engine.assemble(_request(1, 1))

        assert not isinstance(exc_info.value, StorageFullError)
        assert exc_info.value.chunk_index == 0
