"""HTTP client that uploads files to the assembler in resumable chunks."""

import os
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, List, Optional

import httpx

from cli.config import Config
from cli.utils import count_chunks, format_file_size, read_chunk
from common.checksum import compute_file_checksum
from common.constants import API_PREFIX
from common.logging_config import get_logger

logger = get_logger(__name__)

ERROR_MESSAGES = {
    'INVALID_NAME': 'File name rejected by the server (no path separators allowed).',
    'INVALID_IDENTIFIER': 'File hash rejected by the server.',
    'BAD_REQUEST': 'File size and chunk size must be at least 1 byte.',
    'MISSING_CHUNKS': 'No chunks found on the server for this file. Upload it first.',
    'MISSING_CHUNK': 'A chunk is missing on the server.',
    'EMPTY_CHUNK': 'A chunk stored on the server is empty.',
    'EMPTY_RESULT': 'The merged file is empty.',
    'STORAGE_ERROR': 'The server could not read or write its storage.',
    'STORAGE_FULL': 'Server storage is full.',
    'SIZE_MISMATCH': 'The merged file does not match the local file, likely because earlier chunks used a different chunk size. Restart the upload with the original chunk size.',
}

# Merge failures that are fixed by re-sending the chunk they name.
REUPLOAD_CODES = ('MISSING_CHUNK', 'EMPTY_CHUNK')


class UploadError(Exception):
    """Raised when the server rejects a request; carries its error code."""

    def __init__(self, message: str, code: str = 'UNKNOWN', status_code: int = 0,
                 chunk_index: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status_code = status_code
        self.chunk_index = chunk_index


class UploadClient:
    """HTTP client for the upload API with retry logic and error handling."""

    def __init__(self, config: Config):
        """
        Initialize upload client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        logger.info(f"Initialized UploadClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        self.session.close()

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        4xx responses are returned immediately; they are never retried.

        Args:
            method: HTTP method (GET, POST, ...)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = request_id

        last_exception = None
        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, headers=headers, **kwargs)
                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={request_id}]"
                )

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={request_id}]"
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={request_id}]"
                )

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        raise ConnectionError("Cannot connect to assembler server. Is it running?")

    def _raise_for_error(self, response: httpx.Response) -> None:
        """
        Turn a non-2xx response into an UploadError with a user-friendly message.

        Raises:
            UploadError: If the response is not successful
        """
        if response.status_code < 400:
            return

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        if not isinstance(error_data, dict):
            error_data = {}

        code = error_data.get('code', 'UNKNOWN')
        chunk_index = error_data.get('chunk_index')
        detail = error_data.get('detail') or response.text or 'Unknown error'

        message = ERROR_MESSAGES.get(code)
        if message is None:
            message = f"Request failed with status {response.status_code}: {detail}"
        elif chunk_index is not None:
            message = f"{message} (chunk {chunk_index})"

        raise UploadError(message, code=code, status_code=response.status_code, chunk_index=chunk_index)

    def check(self, file_hash: str) -> List[int]:
        """
        Ask the server which chunks of a file it already has.

        Returns:
            Sorted list of stored chunk indices
        """
        response = self._request_with_retry('GET', f'{API_PREFIX}/check', params={'fileHash': file_hash})
        self._raise_for_error(response)
        return sorted(response.json())

    def upload_chunk(self, file_hash: str, chunk_index: int, data: bytes) -> Dict:
        """
        Send one chunk.

        Returns:
            Server response with fileHash, chunkIndex and size
        """
        response = self._request_with_retry(
            'POST',
            API_PREFIX,
            files={'file': (str(chunk_index), data, 'application/octet-stream')},
            data={'chunkIndex': str(chunk_index), 'fileHash': file_hash},
        )
        self._raise_for_error(response)
        logger.debug(f"Uploaded chunk {chunk_index} of {file_hash} ({len(data)} bytes)")
        return response.json()

    def merge(self, file_name: str, file_hash: str, file_size: int, chunk_size: int) -> Dict:
        """
        Ask the server to assemble the uploaded chunks.

        Returns:
            Server response with fileName, path, size, totalChunks, purged and warning
        """
        response = self._request_with_retry(
            'POST',
            f'{API_PREFIX}/merge',
            json={
                'fileName': file_name,
                'fileHash': file_hash,
                'fileSize': file_size,
                'chunkSize': chunk_size,
            },
        )
        self._raise_for_error(response)
        return response.json()

    def upload_file(
        self,
        file_path: str,
        name: Optional[str] = None,
        chunk_size: Optional[int] = None,
        workers: Optional[int] = None,
    ) -> Dict:
        """
        Upload a file, skipping chunks the server already has, then merge it.

        A merge that reports a missing or empty chunk triggers a re-upload of
        exactly that chunk followed by another merge, up to max_retries times.

        Args:
            file_path: Local file to upload
            name: Display name on the server (defaults to the file's base name)
            chunk_size: Chunk size in bytes (defaults to config)
            workers: Number of parallel chunk uploads (defaults to config)

        Returns:
            Merge response from the server

        Raises:
            UploadError: If the server rejects the upload or merge, or the merged
                size differs from the local file (SIZE_MISMATCH)
            ConnectionError: If the server cannot be reached
            ValueError: If the file is empty
        """
        path = Path(file_path)
        chunk_size = chunk_size or self.config.get_chunk_size()
        workers = workers or self.config.get_workers()
        name = name or path.name

        file_size = os.path.getsize(path)
        if file_size == 0:
            raise ValueError(f"File is empty: {file_path}")

        file_hash = compute_file_checksum(path)
        total_chunks = count_chunks(file_size, chunk_size)
        uploaded = set(self.check(file_hash))
        missing = [index for index in range(total_chunks) if index not in uploaded]
        logger.info(
            f"Uploading {name} ({format_file_size(file_size)}) as {file_hash}: "
            f"{total_chunks} chunks, {len(missing)} to send"
        )

        def send(index: int) -> None:
            self.upload_chunk(file_hash, index, read_chunk(path, index, chunk_size))

        if workers > 1 and len(missing) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                list(pool.map(send, missing))
        else:
            for index in missing:
                send(index)

        attempts = self.config.get_retry_config()['max_retries']
        while True:
            try:
                result = self.merge(name, file_hash, file_size, chunk_size)
                break
            except UploadError as e:
                if e.code not in REUPLOAD_CODES or e.chunk_index is None or attempts <= 0:
                    raise
                attempts -= 1
                logger.warning(f"Server reported {e.code} for chunk {e.chunk_index}, re-uploading it")
                send(e.chunk_index)

        # Chunks left over from an upload with another chunk size merge into the wrong bytes.
        if result['size'] != file_size:
            logger.error(
                f"Merged size {result['size']} of {file_hash} does not match local size {file_size}"
            )
            raise UploadError(
                f"{ERROR_MESSAGES['SIZE_MISMATCH']} (server {result['size']} bytes, local {file_size} bytes)",
                code='SIZE_MISMATCH',
            )
        return result

    def upload_status(self, file_path: str, chunk_size: Optional[int] = None) -> Dict:
        """
        Report upload progress of a local file.

        Returns:
            Dictionary with file_hash, uploaded (sorted indices) and total_chunks
        """
        chunk_size = chunk_size or self.config.get_chunk_size()
        file_size = os.path.getsize(file_path)
        file_hash = compute_file_checksum(file_path)
        return {
            'file_hash': file_hash,
            'uploaded': self.check(file_hash),
            'total_chunks': count_chunks(file_size, chunk_size),
        }
