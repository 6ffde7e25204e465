"""HTTP client for communicating with the SplitStore file server."""

import os
import time
import uuid
from email.message import Message
from email.utils import collapse_rfc2231_value
from pathlib import Path
from typing import Optional

import httpx

from cli.config import Config
from cli.utils import end_progress, format_file_size, show_progress
from common.logging_config import get_logger

logger = get_logger(__name__)


class SplitStoreClient:
    """HTTP client for the file server API with retry logic and error handling."""

    def __init__(self, config: Config, transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize file server client.

        Args:
            config: Configuration instance
            transport: Optional httpx transport (tests pass an ``httpx.MockTransport``)
        """
        self.config = config
        self.transport = transport
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout(),
            transport=transport,
        )
        self.request_id = None
        logger.info(f"Initialized SplitStoreClient [base_url={config.get_base_url()}]")

    def _calculate_upload_timeout(self, file_size: int) -> float:
        """
        Calculate timeout for upload based on file size.

        Returns:
            Timeout in seconds (30s base + 0.1s per MB)
        """
        base_timeout = 30.0
        size_mb = file_size / (1024 * 1024)
        return base_timeout + size_mb * 0.1

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, etc.)
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

        last_exception = None

        self.request_id = str(uuid.uuid4())
        kwargs.setdefault('headers', {})
        kwargs['headers']['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
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
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                    )

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        raise ConnectionError("Cannot connect to file server. Is it running?")

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map HTTP errors to user-friendly messages.
        """
        try:
            error_data = response.json()
            detail = error_data.get('detail', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text if response.text else 'Unknown error'
            code = 'UNKNOWN'

        error_messages = {
            'FILE_NOT_FOUND': 'File not found on server.',
            'BUCKET_WRITE_FAILED': 'A storage bucket rejected the upload. Nothing was stored; please try again later.',
            'BUCKET_READ_FAILED': 'A storage bucket could not return its chunk. Please try again later.',
            'CATALOG_ERROR': 'The file catalog is unavailable.',
        }

        if code in error_messages:
            return error_messages[code]

        status_messages = {
            400: 'Bad request',
            404: 'Not found',
            413: 'File too large',
            422: 'Invalid request',
            500: 'Server error',
            503: 'Service unavailable',
        }

        message = status_messages.get(response.status_code, detail)
        return f"{message} (Code: {code})" if code != 'UNKNOWN' else message

    def upload(self, file_path: str) -> str:
        """
        Upload one local file.

        Returns:
            Formatted result message
        """
        path = Path(file_path).expanduser()
        if not path.exists():
            return f"Error: File not found: {file_path}"
        if not path.is_file():
            return f"Error: Not a file: {file_path}"

        file_size = path.stat().st_size
        filename = path.name
        logger.info(f"Uploading {path} ({file_size} bytes)")

        try:
            with open(path, 'rb') as f:
                content = f.read()

            with httpx.Client(
                base_url=self.config.get_base_url(),
                timeout=self._calculate_upload_timeout(file_size),
                transport=self.transport,
            ) as upload_client:
                response = upload_client.post('/files', files={'file': (filename, content)})

            if response.status_code == 201:
                result = response.json()
                return (
                    f"Uploaded: {result['name']} "
                    f"(ID: {result['file_id']}, "
                    f"Size: {format_file_size(result['size'])}, "
                    f"Chunks: {result['chunk_count']})"
                )
            return f"Error uploading {file_path}: {self._format_error(response)}"

        except httpx.ConnectError:
            return f"Error uploading {file_path}: Cannot connect to file server"
        except httpx.TimeoutException:
            return f"Error uploading {file_path}: Upload timed out (file size: {format_file_size(file_size)})"
        except OSError as e:
            return f"Error reading {file_path}: {e}"

    def list_files(self) -> str:
        """
        Returns:
            Formatted list of files
        """
        try:
            response = self._request_with_retry('GET', '/files')
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code != 200:
            return f"Error: {self._format_error(response)}"

        files = response.json()['files']
        if not files:
            return "No files stored yet."

        output = [f"Found {len(files)} file(s):\n"]
        for file_meta in files:
            output.append(
                f"  - [{file_meta['file_id']}] {file_meta['name']}\n"
                f"    Size: {format_file_size(file_meta['size'])}\n"
                f"    Created: {file_meta['created_at']}"
            )
        return '\n'.join(output)

    def file_info(self, file_id: int) -> str:
        """
        Returns:
            Formatted metadata and chunk layout of one file
        """
        try:
            response = self._request_with_retry('GET', f'/files/{file_id}')
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code != 200:
            return f"Error: {self._format_error(response)}"

        data = response.json()
        output = [
            f"File {data['file_id']}: {data['name']}",
            f"  Size: {format_file_size(data['size'])} ({data['size']} bytes)",
            f"  Created: {data['created_at']}",
            f"  Chunks:",
        ]
        for chunk in data['chunks']:
            output.append(f"    bucket{chunk['bucket']}: {chunk['chunk_id']} ({chunk['size']} bytes)")
        return '\n'.join(output)

    def _resolve_output_path(self, output_path: Optional[str], filename: str) -> Path:
        if output_path:
            output_file = Path(output_path).expanduser()
            if output_file.is_dir():
                output_file = output_file / filename
        else:
            output_file = self.config.get_download_dir() / filename
        output_file.parent.mkdir(parents=True, exist_ok=True)
        return output_file

    def download(self, file_id: int, output_path: Optional[str] = None) -> str:
        """
        Download a file by id with progress feedback.

        The server declares the file length up front; a body that ends short of
        it means a bucket failed mid-stream, so the partial file is removed and
        an error is reported.

        Returns:
            Success or error message
        """
        output_file = None
        try:
            with self.session.stream('GET', f'/files/{file_id}/download') as response:
                if response.status_code != 200:
                    response.read()
                    return f"Error: {self._format_error(response)}"

                filename = _filename_from_disposition(
                    response.headers.get('Content-Disposition', ''), default=f"file-{file_id}"
                )
                output_file = self._resolve_output_path(output_path, filename)
                total_size = int(response.headers.get('Content-Length', 0))
                downloaded = 0

                with open(output_file, 'wb') as f:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        f.write(chunk)
                        downloaded += len(chunk)
                        show_progress("Downloading", filename, downloaded, total_size)

                end_progress()

        except httpx.ConnectError:
            return "Error: Cannot connect to file server. Is it running?"
        except httpx.TimeoutException:
            _discard(output_file)
            return "Error: Request timed out. Server may be overloaded."
        except httpx.HTTPError as e:
            _discard(output_file)
            logger.error(f"Download of file {file_id} interrupted: {e}")
            return f"Error: Download of file {file_id} was interrupted: {e}"
        except OSError as e:
            _discard(output_file)
            return f"Error writing file: {e}"

        if 'Content-Length' in response.headers and downloaded != total_size:
            _discard(output_file)
            logger.error(f"Download of file {file_id} truncated: {downloaded} of {total_size} bytes")
            return f"Error: Download truncated ({downloaded} of {total_size} bytes received); partial file removed."

        return f"Downloaded: {filename} ({format_file_size(downloaded)})\nSaved to: {output_file.absolute()}"

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()


def _filename_from_disposition(header: str, default: str) -> str:
    if not header:
        return default

    message = Message()
    message['Content-Disposition'] = header
    params = message.get_params(header='Content-Disposition') or []
    values = [value for key, value in params[1:] if key.lower() == 'filename']
    # filename* arrives as a (charset, language, value) tuple and wins over the ASCII fallback
    values.sort(key=lambda value: not isinstance(value, tuple))

    for value in values:
        name = os.path.basename(collapse_rfc2231_value(value).replace('\\', '/'))
        if name:
            return name
    return default


def _discard(path: Optional[Path]) -> None:
    if path is not None and path.exists():
        path.unlink()
