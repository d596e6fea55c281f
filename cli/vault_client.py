"""HTTP client for communicating with the vault service."""

import mimetypes
import os
import sys
import tempfile
import time
import uuid
from pathlib import Path
from typing import Optional

import httpx

from common.logging_config import get_logger
from cli.config import Config
from cli.utils import ProgressReader, format_file_size, print_progress

logger = get_logger(__name__)


class VaultClient:
    """HTTP client for the vault API with retry logic and error handling."""

    def __init__(self, config: Config):
        """
        Initialize vault client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized VaultClient [base_url={config.get_base_url()}]")

    def _calculate_upload_timeout(self, file_size: int) -> float:
        """
        Calculate timeout for upload based on file size.

        Returns:
            Timeout in seconds (60s base + 1s per MB; each chunk crosses the backend)
        """
        size_mb = file_size / (1024 * 1024)
        return 60.0 + size_mb

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Send an idempotent request, retrying 5xx responses and network failures
        with exponential backoff. Uploads are never sent through here.

        Raises:
            ConnectionError: If the server stays unreachable after all retries
        """
        retry_config = self.config.get_retry_config()
        if max_retries is None:
            max_retries = retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        self.request_id = str(uuid.uuid4())
        headers = {**kwargs.pop('headers', {}), 'X-Request-ID': self.request_id}
        tag = f"{method} {endpoint} [request_id={self.request_id}]"

        attempt = 0
        while True:
            try:
                response = self.session.request(method, endpoint, headers=headers, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                if attempt >= max_retries:
                    logger.error(f"Network error, giving up: {tag} error={e}")
                    if isinstance(e, httpx.TimeoutException):
                        raise ConnectionError("Request timed out. Server may be overloaded.") from e
                    raise ConnectionError("Cannot connect to vault server. Is it running?") from e
                reason = type(e).__name__
            else:
                logger.debug(f"Response status={response.status_code}: {tag}")
                if response.status_code < 500 or attempt >= max_retries:
                    return response
                reason = f"status={response.status_code}"

            delay = backoff ** attempt
            attempt += 1
            logger.warning(f"Retrying in {delay}s ({reason}, attempt {attempt + 1}/{max_retries + 1}): {tag}")
            time.sleep(delay)

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
            'FILE_NOT_FOUND': 'File not found.',
            'BACKEND_UNAVAILABLE': 'Storage backend is currently unavailable. Please try again later.',
            'BACKEND_REJECTED': 'Storage backend rejected the request.',
            'RECONSTRUCTION_FAILED': 'File could not be reconstructed from its chunks.',
            'DELETION_FAILED': 'Some chunks could not be deleted; the file is kept. Retry the delete.',
            'UPLOAD_FAILED': 'Upload failed; no file record was created.',
            'CATALOG_WRITE_FAILED': 'Could not save file information.',
        }

        if code in error_messages:
            return error_messages[code]

        status_messages = {
            400: 'Bad request',
            404: 'Not found',
            413: 'File too large',
            422: 'Invalid request',
            500: 'Operation failed',
            503: 'Service unavailable',
        }

        message = status_messages.get(response.status_code, detail)
        return f"{message} (Code: {code})" if code != 'UNKNOWN' else message

    def _check_upload_path(self, file_path: str) -> tuple[Optional[Path], Optional[str]]:
        path = Path(file_path).expanduser()
        if not path.exists():
            return None, f"File not found: {file_path}"
        if not path.is_file():
            return None, f"Not a file: {file_path}"
        return path, None

    @staticmethod
    def _guess_type(path: Path) -> str:
        return mimetypes.guess_type(path.name)[0] or 'application/octet-stream'

    def upload_files(self, file_paths: list[str]) -> str:
        """
        Upload files, one request per file.

        Returns:
            Formatted result message with upload status for each file
        """
        results = []

        for file_path in file_paths:
            path, error = self._check_upload_path(file_path)
            if error:
                results.append(f"Error: {error}")
                continue

            file_size = path.stat().st_size
            upload_timeout = self._calculate_upload_timeout(file_size)

            try:
                with open(path, 'rb') as f:
                    reader = ProgressReader(f, file_size, f"Uploading {path.name}")
                    response = self.session.post(
                        '/upload',
                        files={'file': (path.name, reader, self._guess_type(path))},
                        timeout=upload_timeout,
                    )

                if response.status_code == 201:
                    result = response.json()
                    results.append(
                        f"Uploaded: {result['file_name']} "
                        f"(ID: {result['id']}, "
                        f"Size: {format_file_size(result['file_size'])}, "
                        f"Chunks: {result['total_chunks']})"
                    )
                else:
                    results.append(f"Error uploading {file_path}: {self._format_error(response)}")

            except httpx.ConnectError:
                results.append(f"Error uploading {file_path}: Cannot connect to vault server")
            except httpx.TimeoutException:
                results.append(
                    f"Error uploading {file_path}: Upload timed out "
                    f"(file size: {format_file_size(file_size)}, timeout: {upload_timeout:.1f}s)"
                )
            except OSError as e:
                results.append(f"Error reading {file_path}: {e}")

        return '\n'.join(results) if results else "No files uploaded."

    def bulk_upload(self, file_paths: list[str]) -> str:
        """
        Upload files in one bulk request.

        Returns:
            Formatted result with the chunk count of each stored file
        """
        paths = []
        for file_path in file_paths:
            path, error = self._check_upload_path(file_path)
            if error:
                return f"Error: {error}"
            paths.append(path)

        total_size = sum(path.stat().st_size for path in paths)
        handles = []
        try:
            for path in paths:
                handles.append(open(path, 'rb'))

            files = [
                ('files', (path.name, handle, self._guess_type(path)))
                for path, handle in zip(paths, handles)
            ]
            response = self.session.post(
                '/bulkUpload',
                files=files,
                timeout=self._calculate_upload_timeout(total_size),
            )
        except httpx.ConnectError:
            return "Error: Cannot connect to vault server. Is it running?"
        except httpx.TimeoutException:
            return f"Error: Bulk upload timed out ({format_file_size(total_size)} total)"
        except OSError as e:
            return f"Error reading files: {e}"
        finally:
            for handle in handles:
                handle.close()

        if response.status_code != 200:
            return f"Error: {self._format_error(response)}"

        entries = response.json()['bulk_message_ids']
        output = [f"Bulk upload completed: {len(entries)} file(s)"]
        for entry in entries:
            output.append(f"  - {entry['file_name']} ({len(entry['chunk_references'])} chunk(s))")
        return '\n'.join(output)

    def list_files(self) -> str:
        """
        List all stored files.

        Returns:
            Formatted list of files with the total stored size
        """
        try:
            response = self._request_with_retry('GET', '/files')
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code != 200:
            return f"Error: {self._format_error(response)}"

        data = response.json()
        files = data['files']

        if not files:
            return "No files stored."

        output = [f"Found {len(files)} file(s), {format_file_size(data['total_size'])} total:\n"]
        for file_meta in files:
            output.append(
                f"  - [{file_meta['id']}] {file_meta['file_name']}\n"
                f"    Type: {file_meta['file_type']}\n"
                f"    Size: {format_file_size(file_meta['file_size'])} in {file_meta['total_chunks']} chunk(s)\n"
                f"    Created: {file_meta.get('created_at')}"
            )

        return '\n'.join(output)

    def delete_file(self, file_id: int) -> str:
        try:
            response = self._request_with_retry('DELETE', f'/delete/{file_id}')
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code == 200:
            return f"Deleted file {file_id}."
        return f"Error: {self._format_error(response)}"

    def download(self, file_id: int, output_path: Optional[str] = None) -> str:
        """
        Download a file by id with progress feedback.

        The body is written to a temporary file beside the target, which only
        replaces the target once every byte has arrived. An interrupted download
        leaves any existing file at the target untouched.

        Args:
            file_id: Catalog id of the file
            output_path: Optional output path; defaults to the stored file name in
                the current directory. An existing directory receives the stored name.

        Returns:
            Success message with download details
        """
        partial_file = None
        try:
            with self.session.stream('GET', f'/download/{file_id}') as response:
                if response.status_code != 200:
                    response.read()
                    return f"Error: {self._format_error(response)}"

                filename = self._filename_from_headers(response) or f"file_{file_id}"
                output_file = Path(output_path).expanduser() if output_path else Path(filename)
                if output_file.is_dir():
                    output_file = output_file / filename
                output_file.parent.mkdir(parents=True, exist_ok=True)

                expected_size = response.headers.get('Content-Length')
                total_size = int(expected_size) if expected_size is not None else 0
                downloaded = 0

                with tempfile.NamedTemporaryFile(
                    dir=output_file.parent,
                    prefix=f".{output_file.name}.",
                    suffix='.part',
                    delete=False,
                ) as f:
                    partial_file = Path(f.name)
                    for chunk in response.iter_bytes(chunk_size=65536):
                        f.write(chunk)
                        downloaded += len(chunk)
                        print_progress(f"Downloading {filename}", downloaded, total_size)

                sys.stdout.write('\n')
                sys.stdout.flush()

                if expected_size is not None and downloaded != total_size:
                    logger.error(
                        f"Download of file {file_id} ended early: {downloaded} of {total_size} bytes"
                    )
                    return (
                        f"Error: Download incomplete ({format_file_size(downloaded)} of "
                        f"{format_file_size(total_size)}); nothing was saved."
                    )

                os.replace(partial_file, output_file)
                partial_file = None

                return f"Downloaded: {filename} ({format_file_size(downloaded)})\nSaved to: {output_file.absolute()}"

        except httpx.ConnectError:
            return "Error: Cannot connect to vault server. Is it running?"
        except httpx.TimeoutException:
            return "Error: Request timed out. Server may be overloaded."
        except httpx.RemoteProtocolError:
            return "Error: Download interrupted; the file could not be fully reconstructed."
        except OSError as e:
            return f"Error writing file: {e}"
        finally:
            if partial_file is not None:
                partial_file.unlink(missing_ok=True)

    @staticmethod
    def _filename_from_headers(response: httpx.Response) -> Optional[str]:
        from urllib.parse import unquote

        disposition = response.headers.get('Content-Disposition', '')
        marker = "filename*=UTF-8''"
        if marker in disposition:
            return os.path.basename(unquote(disposition.split(marker, 1)[1].strip()))
        return None

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
