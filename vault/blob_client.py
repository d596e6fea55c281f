"""Client abstraction for storing encrypted chunks on the remote blob backend."""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from common.constants import BACKEND_TIMEOUT_SECONDS, DISCORD_API_BASE, RATE_LIMIT_MAX_WAIT_SECONDS
from common.logging_config import get_logger
from vault.exceptions import BackendRejected, BackendUnavailable, ReferenceNotFound

logger = get_logger(__name__)


class RemoteBlobClient(ABC):
    """
    Opaque remote object store: upload returns a reference, a reference can be
    resolved back to its bytes or deleted.

    One instance is created per process and shared by every request.
    """

    @abstractmethod
    async def upload(self, data: bytes, label: str) -> str:
        """
        Store data remotely tagged with a human-readable label.

        Returns:
            Opaque reference for later resolve/delete

        Raises:
            BackendUnavailable: On connection, timeout or authentication failure
            BackendRejected: If the backend refuses the object (size, quota)
        """

    @abstractmethod
    async def resolve(self, reference: str) -> bytes:
        """
        Fetch the bytes stored under reference.

        Raises:
            ReferenceNotFound: If the remote object no longer exists
            BackendUnavailable: On connection, timeout or authentication failure
        """

    @abstractmethod
    async def delete(self, reference: str) -> None:
        """
        Remove the remote object.

        Raises:
            ReferenceNotFound: If the object is already absent
            BackendUnavailable: On connection, timeout or authentication failure
        """

    async def close(self) -> None:
        """Release the backend session."""


def _attachment_filename(label: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9._-]+", "_", label).strip("_") or "chunk"
    return f"{slug[:80]}.bin"


class DiscordBlobClient(RemoteBlobClient):
    """
    Stores each chunk as an attachment of one message in a Discord channel.

    The message id is the reference; resolving fetches the message to obtain the
    attachment's time-limited CDN URL, then downloads the attachment.
    """

    def __init__(
        self,
        token: str,
        channel_id: str,
        api_base: str = DISCORD_API_BASE,
        timeout: float = BACKEND_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rate_limit_max_wait: float = RATE_LIMIT_MAX_WAIT_SECONDS,
    ):
        self.channel_id = channel_id
        self.rate_limit_max_wait = rate_limit_max_wait
        self._api = httpx.AsyncClient(
            base_url=api_base,
            headers={"Authorization": f"Bot {token}"},
            timeout=timeout,
            transport=transport,
        )
        # Attachment URLs are pre-signed; the bot token must not reach the CDN.
        self._cdn = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)
        logger.info(f"Established backend session [channel={channel_id}] [api={api_base}]")

    async def close(self) -> None:
        await self._api.aclose()
        await self._cdn.aclose()
        logger.info("Closed backend session")

    def _messages_path(self, reference: Optional[str] = None) -> str:
        path = f"/channels/{self.channel_id}/messages"
        return f"{path}/{reference}" if reference else path

    async def _send(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Send one request, waiting out a single rate limit when the backend asks
        for no more than rate_limit_max_wait seconds.
        """
        response = await self._request(client, method, url, **kwargs)
        if response.status_code == 429:
            delay = self._retry_after(response)
            if delay is not None and delay <= self.rate_limit_max_wait:
                logger.warning(f"Rate limited on {method} {url}; retrying in {delay:.2f}s")
                await asyncio.sleep(delay)
                response = await self._request(client, method, url, **kwargs)
        return response

    @staticmethod
    def _retry_after(response: httpx.Response) -> Optional[float]:
        try:
            body = response.json()
        except ValueError:
            body = None
        raw = body.get("retry_after") if isinstance(body, dict) else None
        if raw is None:
            raw = response.headers.get("Retry-After")
        try:
            return max(float(raw), 0.0) if raw is not None else None
        except (TypeError, ValueError):
            return None

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise BackendUnavailable(f"Backend request timed out: {method} {url}") from e
        except httpx.TransportError as e:
            raise BackendUnavailable(f"Cannot reach backend: {type(e).__name__}: {e}") from e

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str, reference: Optional[str] = None) -> None:
        code = response.status_code
        if code < 400:
            return
        if code == 404 and reference is not None:
            raise ReferenceNotFound(reference)
        if code == 429 or code >= 500:
            raise BackendUnavailable(f"Backend unavailable during {action} (status {code})")
        if code == 401:
            raise BackendUnavailable(f"Backend authentication failed during {action} (status {code})")
        raise BackendRejected(f"Backend rejected {action} (status {code}): {response.text[:200]}")

    async def upload(self, data: bytes, label: str) -> str:
        filename = _attachment_filename(label)
        payload = {
            "content": label,
            "attachments": [{"id": 0, "filename": filename}],
        }

        response = await self._send(
            self._api,
            "POST",
            self._messages_path(),
            data={"payload_json": json.dumps(payload)},
            files={"files[0]": (filename, data, "application/octet-stream")},
        )
        self._raise_for_status(response, "upload")

        reference = str(response.json()["id"])
        logger.info(f"Uploaded {len(data)} bytes [reference={reference}] [label={label}]")
        return reference

    async def resolve(self, reference: str) -> bytes:
        response = await self._send(self._api, "GET", self._messages_path(reference))
        self._raise_for_status(response, "resolve", reference)

        attachments = response.json().get("attachments") or []
        if not attachments:
            raise ReferenceNotFound(reference, f"Message {reference} carries no attachment")

        url = attachments[0]["url"]
        download = await self._send(self._cdn, "GET", url)
        self._raise_for_status(download, "attachment download", reference)

        logger.debug(f"Resolved {len(download.content)} bytes [reference={reference}]")
        return download.content

    async def delete(self, reference: str) -> None:
        response = await self._send(self._api, "DELETE", self._messages_path(reference))
        self._raise_for_status(response, "delete", reference)
        logger.info(f"Deleted remote object [reference={reference}]")
