"""Container engine client over the local Unix control socket.

Thin async wrapper around the Docker SDK's low-level ``APIClient``. It exposes
the handful of engine primitives stack orchestration needs and translates SDK
and transport failures into the typed errors in ``core.exceptions``. It knows
nothing about stacks or services.
"""

import asyncio
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

import docker
import requests
import structlog
from pydantic import ValidationError

from ..constants import DEFAULT_IMAGE_TAG
from ..models.container import ContainerRecord
from .exceptions import (
    EngineRequestFailed,
    EngineResponseMalformed,
    EngineUnavailable,
)
from .settings import EngineSettings

logger = structlog.get_logger()

T = TypeVar("T")


def split_image_reference(image: str) -> tuple[str, str]:
    """Split ``repository[:tag]`` into ``(repository, tag)``.

    Only a colon after the last slash separates the tag, so registry ports
    (``registry:5000/app``) are not mistaken for tags. Missing or empty tags
    default to ``latest``. Digest references (``app@sha256:...``) keep the
    digest as the tag.
    """
    if "@" in image:
        repository, digest = image.rsplit("@", 1)
        return repository, digest
    last_colon = image.rfind(":")
    last_slash = image.rfind("/")
    if last_colon == -1 or last_colon < last_slash:
        return image, DEFAULT_IMAGE_TAG
    return image[:last_colon], image[last_colon + 1 :] or DEFAULT_IMAGE_TAG


class EngineClient:
    """Engine primitives: list, start, stop, restart and image pull."""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        client_factory: Callable[..., Any] | None = None,
    ):
        self.settings = settings if settings is not None else EngineSettings()
        self._client_factory = client_factory or docker.APIClient
        self._client: Any | None = None
        self._client_lock = threading.Lock()

    @property
    def socket_path(self) -> str:
        return self.settings.docker_socket

    def ensure_available(self) -> None:
        """Raise EngineUnavailable unless the control socket exists and is accessible."""
        path = Path(self.socket_path)
        if not path.exists():
            raise EngineUnavailable(
                f"Docker socket not found at {self.socket_path}. "
                "Configure the DOCKER_SOCKET environment variable if necessary.",
                socket_path=self.socket_path,
            )
        if not os.access(path, os.R_OK | os.W_OK):
            raise EngineUnavailable(
                f"Permission denied when accessing Docker socket at {self.socket_path}.",
                socket_path=self.socket_path,
            )

    async def is_available(self) -> bool:
        """True iff the socket exists and the engine answers a ping."""
        try:
            self.ensure_available()
            return bool(await self._call("ping", lambda client: client.ping()))
        except (EngineUnavailable, EngineRequestFailed) as e:
            logger.debug("Engine not available", socket_path=self.socket_path, error=str(e))
            return False

    async def list_containers(self) -> list[ContainerRecord]:
        """Return every container the engine knows about, including stopped ones."""
        payload = await self._call("list_containers", lambda client: client.containers(all=True))
        if not isinstance(payload, list):
            raise EngineResponseMalformed(
                f"Expected a list of containers, got {type(payload).__name__}"
            )
        try:
            return [ContainerRecord.model_validate(item) for item in payload]
        except ValidationError as e:
            raise EngineResponseMalformed(f"Unexpected container payload: {e}") from e

    async def start(self, container_id: str) -> None:
        await self._call("start", lambda client: client.start(container_id))

    async def stop(self, container_id: str) -> None:
        timeout = self.settings.docker_stop_timeout
        await self._call("stop", lambda client: client.stop(container_id, timeout=timeout))

    async def restart(self, container_id: str) -> None:
        timeout = self.settings.docker_stop_timeout
        await self._call("restart", lambda client: client.restart(container_id, timeout=timeout))

    async def pull_image(self, image: str) -> None:
        """Pull ``image``; success means the engine accepted the pull request."""
        repository, tag = split_image_reference(image)
        await self._call(
            "pull_image", lambda client: client.pull(repository, tag=tag, stream=False)
        )

    def close(self) -> None:
        with self._client_lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()

    def _get_client(self) -> Any:
        # Worker threads share one cached client
        with self._client_lock:
            if self._client is None:
                self._client = self._client_factory(
                    base_url=self.settings.base_url,
                    version=self.settings.docker_api_version,
                    timeout=self.settings.docker_client_timeout,
                )
            return self._client

    def _discard_client(self, client: Any) -> None:
        with self._client_lock:
            if self._client is not client:
                return
            self._client = None
        client.close()

    async def _call(self, operation: str, fn: Callable[[Any], T]) -> T:
        """Run one SDK call on a worker thread, translating failures."""
        return await asyncio.to_thread(self._call_sync, operation, fn)

    def _call_sync(self, operation: str, fn: Callable[[Any], T]) -> T:
        client = None
        try:
            client = self._get_client()
            return fn(client)
        except docker.errors.APIError as e:
            status_code = e.response.status_code if e.response is not None else None
            body = e.explanation or (e.response.text if e.response is not None else "") or ""
            logger.warning(
                "Engine rejected request", operation=operation, status_code=status_code, body=body
            )
            raise EngineRequestFailed(
                f"Docker API responded with status {status_code}: {body}",
                status_code=status_code,
                body=body,
            ) from e
        except ValueError as e:
            # requests' JSONDecodeError is a ValueError
            raise EngineResponseMalformed(f"Failed to parse Docker response: {e}") from e
        except (requests.exceptions.RequestException, docker.errors.DockerException, OSError) as e:
            # A failed handshake must not be cached as a working client
            if client is not None:
                self._discard_client(client)
            raise EngineUnavailable(
                f"Docker engine unreachable at {self.socket_path}: {e}",
                socket_path=self.socket_path,
            ) from e
