"""
Directory client for the Messaging Service.

Resolves user ids to display profiles (auth service) and project ids to
project summaries (project service). Lookups are batched: one request per
kind per enrichment pass. Lookup failures never fail the caller; the
enrichment simply comes back empty.
"""

from typing import Dict, Iterable, Optional, Type, TypeVar
from uuid import UUID

import httpx
from fastapi import status
from pydantic import BaseModel, ValidationError

from ..config import settings
from ..logging_config import logger
from ..schemas.directory import ProfileRead, ProjectRead

ModelT = TypeVar("ModelT", bound=BaseModel)


class DirectoryClient:
    """Client for the profile and project lookups the messaging views need."""

    def __init__(
        self,
        profiles_url: str,
        projects_url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            profiles_url: Batch profile endpoint on the auth service
            projects_url: Batch project endpoint on the project service
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport override
        """
        self.profiles_url = profiles_url
        self.projects_url = projects_url
        self.timeout = timeout
        self.transport = transport
        logger.info(
            f"Initialized directory client (profiles={self.profiles_url}, projects={self.projects_url})"
        )

    async def get_profiles(self, user_ids: Iterable[UUID]) -> Dict[UUID, ProfileRead]:
        return await self._fetch_many(self.profiles_url, user_ids, ProfileRead)

    async def get_projects(self, project_ids: Iterable[Optional[UUID]]) -> Dict[UUID, ProjectRead]:
        return await self._fetch_many(self.projects_url, project_ids, ProjectRead)

    async def _fetch_many(
        self, url: str, ids: Iterable[Optional[UUID]], model: Type[ModelT]
    ) -> Dict[UUID, ModelT]:
        unique_ids = sorted({i for i in ids if i is not None}, key=str)
        if not unique_ids:
            return {}

        params = {"ids": ",".join(str(i) for i in unique_ids)}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, params=params, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.warning(f"Directory lookup at {url} failed: {e}")
            return {}

        if response.status_code != status.HTTP_200_OK:
            logger.warning(
                f"Directory lookup at {url} returned {response.status_code}: {response.text[:200]}"
            )
            return {}

        try:
            payload = response.json()
            items = [model.model_validate(item) for item in payload]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Directory lookup at {url} returned an unexpected payload: {e}")
            return {}

        return {item.id: item for item in items}


_directory_client: Optional[DirectoryClient] = None


def get_directory_client() -> DirectoryClient:
    """FastAPI dependency returning the shared directory client."""
    global _directory_client
    if _directory_client is None:
        _directory_client = DirectoryClient(
            profiles_url=f"{settings.AUTH_SERVICE_URL.rstrip('/')}/profiles",
            projects_url=f"{settings.PROJECT_SERVICE_URL.rstrip('/')}/projects",
            timeout=settings.DIRECTORY_TIMEOUT_SECONDS,
        )
    return _directory_client
