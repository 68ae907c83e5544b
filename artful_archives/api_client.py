"""
CMS API client - read access to remote stories.

Only the story read endpoints are used here; the cache needs nothing else
from the backend.
"""

import logging
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ValidationError

from .domain import Story, WorkflowStage

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for remote API failures."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class UnauthorizedError(APIError):
    pass


class StoryNotFoundError(APIError):
    pass


class ServerError(APIError):
    pass


class StoriesPage(BaseModel):
    data: list[Story]
    total: int | None = None
    page: int | None = None
    page_size: int | None = None


class _StoryDetail(BaseModel):
    data: Story


@dataclass
class StoryListParams:
    page: int = 1
    page_size: int = 20
    workflow_stage: WorkflowStage | None = None

    def to_query(self) -> dict[str, str]:
        query = {"page": str(self.page), "pageSize": str(self.page_size)}
        if self.workflow_stage:
            query["workflowStage"] = self.workflow_stage.value
        return query


class StoryAPIClient:
    """Async client for the CMS story endpoints."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def fetch_stories(self, params: StoryListParams | None = None) -> StoriesPage:
        params = params or StoryListParams()
        payload = await self._get("/api/v1/stories", query=params.to_query())
        try:
            return StoriesPage.model_validate(payload)
        except ValidationError as e:
            raise APIError(f"Unexpected stories response: {e}") from e

    async def fetch_story(self, story_id: int) -> Story:
        payload = await self._get(f"/api/v1/stories/{story_id}")
        try:
            return _StoryDetail.model_validate(payload).data
        except ValidationError as e:
            raise APIError(f"Unexpected response for story {story_id}: {e}") from e

    async def _get(self, path: str, query: dict[str, str] | None = None) -> dict:
        try:
            response = await self._client.get(path, params=query)
        except httpx.HTTPError as e:
            logger.warning(f"CMS request {path} failed: {e}")
            raise APIError(f"Request to {path} failed: {e}") from e

        status = response.status_code
        if 200 <= status < 300:
            try:
                return response.json()
            except ValueError as e:
                raise APIError(f"Invalid JSON from {path}", status) from e
        if status == 401:
            raise UnauthorizedError("CMS API rejected credentials", status)
        if status == 404:
            raise StoryNotFoundError(f"Not found: {path}", status)
        if status >= 500:
            raise ServerError(f"CMS server error {status} for {path}", status)
        raise APIError(f"Unexpected status {status} for {path}", status)
