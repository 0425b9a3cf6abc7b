import logging

import httpx

from boardsync.config import settings
from boardsync.errors import SearchIndexError

logger = logging.getLogger(__name__)


class SearchIndex:
    """
    Thin client for the hosted search index (Algolia REST API).

    ``add_object`` posts to ``/1/indexes/{index}``, which makes the index
    generate the ``objectID`` itself.
    """

    def __init__(
        self,
        app_id: str | None = None,
        api_key: str | None = None,
        index_name: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        app_id = app_id if app_id is not None else settings.SEARCH_APP_ID
        api_key = api_key if api_key is not None else settings.SEARCH_API_KEY
        self.index_name = index_name or settings.SEARCH_INDEX_NAME
        self._client = client or httpx.AsyncClient(
            base_url=f"https://{app_id}.algolia.net",
            headers={
                "X-Algolia-Application-Id": app_id,
                "X-Algolia-API-Key": api_key,
            },
            timeout=settings.HTTP_TIMEOUT,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def add_object(self, document: dict) -> str:
        """Store *document* and return the generated object id."""
        resp = await self._client.post(f"/1/indexes/{self.index_name}", json=document)
        if resp.is_error:
            raise SearchIndexError(
                f"index {self.index_name!r} rejected document: {resp.status_code} {resp.text}"
            )
        object_id = resp.json().get("objectID")
        logger.debug("Indexed object %s in %s", object_id, self.index_name)
        return object_id
