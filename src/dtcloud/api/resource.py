"""Shared plumbing for the per-resource API classes."""
from typing import Any, Optional

from .client import RequestExecutor
from .pagination import PagedResult, PaginationConfig, Paginator
from .request import HTTPMethod, Request


def update_mask(patch: dict[str, Any]) -> str:
    """Comma separated field paths of a PATCH body, e.g. "displayName,httpConfig.url".

    Nested objects expand one level only.
    """
    paths = []
    for key, value in patch.items():
        if isinstance(value, dict) and value:
            paths.extend(f"{key}.{sub}" for sub in value)
        else:
            paths.append(key)
    return ",".join(paths)


def list_request(endpoint: str, params: Optional[dict] = None) -> Request:
    """GET request for a list endpoint; None-valued params are left out."""
    request = Request(HTTPMethod.GET, endpoint)
    for name, value in (params or {}).items():
        if value is not None:
            request.set_param(name, value)
    return request


class ResourceAPI:
    """Base for thin resource wrappers over a RequestExecutor.

    Attributes:
        executor: RequestExecutor all calls go through
        paginator: Paginator bound to the same executor
    """

    def __init__(self, executor: RequestExecutor):
        self.executor = executor
        self.paginator = Paginator(executor)

    async def _list(
        self,
        endpoint: str,
        paging_key: str,
        model: Any,
        params: Optional[dict] = None,
        config: Optional[PaginationConfig] = None,
    ) -> list:
        request = list_request(endpoint, params)
        return await self.paginator.collect_all(request, paging_key, model=model, config=config)

    async def _page(
        self,
        endpoint: str,
        paging_key: str,
        model: Any,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
        params: Optional[dict] = None,
    ) -> PagedResult:
        return await self.paginator.get_page(
            list_request(endpoint, params),
            paging_key,
            model=model,
            page_size=page_size,
            page_token=page_token,
        )

    async def _patch_masked(self, endpoint: str, patch: dict[str, Any], model: Any) -> Any:
        """PATCH only the given fields, naming them in the update_mask parameter."""
        request = Request.json(HTTPMethod.PATCH, endpoint, patch)
        request.set_param("update_mask", update_mask(patch))
        return await self.executor.send(request, model)
