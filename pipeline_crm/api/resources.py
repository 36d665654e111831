"""
API - Resources

Clients CRUD des ressources métier du pipeline commercial. Ils ne portent
aucune règle métier: la forme des données appartient à l'API.
"""

from typing import Any, Dict, Optional, Union

from .client import ApiClient
from .envelope import Result

ResourceId = Union[int, str]


class ResourceClient:
    """
    Opérations list/get/create/update/delete sur une collection REST.

    Example:
        leads = ResourceClient(api, "/api/Leads")
        result = await leads.list(page=2, search="acme")
    """

    def __init__(self, api: ApiClient, path: str) -> None:
        if not path.startswith("/"):
            raise ValueError(f"Resource path must start with '/': {path}")
        self._api = api
        self._path = path.rstrip("/")

    @property
    def path(self) -> str:
        return self._path

    def _item_path(self, resource_id: ResourceId) -> str:
        if resource_id is None or str(resource_id) == "":
            raise ValueError("resource_id is required")
        return f"{self._path}/{resource_id}"

    async def list(
        self,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        **filters: Any,
    ) -> Result:
        """Page de la collection (pagination 1-indexée)."""
        if page < 1:
            raise ValueError("page must be >= 1")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        params: Dict[str, Any] = {"pageNumber": page, "pageSize": page_size, "search": search}
        params.update(filters)
        return await self._api.get(self._path, params=params)

    async def get(self, resource_id: ResourceId) -> Result:
        return await self._api.get(self._item_path(resource_id))

    async def create(self, payload: Dict[str, Any]) -> Result:
        return await self._api.post(self._path, json=payload)

    async def update(self, resource_id: ResourceId, payload: Dict[str, Any]) -> Result:
        return await self._api.put(self._item_path(resource_id), json=payload)

    async def delete(self, resource_id: ResourceId) -> Result:
        return await self._api.delete(self._item_path(resource_id))


class AnalyticsClient:
    """Tableaux de bord et rapports (lecture seule)."""

    def __init__(self, api: ApiClient, path: str = "/api/Analytics") -> None:
        self._api = api
        self._path = path.rstrip("/")

    async def summary(self, **params: Any) -> Result:
        return await self._api.get(f"{self._path}/summary", params=params)

    async def pipeline(self, **params: Any) -> Result:
        return await self._api.get(f"{self._path}/pipeline", params=params)


class CrmClient:
    """
    Ressources du pipeline: leads → qualification → opportunités →
    propositions → contrats → factures → activation → renouvellements.
    """

    RESOURCE_PATHS: Dict[str, str] = {
        "leads": "/api/Leads",
        "qualifications": "/api/Qualifications",
        "opportunities": "/api/Opportunities",
        "proposals": "/api/Proposals",
        "contracts": "/api/Contracts",
        "invoices": "/api/Invoices",
        "activations": "/api/Activations",
        "renewals": "/api/Renewals",
    }

    def __init__(self, api: ApiClient) -> None:
        self._api = api
        self.leads = ResourceClient(api, self.RESOURCE_PATHS["leads"])
        self.qualifications = ResourceClient(api, self.RESOURCE_PATHS["qualifications"])
        self.opportunities = ResourceClient(api, self.RESOURCE_PATHS["opportunities"])
        self.proposals = ResourceClient(api, self.RESOURCE_PATHS["proposals"])
        self.contracts = ResourceClient(api, self.RESOURCE_PATHS["contracts"])
        self.invoices = ResourceClient(api, self.RESOURCE_PATHS["invoices"])
        self.activations = ResourceClient(api, self.RESOURCE_PATHS["activations"])
        self.renewals = ResourceClient(api, self.RESOURCE_PATHS["renewals"])
        self.analytics = AnalyticsClient(api)

    @property
    def api(self) -> ApiClient:
        return self._api
