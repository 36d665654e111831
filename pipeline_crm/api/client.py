"""
API - Client

Point d'entrée des appels métier: envoie via le transport (authentifié) et
décode l'enveloppe en Ok | Err.
"""

from typing import Any, Dict, Optional, Type

from pydantic import BaseModel

from ..logging import StructuredLogger
from ..network.interfaces import HttpRequest, ITransport, TransportError
from .envelope import Err, Result, decode_envelope, network_error


class ApiClient:
    """
    Client REST générique.

    Les erreurs réseau deviennent Err(NETWORK); les échecs métier (4xx,
    isSuccess=false) sont renvoyés tels quels à l'appelant pour affichage.

    Example:
        api = ApiClient(authenticated_transport)
        result = await api.get("/api/Leads", params={"page": 1})
        if result.ok:
            leads = result.value
    """

    def __init__(self, transport: ITransport, logger: Optional[StructuredLogger] = None) -> None:
        self._transport = transport
        self._logger = logger or StructuredLogger("pipeline-crm.api")

    @property
    def transport(self) -> ITransport:
        return self._transport

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        model: Optional[Type[BaseModel]] = None,
    ) -> Result:
        """
        Envoie une requête et décode l'enveloppe.

        Args:
            method: Verbe HTTP
            path: Chemin de l'endpoint
            params: Query string (les valeurs None sont omises)
            json: Corps JSON
            model: Modèle pydantic pour "data" (optionnel)

        Returns:
            Ok(data) ou Err
        """
        clean_params = {k: v for k, v in (params or {}).items() if v is not None} or None
        request = HttpRequest(method.upper(), path, params=clean_params, json=json)
        try:
            response = await self._transport.send(request)
        except TransportError as e:
            self._logger.warn("Request failed: network error", method=request.method, url=path, error=str(e))
            return network_error(e)

        result = decode_envelope(response, model)
        if isinstance(result, Err):
            self._logger.info(
                "Request failed",
                method=request.method,
                url=path,
                status_code=result.status_code,
                kind=result.kind.value,
            )
        return result

    async def get(self, path: str, *, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Result:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> Result:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs: Any) -> Result:
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs: Any) -> Result:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Result:
        return await self.request("DELETE", path, **kwargs)
