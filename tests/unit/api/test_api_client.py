"""
Tests unitaires ApiClient et ressources du pipeline.
"""

import pytest

from pipeline_crm.api import ApiClient, CrmClient, Err, ErrorKind, Ok, ResourceClient
from pipeline_crm.network import HttpResponse, TransportError


# ══════════════════════════════════════════════════════════════════════════════
# FIXTURES
# ══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def api(transport, logger):
    return ApiClient(transport, logger=logger)


@pytest.fixture
def crm(api):
    return CrmClient(api)


def respond(response):
    async def handler(request):
        return response

    return handler


# ══════════════════════════════════════════════════════════════════════════════
# TESTS CLIENT
# ══════════════════════════════════════════════════════════════════════════════


class TestApiClient:
    """Envoi et décodage."""

    @pytest.mark.asyncio
    async def test_get_success(self, api, transport, make_response):
        transport.route("/api/Leads", respond(make_response(200, data=[{"id": 1}], message="ok")))

        result = await api.get("/api/Leads", params={"pageNumber": 1, "search": None})

        assert isinstance(result, Ok)
        assert result.value == [{"id": 1}]
        assert transport.requests[0].params == {"pageNumber": 1}

    @pytest.mark.asyncio
    async def test_method_normalized(self, api, transport, make_response):
        transport.route("/api/Leads", respond(make_response(201, data={"id": 2})))

        await api.request("post", "/api/Leads", json={"name": "Acme"})

        assert transport.requests[0].method == "POST"
        assert transport.requests[0].json == {"name": "Acme"}

    @pytest.mark.asyncio
    async def test_business_failure_returned(self, api, transport, make_response, logger):
        transport.route("/api/Leads", respond(make_response(400, errors=["Email is invalid"])))

        result = await api.post("/api/Leads", json={"email": "x"})

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.BUSINESS
        assert result.errors == ("Email is invalid",)
        assert any(e.message == "Request failed" for e in logger.get_entries())

    @pytest.mark.asyncio
    async def test_network_failure_is_err(self, api, transport):
        async def handler(request):
            raise TransportError("timeout")

        transport.route("/api/Leads", handler)

        result = await api.get("/api/Leads")

        assert result.ok is False
        assert result.kind == ErrorKind.NETWORK
        assert result.message == "Network error. Please check your connection."

    @pytest.mark.asyncio
    async def test_unrecovered_401(self, api, transport):
        transport.route("/api/Leads", respond(HttpResponse(401)))

        result = await api.get("/api/Leads")

        assert result.kind == ErrorKind.UNAUTHORIZED
        assert result.status_code == 401

    @pytest.mark.asyncio
    async def test_verbs(self, api, transport, make_response):
        transport.route("/api/Leads/1", respond(make_response(200, data=True)))

        await api.put("/api/Leads/1", json={})
        await api.patch("/api/Leads/1", json={})
        await api.delete("/api/Leads/1")

        assert [r.method for r in transport.requests] == ["PUT", "PATCH", "DELETE"]


# ══════════════════════════════════════════════════════════════════════════════
# TESTS RESSOURCES
# ══════════════════════════════════════════════════════════════════════════════


class TestResources:
    """CRUD des ressources du pipeline."""

    def test_crm_exposes_pipeline_resources(self, crm):
        assert crm.leads.path == "/api/Leads"
        assert crm.qualifications.path == "/api/Qualifications"
        assert crm.opportunities.path == "/api/Opportunities"
        assert crm.proposals.path == "/api/Proposals"
        assert crm.contracts.path == "/api/Contracts"
        assert crm.invoices.path == "/api/Invoices"
        assert crm.activations.path == "/api/Activations"
        assert crm.renewals.path == "/api/Renewals"

    @pytest.mark.asyncio
    async def test_list_pagination(self, crm, transport, make_response):
        transport.route("/api/Leads", respond(make_response(200, data={"items": [], "totalCount": 0})))

        result = await crm.leads.list(page=2, page_size=25, search="acme", status="New")

        assert result.ok is True
        assert transport.requests[0].params == {"pageNumber": 2, "pageSize": 25, "search": "acme", "status": "New"}

    @pytest.mark.asyncio
    async def test_list_without_search(self, crm, transport, make_response):
        transport.route("/api/Invoices", respond(make_response(200, data=[])))

        await crm.invoices.list()

        assert transport.requests[0].params == {"pageNumber": 1, "pageSize": 10}

    @pytest.mark.asyncio
    async def test_list_invalid_page(self, crm):
        with pytest.raises(ValueError):
            await crm.leads.list(page=0)

    @pytest.mark.asyncio
    async def test_crud_paths(self, crm, transport, make_response):
        for path in ("/api/Contracts", "/api/Contracts/7"):
            transport.route(path, respond(make_response(200, data={"id": 7})))

        await crm.contracts.create({"name": "Acme 2025"})
        await crm.contracts.get(7)
        await crm.contracts.update(7, {"status": "Signed"})
        await crm.contracts.delete(7)

        assert [(r.method, r.url) for r in transport.requests] == [
            ("POST", "/api/Contracts"),
            ("GET", "/api/Contracts/7"),
            ("PUT", "/api/Contracts/7"),
            ("DELETE", "/api/Contracts/7"),
        ]

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, crm):
        with pytest.raises(ValueError):
            await crm.leads.get("")

    def test_relative_path_rejected(self, api):
        with pytest.raises(ValueError):
            ResourceClient(api, "api/Leads")

    @pytest.mark.asyncio
    async def test_analytics(self, crm, transport, make_response):
        transport.route("/api/Analytics/summary", respond(make_response(200, data={"leads": 12})))
        transport.route("/api/Analytics/pipeline", respond(make_response(200, data=[])))

        summary = await crm.analytics.summary(period="month")
        await crm.analytics.pipeline()

        assert summary.value == {"leads": 12}
        assert transport.requests[0].params == {"period": "month"}
        assert transport.requests[1].params is None
