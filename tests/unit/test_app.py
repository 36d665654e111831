"""
Tests unitaires du câblage applicatif.
"""

import json
from unittest.mock import Mock

import pytest

from pipeline_crm.app import CrmApplication, build_storage, create_application
from pipeline_crm.auth import EncryptedFileStorage, JsonFileStorage, MemoryStorage
from pipeline_crm.core import ClientSettings, ConfigIntegrityError
from pipeline_crm.network import HttpResponse, HttpxTransport


def respond(response):
    async def handler(request):
        return response

    return handler


class TestBuildStorage:
    """Choix du stockage de session."""

    def test_memory_by_default(self):
        assert isinstance(build_storage(ClientSettings()), MemoryStorage)

    def test_json_file_when_path(self, tmp_path):
        storage = build_storage(ClientSettings(storage_path=str(tmp_path / "session.json")))
        assert isinstance(storage, JsonFileStorage)
        assert not isinstance(storage, EncryptedFileStorage)

    def test_encrypted_when_key(self, tmp_path):
        settings = ClientSettings(
            storage_path=str(tmp_path / "session.bin"),
            storage_encryption_key=EncryptedFileStorage.generate_key(),
        )
        assert isinstance(build_storage(settings), EncryptedFileStorage)

    def test_key_without_path_raises(self):
        with pytest.raises(ConfigIntegrityError):
            build_storage(ClientSettings(storage_encryption_key=EncryptedFileStorage.generate_key()))


class TestCreateApplication:
    """Assemblage des composants."""

    def test_invalid_settings_raise(self, transport):
        with pytest.raises(ConfigIntegrityError) as exc_info:
            create_application(ClientSettings(expiry_check_interval_seconds=1), transport=transport)
        assert "CFG_003" in str(exc_info.value)

    def test_components_share_one_session(self, transport):
        app = create_application(transport=transport)

        assert isinstance(app, CrmApplication)
        assert app.crm.api is app.api
        assert app.api.transport is app.http
        assert app.session.check_interval_seconds == 300

    @pytest.mark.asyncio
    async def test_http_public_host_upgraded_and_warned(self):
        lines = []
        app = create_application(
            ClientSettings(api_base_url="http://democrm-rsqo.onrender.com"),
            output_handler=lines.append,
        )

        assert isinstance(app.transport, HttpxTransport)
        assert app.transport._client.base_url.scheme == "https"
        assert any(json.loads(line)["message"] == "Hôte public en http: utiliser https" for line in lines)
        await app.aclose()

    def test_logs_to_stderr_by_default(self, transport, capsys):
        create_application(ClientSettings(api_base_url="http://democrm-rsqo.onrender.com"), transport=transport)

        lines = capsys.readouterr().err.strip().splitlines()

        assert lines
        entry = json.loads(lines[0])
        assert entry["message"] == "Hôte public en http: utiliser https"
        assert entry["client_id"] == "pipeline-crm"

    @pytest.mark.asyncio
    async def test_login_then_business_call_after_expiry(
        self, transport, storage, clock, make_response, make_auth_data
    ):
        """Login, expiration, 401 sur un appel métier → refresh transparent."""
        navigator = Mock()
        app = create_application(transport=transport, storage=storage, navigator=navigator)

        async def leads(request):
            if request.bearer_token() != "access-2":
                return HttpResponse(401)
            return make_response(200, data=[{"id": 1, "name": "Acme"}])

        transport.route("/api/Auth/login", respond(make_response(200, data=make_auth_data())))
        transport.route(
            "/api/Auth/refresh-token",
            respond(make_response(200, data=make_auth_data(token="access-2", refresh_token="refresh-2"))),
        )
        transport.route("/api/Leads", leads)

        await app.session.login("jane@example.com", "secret")
        result = await app.crm.leads.list()

        assert result.ok is True
        assert result.value == [{"id": 1, "name": "Acme"}]
        assert storage.get("refresh_token") == "refresh-2"
        navigator.assert_called_once_with("/dashboard")

        await app.aclose()
        assert transport.closed is True

    @pytest.mark.asyncio
    async def test_tokens_absent_from_logs(self, transport, make_response, make_auth_data):
        lines = []
        app = create_application(
            ClientSettings(log_level="DEBUG"),
            transport=transport,
            output_handler=lines.append,
        )
        transport.route("/api/Auth/login", respond(make_response(200, data=make_auth_data(token="access-secret"))))

        await app.session.login("jane@example.com", "pa55word")

        output = "\n".join(lines)
        assert lines
        assert "access-secret" not in output
        assert "refresh-1" not in output
        assert "pa55word" not in output
        await app.aclose()
