"""Unit tests for business web-service handles."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from afip_ta.models.ticket import Credentials
from afip_ta.services.registry import (
    ElectronicBilling,
    RegisterInscriptionProof,
    RegisterScopeTen,
    WebService,
    WebServiceRegistry,
    default_registry,
)
from afip_ta.utils.exceptions import ValidationError


@pytest.fixture
def ticket_service():
    service = MagicMock()
    service.cuit = "20111111111"
    service.get_ticket = AsyncMock(return_value=Credentials(token="T1", sign="S1"))
    return service


class TestWebService:
    def test_service_names(self, ticket_service):
        assert ElectronicBilling(ticket_service).service_name == "wsfe"
        assert RegisterScopeTen(ticket_service).service_name == "ws_sr_padron_a10"
        assert (
            RegisterInscriptionProof(ticket_service).service_name
            == "ws_sr_constancia_inscripcion"
        )

    def test_base_requires_name(self, ticket_service):
        with pytest.raises(ValidationError):
            WebService(ticket_service)

    def test_explicit_name(self, ticket_service):
        assert WebService(ticket_service, "wsmtxca").service_name == "wsmtxca"

    def test_get_auth(self, ticket_service):
        auth = asyncio.run(ElectronicBilling(ticket_service).get_auth())

        assert auth == {"Token": "T1", "Sign": "S1", "Cuit": 20111111111}
        ticket_service.get_ticket.assert_awaited_once_with("wsfe")


class TestWebServiceRegistry:
    def test_default_names(self):
        assert default_registry().names() == [
            "ElectronicBilling",
            "RegisterInscriptionProof",
            "RegisterScopeFive",
            "RegisterScopeFour",
            "RegisterScopeTen",
        ]

    def test_register_custom(self, ticket_service):
        registry = WebServiceRegistry()
        registry.register("Export", lambda ts: WebService(ts, "wsfex"))

        assert "Export" in registry
        assert registry.create("Export", ticket_service).service_name == "wsfex"

    def test_unknown(self, ticket_service):
        with pytest.raises(ValidationError) as exc_info:
            default_registry().create("Missing", ticket_service)

        assert "Unknown web service: Missing" in str(exc_info.value)

    def test_empty_name(self):
        with pytest.raises(ValidationError):
            WebServiceRegistry().register("", ElectronicBilling)
