"""Unit tests for the mock WSAA Flask application."""

import base64
from datetime import timedelta

import pytest
from asn1crypto import cms as a_cms
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from afip_ta.crypto.cms_signer import CMSSigner
from afip_ta.mock_server.app import LoginFault, create_app, generate_soap_fault, verify_cms
from afip_ta.mock_server.config import MockWSAAConfig
from afip_ta.tra.builder import build_login_ticket_request
from afip_ta.wsaa.parsers import (
    extract_login_cms_return,
    find_soap_fault,
    parse_login_ticket_response,
    parse_xml,
)
from afip_ta.wsaa.soap_client import build_login_cms_envelope

LOGIN_PATH = "/ws/services/LoginCms"


@pytest.fixture
def clock(fixed_now):
    """Mutable clock: tests move ``clock.now`` forward."""

    class Clock:
        now = fixed_now

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def app(clock):
    app = create_app(MockWSAAConfig(), clock=clock)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login_envelope(cert_bundle, fixed_now):
    """Build a loginCms envelope for a service signed at ``fixed_now``."""

    def _build(service="wsfe", now=None):
        now = now or fixed_now
        signed = CMSSigner(cert_bundle).sign(build_login_ticket_request(service, now), now)
        return build_login_cms_envelope(signed.cms)

    return _build


def _post(client, envelope):
    return client.post(
        LOGIN_PATH,
        data=envelope.encode("utf-8"),
        headers={"Content-Type": "text/xml; charset=utf-8", "SOAPAction": '""'},
    )


def _fault_code(response):
    fault = find_soap_fault(parse_xml(response.data))
    return fault.fault_code if fault else None


class TestLoginCms:
    """Test the LoginCms endpoint."""

    def test_issues_ticket(self, client, login_envelope, fixed_now, cert_bundle):
        # Act
        response = _post(client, login_envelope())

        # Assert
        assert response.status_code == 200
        assert response.content_type.startswith("text/xml")
        ticket = parse_login_ticket_response(extract_login_cms_return(parse_xml(response.data)))
        assert ticket.header.generation_time == fixed_now
        assert ticket.expiration_time == fixed_now + timedelta(hours=12)
        assert ticket.header.destination == cert_bundle.certificate.subject.rfc4514_string()
        assert ticket.credentials.token
        assert ticket.credentials.sign

    def test_repeat_login_rejected(self, client, login_envelope):
        first = _post(client, login_envelope())
        second = _post(client, login_envelope())

        assert first.status_code == 200
        assert second.status_code == 500
        assert _fault_code(second) == "ns1:coe.alreadyAuthenticated"

    def test_repeat_allowed_after_expiration(self, client, clock, login_envelope, fixed_now):
        _post(client, login_envelope())
        clock.now = fixed_now + timedelta(hours=13)

        response = _post(client, login_envelope(now=clock.now))

        assert response.status_code == 200

    def test_other_service_not_blocked(self, client, login_envelope):
        _post(client, login_envelope("wsfe"))

        response = _post(client, login_envelope("ws_sr_padron_a5"))

        assert response.status_code == 200

    def test_repeat_allowed_when_disabled(self, clock, login_envelope):
        client = create_app(MockWSAAConfig(reject_repeat_login=False), clock=clock).test_client()

        _post(client, login_envelope())

        assert _post(client, login_envelope()).status_code == 200

    def test_ticket_lifetime_configurable(self, clock, login_envelope, fixed_now):
        client = create_app(MockWSAAConfig(ticket_lifetime_hours=1), clock=clock).test_client()

        response = _post(client, login_envelope())

        ticket = parse_login_ticket_response(extract_login_cms_return(parse_xml(response.data)))
        assert ticket.expiration_time == fixed_now + timedelta(hours=1)

    def test_expired_tra(self, client, clock, login_envelope, fixed_now):
        clock.now = fixed_now + timedelta(minutes=30)

        response = _post(client, login_envelope())

        assert _fault_code(response) == "ns1:xml.expirationTime.expired"

    def test_tra_from_the_future(self, client, clock, login_envelope, fixed_now):
        clock.now = fixed_now - timedelta(minutes=30)

        response = _post(client, login_envelope())

        assert _fault_code(response) == "ns1:xml.generationTime.invalid"

    def test_missing_in0(self, client):
        response = _post(client, build_login_cms_envelope(""))

        assert response.status_code == 500
        assert _fault_code(response) == "ns1:xml.bad"

    def test_not_xml(self, client):
        response = _post(client, "definitely not xml")

        assert _fault_code(response) == "ns1:xml.bad"

    def test_not_base64(self, client):
        response = _post(client, build_login_cms_envelope("!!!not-base64!!!"))

        assert _fault_code(response) == "ns1:cms.bad"

    def test_request_count_in_health(self, client, login_envelope):
        _post(client, login_envelope())

        data = client.get("/health").get_json()

        assert data["status"] == "healthy"
        assert data["request_count"] == 2
        assert data["tickets_issued"] == 1
        assert LOGIN_PATH in data["endpoints"]


class TestVerifyCms:
    """Test CMS verification."""

    def _signed(self, cert_bundle, fixed_now):
        return CMSSigner(cert_bundle).sign(build_login_ticket_request("wsfe", fixed_now), fixed_now)

    def test_valid(self, cert_bundle, fixed_now):
        signed = self._signed(cert_bundle, fixed_now)

        content, signer = verify_cms(signed.cms)

        assert content == signed.request.to_xml().encode("utf-8")
        assert "afip-ta test" in signer

    def test_tampered_content(self, cert_bundle, fixed_now):
        der = base64.b64decode(self._signed(cert_bundle, fixed_now).cms)
        tampered = der.replace(b"<service>wsfe</service>", b"<service>wsfx</service>")

        with pytest.raises(LoginFault) as exc_info:
            verify_cms(base64.b64encode(tampered).decode("ascii"))

        assert exc_info.value.code == "cms.bad"

    def test_signature_from_other_key(self, cert_bundle, fixed_now, other_rsa_key):
        der = base64.b64decode(self._signed(cert_bundle, fixed_now).cms)
        info = a_cms.ContentInfo.load(der)
        signature = info["content"]["signer_infos"][0]["signature"].native
        forged_signature = other_rsa_key.sign(b"unrelated", padding.PKCS1v15(), hashes.SHA256())
        forged = der.replace(signature, forged_signature)

        with pytest.raises(LoginFault) as exc_info:
            verify_cms(base64.b64encode(forged).decode("ascii"))

        assert exc_info.value.code == "cms.sign.invalid"

    def test_garbage(self):
        with pytest.raises(LoginFault) as exc_info:
            verify_cms(base64.b64encode(b"\x30\x03\x02\x01\x01").decode("ascii"))

        assert exc_info.value.code == "cms.bad"


class TestGenerateSoapFault:
    def test_axis_layout(self):
        response, status = generate_soap_fault("cms.bad", "CMS invalido")

        fault = find_soap_fault(parse_xml(response.get_data()))
        assert status == 500
        assert fault.fault_code == "ns1:cms.bad"
        assert fault.fault_string == "CMS invalido"
        assert fault.fault_detail == "mock-wsaa"
