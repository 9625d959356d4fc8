"""Unit tests for Session construction and instance selection."""

import base64

import pytest
from pydantic import ValidationError

from fluidinfo.api_clients.session import (
    MAIN_INSTANCE_URL,
    SANDBOX_INSTANCE_URL,
    Session,
    encode_basic_credential,
    resolve_instance,
)


class TestResolveInstance:
    """Test mapping instance selectors to base URLs."""

    def test_defaults_to_main(self):
        assert resolve_instance(None) == MAIN_INSTANCE_URL
        assert resolve_instance("") == MAIN_INSTANCE_URL

    def test_named_instances(self):
        assert resolve_instance("main") == "https://fluiddb.fluidinfo.com/"
        assert resolve_instance("sandbox") == "https://sandbox.fluidinfo.com/"

    def test_names_are_case_insensitive(self):
        assert resolve_instance("SandBox") == SANDBOX_INSTANCE_URL

    def test_bespoke_instance(self):
        assert resolve_instance("https://localhost/") == "https://localhost/"
        assert resolve_instance("http://127.0.0.1:8080/") == "http://127.0.0.1:8080/"

    @pytest.mark.parametrize(
        "instance", ["localhost", "http://localhost", "localhost/", "ftp://host/"]
    )
    def test_malformed_bespoke_instance_raises(self, instance):
        with pytest.raises(ValueError, match="trailing slash"):
            resolve_instance(instance)


class TestEncodeBasicCredential:
    """Test the Basic auth credential string."""

    def test_standard_base64(self):
        assert encode_basic_credential("username", "password") == (
            "dXNlcm5hbWU6cGFzc3dvcmQ="
        )

    def test_utf8_credentials(self):
        encoded = encode_basic_credential("ünïcode", "päss")
        assert base64.b64decode(encoded).decode("utf-8") == "ünïcode:päss"


class TestSession:
    """Test Session state."""

    def test_anonymous_session(self):
        session = Session.create()
        assert session.base_url == MAIN_INSTANCE_URL
        assert session.username is None
        assert session.basic_credential is None
        assert session.access_token is None
        assert session.is_anonymous

    def test_basic_session_exposes_username(self):
        session = Session.create(username="ntoll", password="secret")
        assert session.username == "ntoll"
        assert session.basic_credential == encode_basic_credential("ntoll", "secret")
        assert not session.is_anonymous

    def test_username_without_password_stays_anonymous(self):
        session = Session.create(username="ntoll")
        assert session.username is None
        assert session.is_anonymous

    def test_oauth_session(self):
        session = Session.create(access_token="token-123")
        assert session.access_token == "token-123"
        assert not session.is_anonymous

    def test_session_is_immutable(self):
        session = Session.create(instance="sandbox")
        with pytest.raises(ValidationError):
            session.base_url = "https://elsewhere/"

    def test_base_url_must_end_with_slash(self):
        with pytest.raises(ValidationError):
            Session(base_url="https://localhost")

    def test_bad_instance_raises_value_error(self):
        with pytest.raises(ValueError):
            Session.create(instance="localhost")
