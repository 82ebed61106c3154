#!/usr/bin/env python3
"""Tests for Classroom OAuth token acquisition."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from aulasync.api.auth import ClassroomAuth
from aulasync.api.exceptions import AulaSyncAuthError, AulaSyncConfigError, AulaSyncEnvironmentError
from aulasync.const import GOOGLE_CLIENT_ID_PLACEHOLDER

CLIENT_ID = "1234.apps.googleusercontent.com"


def test_placeholder_client_id_is_not_configured():
	assert not ClassroomAuth("").is_configured
	assert not ClassroomAuth(GOOGLE_CLIENT_ID_PLACEHOLDER).is_configured
	assert ClassroomAuth(CLIENT_ID).is_configured


def test_unconfigured_auth_raises_config_error():
	with pytest.raises(AulaSyncConfigError):
		asyncio.run(ClassroomAuth("").get_access_token())


def test_non_loopback_redirect_host_is_rejected():
	auth = ClassroomAuth(CLIENT_ID, redirect_host="192.168.1.20")
	with pytest.raises(AulaSyncEnvironmentError) as excinfo:
		asyncio.run(auth.get_access_token())
	assert "AULASYNC_OAUTH_REDIRECT_HOST" in str(excinfo.value)


def test_ipv6_loopback_redirect_host_is_rejected():
	auth = ClassroomAuth(CLIENT_ID, redirect_host="::1")
	with pytest.raises(AulaSyncEnvironmentError):
		auth.check_environment()


def test_token_provider_replaces_browser_flow():
	provider = AsyncMock(return_value="tok")
	auth = ClassroomAuth(CLIENT_ID, redirect_host="example.com", token_provider=provider)
	assert asyncio.run(auth.get_access_token()) == "tok"
	assert auth.access_token == "tok"
	provider.assert_awaited_once()


def test_provider_failures_become_auth_errors():
	auth = ClassroomAuth(CLIENT_ID, token_provider=AsyncMock(side_effect=RuntimeError("denied")))
	with pytest.raises(AulaSyncAuthError):
		asyncio.run(auth.get_access_token())

	empty = ClassroomAuth(CLIENT_ID, token_provider=AsyncMock(return_value=""))
	with pytest.raises(AulaSyncAuthError):
		asyncio.run(empty.get_access_token())
