"""Google OAuth token acquisition for Classroom."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from ..const import (
	CLASSROOM_SCOPES,
	CONF_OAUTH_REDIRECT_HOST,
	GOOGLE_AUTH_URI,
	GOOGLE_CLIENT_ID_PLACEHOLDER,
	GOOGLE_TOKEN_URI,
	LOOPBACK_HOSTS,
	MSG_CLASSROOM_ENVIRONMENT,
)
from .exceptions import AulaSyncAuthError, AulaSyncConfigError, AulaSyncEnvironmentError, AulaSyncError

_LOGGER = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[str]]


def _installed_app_token(client_id: str, client_secret: str, scopes: List[str], host: str, port: int) -> str:
	"""Run the browser consent flow and return an access token.

	Blocks until the user finishes in the browser; run it off the event loop.
	"""
	from google_auth_oauthlib.flow import InstalledAppFlow

	client_config = {
		"installed": {
			"client_id": client_id,
			"client_secret": client_secret,
			"auth_uri": GOOGLE_AUTH_URI,
			"token_uri": GOOGLE_TOKEN_URI,
			"redirect_uris": [f"http://{host}"],
		}
	}
	flow = InstalledAppFlow.from_client_config(client_config, scopes=scopes)
	credentials = flow.run_local_server(host=host, port=port, open_browser=True)
	return credentials.token


class ClassroomAuth:
	"""Obtains read-only Classroom access tokens for the signed-in teacher."""

	def __init__(self, client_id: str, client_secret: str = "", redirect_host: str = "localhost",
				redirect_port: int = 0, token_provider: Optional[TokenProvider] = None):
		"""Initialise the OAuth helper.

		Args:
			client_id: OAuth client id from Google Cloud Console
			client_secret: Client secret of an installed-app client
			redirect_host: Host the local redirect server listens on
			redirect_port: Port of the redirect server (0 picks a free one)
			token_provider: Optional coroutine factory returning a token,
				replacing the interactive browser flow
		"""
		self.client_id = (client_id or "").strip()
		self.client_secret = client_secret or ""
		self.redirect_host = redirect_host or "localhost"
		self.redirect_port = redirect_port
		self.scopes = list(CLASSROOM_SCOPES)
		self._token_provider = token_provider
		self.access_token: Optional[str] = None

	@property
	def is_configured(self) -> bool:
		"""True when a real OAuth client id has been set."""
		return bool(self.client_id) and self.client_id != GOOGLE_CLIENT_ID_PLACEHOLDER

	def check_environment(self) -> None:
		"""Reject redirect hosts Google refuses for installed apps.

		Raises:
			AulaSyncEnvironmentError: with an instructive message for the user
		"""
		if self._token_provider is not None:
			return
		if self.redirect_host.lower() not in LOOPBACK_HOSTS:
			_LOGGER.error(f"OAuth redirect host {self.redirect_host!r} is not a loopback address")
			raise AulaSyncEnvironmentError(MSG_CLASSROOM_ENVIRONMENT.format(key=CONF_OAUTH_REDIRECT_HOST))

	async def get_access_token(self) -> str:
		"""Obtain an access token, interactively unless a provider was given.

		Returns:
			Bearer token for the Classroom API
		"""
		if not self.is_configured:
			raise AulaSyncConfigError("Google OAuth client id is not configured")
		self.check_environment()

		try:
			if self._token_provider is not None:
				token = await self._token_provider()
			else:
				token = await asyncio.to_thread(
					_installed_app_token,
					self.client_id,
					self.client_secret,
					self.scopes,
					self.redirect_host,
					self.redirect_port,
				)
		except AulaSyncError:
			raise
		except Exception as e:
			_LOGGER.error(f"Google sign-in failed: {e}")
			raise AulaSyncAuthError(f"Google sign-in failed: {e}") from e

		if not token:
			raise AulaSyncAuthError("Google sign-in returned no access token")
		self.access_token = token
		_LOGGER.info("Obtained Google Classroom access token")
		return token
