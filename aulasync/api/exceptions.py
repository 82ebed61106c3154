"""Custom exceptions for aulasync."""


class AulaSyncError(Exception):
	"""Base exception for aulasync errors."""
	pass


class AulaSyncConfigError(AulaSyncError):
	"""Required settings are missing or invalid."""
	pass


class AulaSyncAuthError(AulaSyncError):
	"""Authentication failed."""
	pass


class AulaSyncAPIError(AulaSyncError):
	"""API request failed."""

	def __init__(self, message: str, status: int = None):
		super().__init__(message)
		self.status = status


class AulaSyncConnectionError(AulaSyncError):
	"""Connection to a remote service failed."""
	pass


class AulaSyncDataError(AulaSyncError):
	"""Data parsing or validation error."""
	pass


class AulaSyncEnvironmentError(AulaSyncError):
	"""The runtime environment cannot complete the OAuth flow."""
	pass
