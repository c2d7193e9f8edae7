# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------
# Errors raised by the package codec, the storages and the range parser. The
# static files service maps them to HTTP statuses, none of them is ever
# surfaced to the client as an exception.


class StatikError(Exception):
	"""Base class for all the errors raised by Statik."""


class MalformedPackage(StatikError, ValueError):
	"""The package data can't be decoded, it can't be served at all."""


class NotFound(StatikError, KeyError):
	"""The path is not in the storage, or is not a regular file."""

	def __init__(self, path: str):
		super().__init__(path)
		self.path: str = path

	def __str__(self) -> str:
		return f"Path not found: {self.path}"


class PathOutsideRoot(StatikError):
	"""The path resolves to a location outside of the storage root."""

	def __init__(self, path: str):
		super().__init__(path)
		self.path: str = path

	def __str__(self) -> str:
		return f"Path is outside of root: {self.path}"


class UnsupportedRange(StatikError):
	"""The range header requests more than one range."""


class InvalidRange(StatikError, ValueError):
	"""The range header is not a valid single range."""


# EOF
