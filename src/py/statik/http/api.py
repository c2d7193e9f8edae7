from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from .status import HTTP_STATUS

R = TypeVar("R")

# -----------------------------------------------------------------------------
#
# RESPONSE FACTORY
#
# -----------------------------------------------------------------------------
# Requests build their own responses, so that handlers and services only ever
# deal with the request they were given. The shortcuts below cover the
# statuses the static files service answers with.


class ResponseFactory(ABC, Generic[R]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> R: ...

	def empty(self, status: int = 200, headers: dict[str, str] | None = None) -> R:
		"""A response without a body, although its headers may describe one,
		as for `HEAD` requests."""
		return self.respond(None, status=status, headers=headers)

	def error(
		self, status: int, content: str | None = None, *, headers: dict[str, str] | None = None
	) -> R:
		"""A plain text error, the status phrase being the default body."""
		phrase: str = HTTP_STATUS.get(status, "Server Error")
		return self.respond(
			phrase if content is None else content,
			"text/plain",
			status=status,
			headers=headers,
			message=phrase,
		)

	def notAuthorized(self, content: str | None = None) -> R:
		return self.error(403, content)

	def notFound(self, content: str | None = None) -> R:
		return self.error(404, content)

	def notModified(self, headers: dict[str, str] | None = None) -> R:
		return self.empty(304, headers)

	def fail(self, content: str | None = None, status: int = 500) -> R:
		return self.error(status, content)

	def respondText(self, content: str | bytes, status: int = 200) -> R:
		return self.respond(content, "text/plain", status=status)


# EOF
