from enum import Enum
from typing import Any, Iterator, NamedTuple, TypeAlias

from ..utils.io import DEFAULT_ENCODING
from .api import ResponseFactory
from .status import HTTP_STATUS

# The same few header names come back with every request
HEADER_NAMES: dict[str, str] = {}


def headername(name: str) -> str:
	"""Returns the header name in `Kebab-Case`, as in `If-Modified-Since`."""
	key: str = name.lower()
	if (res := HEADER_NAMES.get(key)) is None:
		res = HEADER_NAMES[key] = "-".join(_.capitalize() for _ in key.split("-"))
	return res


# -----------------------------------------------------------------------------
#
# PARSED ATOMS
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""The first line of a request, split in its parts."""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""The headers of a request, along with the values the parser picks up
	on the way."""

	headers: dict[str, str]
	contentType: str | None = None
	contentLength: int | None = None


class HTTPProcessingStatus(Enum):
	"""States reported by the parser and the server while reading requests."""

	Processing = 0
	Complete = 1
	Timeout = 10
	NoData = 11
	BadFormat = 12


class HTTPRequestError(Exception):
	"""Raised by handlers to answer with an error, 500 unless a status is
	given."""

	def __init__(self, message: str, status: int | None = None):
		super().__init__(message)
		self.message: str = message
		self.status: int | None = status


# -----------------------------------------------------------------------------
#
# BODIES
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""A body held in memory."""

	payload: bytes
	length: int


class HTTPBodyStream(NamedTuple):
	"""A body produced chunk by chunk. The iterator is typically a generator
	holding an open file, which is released when the generator is closed."""

	stream: Iterator[bytes]

	def close(self) -> None:
		if close := getattr(self.stream, "close", None):
			close()


THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyStream


# -----------------------------------------------------------------------------
#
# REQUEST
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""A request, as parsed from its head. Request bodies are never read."""

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None = None,
		headers: HTTPHeaders | dict[str, str] | None = None,
		protocol: str = "HTTP/1.1",
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] = query or {}
		self.protocol: str = protocol
		self._headers: HTTPHeaders = (
			headers
			if isinstance(headers, HTTPHeaders)
			else HTTPHeaders({headername(k): v for k, v in (headers or {}).items()})
		)

	@property
	def headers(self) -> dict[str, str]:
		return self._headers.headers

	def header(self, name: str) -> str | None:
		return self._headers.headers.get(headername(name))

	def param(self, name: str, default: str | None = None) -> str | None:
		return self.query.get(name, default)

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: dict[str, str] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			content,
			contentType,
			contentLength,
			headers=headers,
			status=status,
			message=message,
			protocol=self.protocol,
		)

	def __repr__(self) -> str:
		return f"(HTTPRequest {self.method} {self.path} {self.protocol})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""A response, made of a head (status and headers) and an optional body.
	The head always describes the body the response would have for a `GET`,
	even when the body is not sent."""

	__slots__ = ["protocol", "status", "message", "headers", "body", "shouldClose"]

	@staticmethod
	def Create(
		content: str | bytes | Iterator[bytes] | None = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		*,
		headers: dict[str, str] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Creates a response whose body is text, bytes, or an iterator of
		bytes chunks. `Content-Length` is set from in-memory bodies, and
		taken from the `headers` otherwise."""
		fields: dict[str, str] = {headername(k): v for k, v in (headers or {}).items()}
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, (str, bytes)):
			data = content.encode(DEFAULT_ENCODING) if isinstance(content, str) else content
			body = HTTPBodyBlob(data, len(data))
			contentLength = len(data)
		elif isinstance(content, Iterator):
			body = HTTPBodyStream(content)
		else:
			raise ValueError(f"Unsupported content {type(content)}: {content!r}")
		if contentType is not None:
			fields["Content-Type"] = contentType
		if contentLength is not None:
			fields["Content-Length"] = str(contentLength)
		elif "Content-Length" in fields:
			contentLength = int(fields["Content-Length"])
		return HTTPResponse(
			protocol,
			status,
			message or HTTP_STATUS.get(status, "Unknown status"),
			fields,
			body,
			# A stream of unknown length ends when the connection does
			shouldClose=isinstance(body, HTTPBodyStream) and contentLength is None,
		)

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str,
		headers: dict[str, str],
		body: THTTPBody | None = None,
		shouldClose: bool = False,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str = message
		self.headers: dict[str, str] = headers
		self.body: THTTPBody | None = body
		self.shouldClose: bool = shouldClose

	def getHeader(self, name: str) -> str | None:
		return self.headers.get(headername(name))

	def setHeader(self, name: str, value: str | int | None) -> "HTTPResponse":
		"""Sets the header, or removes it when `value` is `None`."""
		if value is None:
			self.headers.pop(headername(name), None)
		else:
			self.headers[headername(name)] = str(value)
		return self

	def head(self) -> bytes:
		"""Returns the status line and the headers, ending with the empty
		line that separates them from the body."""
		lines: list[str] = [f"{self.protocol} {self.status} {self.message}"]
		lines.extend(f"{k}: {v}" for k, v in self.headers.items())
		if self.shouldClose:
			lines.append("Connection: close")
		return ("\r\n".join(lines) + "\r\n\r\n").encode("latin1")

	def close(self) -> None:
		"""Releases the file held by a streamed body, if any."""
		if isinstance(self.body, HTTPBodyStream):
			self.body.close()

	def __repr__(self) -> str:
		return f"(HTTPResponse {self.status} {self.message} {self.headers})"


# EOF
