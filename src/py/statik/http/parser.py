from typing import Iterator

from ..utils.io import LineParser
from .model import (
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	headername,
)

THTTPAtom = HTTPRequestLine | HTTPHeaders | HTTPRequest | HTTPProcessingStatus


def parseRequestLine(line: bytes) -> HTTPRequestLine | None:
	"""Parses `METHOD TARGET PROTOCOL`, returning `None` if malformed."""
	text: str = line.decode("latin1")
	i: int = text.find(" ")
	j: int = text.rfind(" ")
	if i <= 0 or i == j:
		return None
	path, _, query = text[i + 1 : j].partition("?")
	return HTTPRequestLine(text[:i], path, query, text[j + 1 :])


def parseQuery(text: str) -> dict[str, str]:
	"""Splits the query string in keys and values, which are not decoded.
	Keys without a value are mapped to an empty string."""
	res: dict[str, str] = {}
	for item in text.split("&") if text else ():
		key, _, value = item.partition("=")
		res[key] = value
	return res


class HTTPParser:
	"""An incremental parser of HTTP/1.1 request heads, fed with chunks as
	they are received. Each request yields its line, its headers, the
	request itself and then `Complete`.

	Request bodies are not used, they are skipped based on their
	`Content-Length` so that pipelined requests stay aligned."""

	def __init__(self) -> None:
		self.lines: LineParser = LineParser()
		self.skipping: int = 0
		self.reset()

	def reset(self) -> "HTTPParser":
		self.line: HTTPRequestLine | None = None
		self.headers: dict[str, str] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None
		return self

	def feed(self, chunk: bytes) -> Iterator[THTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			if self.skipping:
				skipped: int = min(self.skipping, size - offset)
				self.skipping -= skipped
				offset += skipped
				continue
			line, read = self.lines.feed(chunk, offset)
			offset += read
			if line is None:
				# The rest of the chunk is buffered
				continue
			elif self.line is None:
				# Empty lines before a request line are ignored (RFC 9112 §2.2)
				if not line:
					continue
				elif (request_line := parseRequestLine(line)) is None:
					yield HTTPProcessingStatus.BadFormat
				else:
					self.line = request_line
					yield request_line
			elif line:
				self.header(line)
			else:
				yield from self.complete(self.line)

	def header(self, line: bytes) -> None:
		name, sep, value = line.decode("latin1").partition(":")
		# Lines without a colon are not headers, we skip them
		if not sep:
			return
		name = headername(name.strip())
		value = value.strip()
		if name == "Content-Length":
			try:
				self.contentLength = int(value)
			except ValueError:
				self.contentLength = None
		elif name == "Content-Type":
			self.contentType = value
		self.headers[name] = value

	def complete(self, line: HTTPRequestLine) -> Iterator[THTTPAtom]:
		headers = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		request = HTTPRequest(
			line.method,
			line.path,
			parseQuery(line.query),
			headers,
			line.protocol,
		)
		self.skipping = max(0, self.contentLength or 0)
		self.reset()
		yield headers
		yield request
		yield HTTPProcessingStatus.Complete


# EOF
