from pathlib import Path
from urllib.parse import unquote

from ..config import CHUNK_SIZE, COMPRESSION_LEVEL
from ..errors import InvalidRange, NotFound, UnsupportedRange
from ..http.dates import formatHTTPDate, parseHTTPDate
from ..http.model import HTTPRequest, HTTPResponse
from ..http.ranges import ByteRange, parseRange
from ..model import Service
from ..storage import FileStorage, PackageStorage, Storage
from ..utils.codec import GZipEncoder, encoded
from ..utils.files import contentType
from ..utils.io import LimitReader, iterChunks
from ..utils.logging import debug, logged

# -----------------------------------------------------------------------------
#
# STATIC FILES
#
# -----------------------------------------------------------------------------
# The static files service answers the GET and HEAD requests under its prefix
# that no route has matched. Each request goes through a single pass, where
# any step may end the processing with a response:
#
#   prefix/method gate → root check → existence → content type →
#   conditional GET → size → HEAD → range → open → compression


def normalizePrefix(prefix: str) -> str:
	"""Makes sure the prefix starts and ends with a `/`."""
	prefix = prefix if prefix.startswith("/") else f"/{prefix}"
	return prefix if prefix.endswith("/") else f"{prefix}/"


class StaticFiles(Service):
	"""Serves the files of a storage, with support for conditional GETs,
	single byte ranges and gzip compression."""

	@classmethod
	def FromPath(cls, path: Path | str, prefix: str = "/") -> "StaticFiles":
		"""Serves the given directory, or the given package file."""
		p = Path(path)
		storage: Storage = PackageStorage.FromPath(p) if p.is_file() else FileStorage(p)
		return cls(storage, prefix)

	def __init__(
		self,
		storage: Storage,
		prefix: str = "/",
		*,
		compressionLevel: int = COMPRESSION_LEVEL,
		chunkSize: int = CHUNK_SIZE,
		name: str | None = None,
	):
		self.storage: Storage = storage
		self.compressionLevel: int = compressionLevel
		self.chunkSize: int = chunkSize
		super().__init__(name, prefix=normalizePrefix(prefix))

	def fallback(self, request: HTTPRequest) -> HTTPResponse | None:
		return self.process(request)

	def process(self, request: HTTPRequest) -> HTTPResponse | None:
		"""Returns the response for the request, or `None` when the request
		is not for this service."""
		method = request.method
		if method not in ("GET", "HEAD") or not request.path.startswith(self.prefix):
			return None
		path = unquote(request.path[len(self.prefix) :])
		if not self.storage.isWithinRoot(path):
			logged(debug) and debug("Path outside of root", Path=path)
			return request.notAuthorized()
		if not self.storage.exists(path):
			logged(debug) and debug("Path not found", Path=path)
			return request.notFound()

		headers: dict[str, str] = {}
		if content_type := contentType(path):
			headers["Content-Type"] = content_type

		# The file exists, so a failure is a permission issue
		try:
			meta = self.storage.metadata(path)
		except (NotFound, OSError):
			return request.notAuthorized()
		last_modified = formatHTTPDate(meta.lastModified)

		if method == "GET":
			since = parseHTTPDate(request.header("If-Modified-Since"))
			if since is not None and since == meta.lastModified:
				logged(debug) and debug("Not modified", Path=path)
				return request.notModified(headers)

		size: int = meta.length
		headers["Accept-Ranges"] = "bytes"
		headers["Last-Modified"] = last_modified
		if method == "HEAD":
			headers["Content-Length"] = str(size)
			return request.empty(200, headers)

		byte_range = self.requestedRange(request.header("Range"), size)
		try:
			stream = self.storage.open(path, byte_range.start if byte_range else 0)
		except (NotFound, OSError):
			return request.notAuthorized()

		status: int = 200
		if byte_range:
			stream = LimitReader(stream, byte_range.length)
			headers["Content-Length"] = str(byte_range.length)
			headers["Content-Range"] = byte_range.contentRange(size)
			status = 206
			logged(debug) and debug(
				"Serving range", Path=path, Start=byte_range.start, End=byte_range.end
			)
		else:
			headers["Content-Length"] = str(size)

		body = iterChunks(stream, self.chunkSize)
		if "gzip" in (request.header("Accept-Encoding") or ""):
			body = encoded(body, GZipEncoder(self.compressionLevel))
			headers["Content-Encoding"] = "gzip"
			# The compressed size is only known once streamed
			del headers["Content-Length"]
		return request.respond(body, status=status, headers=headers)

	def requestedRange(self, header: str | None, size: int) -> ByteRange | None:
		"""Returns the range to serve given the `Range` header, or `None` when
		the whole file is to be served."""
		if not header:
			return None
		try:
			byte_range = parseRange(header)
		except UnsupportedRange:
			logged(debug) and debug("Multiple ranges, serving whole file", Range=header)
			return None
		except InvalidRange:
			logged(debug) and debug("Invalid range, serving whole file", Range=header)
			return None
		return byte_range.clamp(size)

	def __repr__(self) -> str:
		return f"(StaticFiles {self.prefix} {self.storage!r})"


# EOF
