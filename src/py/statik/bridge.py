from .http.model import (
	HTTPBodyBlob,
	HTTPBodyStream,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .model import Application, Service, mount


class LocalBridge:
	"""Runs requests through an application without a server, which is
	what tests and offline tools use. Response bodies are fully drained,
	and responses are closed once read."""

	def __init__(self, *components: Application | Service):
		self.application: Application = mount(*components)

	def process(self, request: HTTPRequest) -> tuple[HTTPResponse, bytes]:
		response = self.application.process(request)
		try:
			body = b"" if request.method == "HEAD" else self.drain(response)
		finally:
			response.close()
		return response, body

	def fetch(
		self, method: str, path: str, headers: dict[str, str] | None = None
	) -> tuple[HTTPResponse, bytes]:
		"""Processes a request given its method, path and headers, returning
		the response and its body."""
		return self.process(HTTPRequest(method, path, headers=headers))

	def request(self, payload: bytes) -> bytes:
		"""Processes the raw HTTP requests in `payload`, returning the raw
		HTTP responses, as a server would send them."""
		res: list[bytes] = []
		for atom in HTTPParser().feed(payload):
			if isinstance(atom, HTTPRequest):
				response, body = self.process(atom)
				res.append(response.head())
				res.append(body)
			elif atom is HTTPProcessingStatus.BadFormat:
				raise ValueError(f"Malformed request: {payload!r}")
		return b"".join(res)

	@staticmethod
	def drain(response: HTTPResponse) -> bytes:
		body = response.body
		if body is None:
			return b""
		elif isinstance(body, HTTPBodyBlob):
			return body.payload
		elif isinstance(body, HTTPBodyStream):
			return b"".join(body.stream)
		else:
			raise ValueError(f"Unsupported body type {type(body)}: {body}")


# EOF
