from typing import ClassVar, Iterable, Iterator

from mypy_extensions import mypyc_attr

from .http.model import HTTPRequest, HTTPResponse
from .routing import Dispatcher, Handler
from .utils.logging import exception

# -----------------------------------------------------------------------------
#
# SERVICE
#
# -----------------------------------------------------------------------------


@mypyc_attr(allow_interpreted_subclasses=True)
class Service:
	"""A service groups the request handlers (methods decorated with `@on`)
	that share a prefix. A service may also answer requests that no route
	matched, by overriding `fallback`."""

	PREFIX: ClassVar[str] = ""

	def __init__(self, name: str | None = None, *, prefix: str | None = None) -> None:
		self.name: str = name or type(self).__name__
		self.prefix: str = self.PREFIX if prefix is None else prefix
		self.app: Application | None = None
		self._handlers: list[Handler] | None = None
		self.init()

	def init(self) -> None:
		"""Can be overridden to initialize the service."""

	async def start(self) -> None:
		"""Called once the server is ready to accept connections."""

	async def stop(self) -> None:
		"""Called once the server has stopped accepting connections."""

	def fallback(self, request: HTTPRequest) -> HTTPResponse | None:
		"""Answers a request that no route matched, `None` leaves it to the
		next service."""
		return None

	@property
	def isMounted(self) -> bool:
		return self.app is not None

	@property
	def handlers(self) -> list[Handler]:
		if self._handlers is None:
			self._handlers = list(self.iterHandlers())
		return self._handlers

	def iterHandlers(self) -> Iterator[Handler]:
		cls = type(self)
		for name in dir(cls):
			# Only methods, properties are left unevaluated
			if callable(getattr(cls, name, None)) and (
				handler := Handler.Get(getattr(self, name))
			):
				yield handler

	def __repr__(self) -> str:
		return f"(Service {self.name} {self.prefix!r}{' :mounted' if self.isMounted else ''})"


# -----------------------------------------------------------------------------
#
# APPLICATION
#
# -----------------------------------------------------------------------------


class Application:
	"""Dispatches requests to the routes of the mounted services, and then
	to their fallbacks, in mount order."""

	def __init__(self, services: Iterable[Service] | None = None) -> None:
		self.dispatcher: Dispatcher = Dispatcher()
		self.services: list[Service] = []
		for service in services or ():
			self.mount(service)

	def mount(self, service: Service, prefix: str | None = None) -> Service:
		if service.isMounted:
			raise RuntimeError(f"Service is already mounted: {service}")
		for handler in service.handlers:
			self.dispatcher.register(handler, service.prefix if prefix is None else prefix)
		service.app = self
		self.services.append(service)
		return service

	async def start(self) -> None:
		for service in self.services:
			await service.start()

	async def stop(self) -> None:
		for service in self.services:
			await service.stop()

	def process(self, request: HTTPRequest) -> HTTPResponse:
		"""Always returns a response: 404 when nothing answered the request,
		500 when processing failed."""
		try:
			route, params = self.dispatcher.match(request.method, request.path)
			if route and route.handler:
				return route.handler(request, params)
			for service in self.services:
				if (res := service.fallback(request)) is not None:
					return res
			return request.notFound()
		except Exception as e:
			exception(e, f"Failed to process {request.method} {request.path}")
			return request.fail()


def mount(*components: Application | Service) -> Application:
	"""Returns an application with the given services mounted, reusing the
	first given application if any."""
	app: Application | None = None
	for item in components:
		if isinstance(item, Application):
			app = app or item
		elif not isinstance(item, Service):
			raise RuntimeError(f"Unsupported component type {type(item)}: {item}")
	app = app or Application()
	for item in components:
		if isinstance(item, Service):
			app.mount(item)
	return app


# EOF
