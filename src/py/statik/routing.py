import re
from typing import Any, Callable, NamedTuple, Pattern

from .decorators import Statik
from .http.model import HTTPRequest, HTTPRequestError, HTTPResponse
from .utils.logging import debug, logged

# -----------------------------------------------------------------------------
#
# ROUTES
#
# -----------------------------------------------------------------------------
# Routes are path templates where `{name}` or `{name:type}` denote parameters,
# as in `/user/{id:digits}/files/{path:rest}`. Parameters are `segment` by
# default, and are passed to handlers converted by their type.


class ParameterType(NamedTuple):
	expr: str
	convert: Callable[[str], Any]


PARAMETER_TYPES: dict[str, ParameterType] = {
	"id": ParameterType(r"[a-zA-Z0-9\-_]+", str),
	"name": ParameterType(r"\w[\-\w]*", str),
	"digits": ParameterType(r"[0-9]+", int),
	"segment": ParameterType(r"[^/]+", str),
	"any": ParameterType(r".*", str),
	"rest": ParameterType(r".+", str),
}

RE_PARAMETER: Pattern[str] = re.compile(
	r"\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(:(?P<type>[^}]+))?\}"
)


def compileRoute(
	template: str,
) -> tuple[Pattern[str], dict[str, Callable[[str], Any]]]:
	"""Compiles the template into a regular expression matching whole paths,
	returned along with the converters of the parameters."""
	expr: list[str] = []
	converters: dict[str, Callable[[str], Any]] = {}
	offset: int = 0
	for match in RE_PARAMETER.finditer(template):
		name: str = match.group("name")
		kind: str = (match.group("type") or "segment").lower()
		if (param := PARAMETER_TYPES.get(kind)) is None:
			raise ValueError(
				f"Unknown parameter type '{kind}' in route '{template}', pick one of: {', '.join(sorted(PARAMETER_TYPES))}"
			)
		expr.append(re.escape(template[offset : match.start()]))
		expr.append(f"(?P<{name}>{param.expr})")
		converters[name] = param.convert
		offset = match.end()
	expr.append(re.escape(template[offset:]))
	return re.compile(f"^{''.join(expr)}$"), converters


class Route:
	def __init__(self, template: str, handler: "Handler | None" = None):
		self.template: str = template
		self.handler: Handler | None = handler
		self.regexp, self.converters = compileRoute(template)

	@property
	def priority(self) -> int:
		return self.handler.priority if self.handler else 0

	def match(self, path: str) -> dict[str, Any] | None:
		"""Returns the converted parameters if the path matches."""
		if (match := self.regexp.match(path)) is None:
			return None
		return {k: convert(match.group(k)) for k, convert in self.converters.items()}

	def __repr__(self) -> str:
		return f"(Route {self.template!r})"


# -----------------------------------------------------------------------------
#
# HANDLER
#
# -----------------------------------------------------------------------------


class Handler:
	"""A method decorated with `@on`, along with the `(method, route)` pairs
	it answers."""

	@classmethod
	def Get(cls, value: Any) -> "Handler | None":
		"""Returns a handler if the value was decorated with `@on`."""
		if not callable(value):
			return None
		# Bound methods carry the annotations of their function
		meta = Statik.Lookup(getattr(value, "__func__", value))
		if not meta or not (routes := meta.get(Statik.ON)):
			return None
		return cls(value, routes, meta.get(Statik.ON_PRIORITY, 0))

	def __init__(
		self,
		functor: Callable[..., HTTPResponse],
		routes: list[tuple[str, str]],
		priority: int = 0,
	):
		self.functor: Callable[..., HTTPResponse] = functor
		self.routes: list[tuple[str, str]] = routes
		self.priority: int = priority

	def __call__(self, request: HTTPRequest, params: dict[str, Any]) -> HTTPResponse:
		try:
			return self.functor(request, **params)
		except HTTPRequestError as e:
			return request.error(e.status or 500, e.message)

	def __repr__(self) -> str:
		return f"(Handler {self.functor.__name__} {self.priority} {self.routes})"


# -----------------------------------------------------------------------------
#
# DISPATCHER
#
# -----------------------------------------------------------------------------


class Dispatcher:
	"""Matches requests to routes, by method then path. Routes are tried by
	decreasing priority, then in registration order."""

	def __init__(self) -> None:
		self.routes: dict[str, list[Route]] = {}

	def register(self, handler: Handler, prefix: str | None = None) -> "Dispatcher":
		base: str = (prefix or "").rstrip("/")
		for method, template in handler.routes:
			path = f"{base}/{template.lstrip('/')}"
			logged(debug) and debug("Registered route", Method=method, Path=path)
			routes = self.routes.setdefault(method, [])
			routes.append(Route(path, handler))
			routes.sort(key=lambda _: -_.priority)
		return self

	def match(self, method: str, path: str) -> tuple[Route | None, dict[str, Any]]:
		for route in self.routes.get(method, ()):
			if (params := route.match(path)) is not None:
				return route, params
		return None, {}


# EOF
