from typing import Any, Callable, ClassVar, TypeVar

T = TypeVar("T")


class Statik:
	"""Where decorators store their annotations. Functions keep them in
	their `__dict__`, other callables (for instance when compiled with
	MyPyC) in `Annotations`, by object id."""

	ON: ClassVar[str] = "_statik_on"
	ON_PRIORITY: ClassVar[str] = "_statik_on_priority"
	Annotations: ClassVar[dict[int, dict[str, Any]]] = {}

	@staticmethod
	def Meta(scope: Any) -> dict[str, Any]:
		"""Returns the annotations of the scope, creating them if needed."""
		if isinstance(meta := getattr(scope, "__dict__", None), dict):
			return meta
		return Statik.Annotations.setdefault(id(scope), {})

	@staticmethod
	def Lookup(scope: Any) -> dict[str, Any] | None:
		"""Returns the annotations of the scope, if any."""
		if isinstance(meta := getattr(scope, "__dict__", None), dict) and Statik.ON in meta:
			return meta
		return Statik.Annotations.get(id(scope))


def on(priority: int = 0, **methods: str | list[str] | tuple[str, ...]) -> Callable[[T], T]:
	"""Registers the decorated method as a request handler. Keywords are HTTP
	methods, joined with `_` to share routes (as in `GET_HEAD`), and values
	are route templates whose parameters are given to the handler:

	>    @on(GET="/health")
	>    def health(self, request):
	>        return request.respondText("OK")
	"""

	def decorator(function: T) -> T:
		meta = Statik.Meta(function)
		routes: list[tuple[str, str]] = meta.setdefault(Statik.ON, [])
		meta.setdefault(Statik.ON_PRIORITY, priority)
		for names, templates in methods.items():
			for method in names.upper().split("_"):
				for template in (templates,) if isinstance(templates, str) else templates:
					routes.append((method, template))
		return function

	return decorator


# EOF
