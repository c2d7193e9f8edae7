import os
import sys
import time
from contextvars import ContextVar
from enum import Enum
from typing import Any, Callable, ClassVar, NamedTuple, TextIO

# -----------------------------------------------------------------------------
#
# LOGGING
#
# -----------------------------------------------------------------------------
# Log entries are single lines written to `stderr`, as in:
#
# ```
# [statik] 🚀 Statik server listening Host=0.0.0.0 Port=8000
# [statik] GET /index.html Status=200
# ```
#
# Context is given as keyword arguments, which are rendered as `Key=value`.
# Entries below `LOG_LEVEL` are dropped, use `logged(debug) and debug(…)` to
# avoid building them in the first place.

# SEE: https://no-color.org/
COLOR: bool = "FORCE_COLOR" in os.environ or (
	"NO_COLOR" not in os.environ and sys.stderr.isatty()
)

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="statik")


class Term:
	BOLD: ClassVar[str] = "\033[1m" if COLOR else ""
	RESET: ClassVar[str] = "\033[0m" if COLOR else ""

	@staticmethod
	def Color(color: int) -> str:
		return f"\033[0;38;5;{color}m" if COLOR else ""


class LogType(Enum):
	Message = "message"
	Event = "event"


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	# An error that was handled
	Error = 40
	# An error that was not
	Exception = 50


LEVEL_COLORS: dict[LogLevel, int] = {
	LogLevel.Debug: 244,
	LogLevel.Info: 75,
	LogLevel.Warning: 214,
	LogLevel.Error: 160,
	LogLevel.Exception: 196,
}

LEVELS: dict[str, LogLevel] = {_.name.lower(): _ for _ in LogLevel}

LOG_LEVEL: LogLevel = LEVELS.get(
	os.getenv("STATIK_LOG_LEVEL", "info").lower(), LogLevel.Info
)


class LogEntry(NamedTuple):
	origin: str
	time: float
	level: LogLevel
	type: LogType = LogType.Message
	# The message, or the name of the event
	message: str = ""
	value: Any = None
	context: dict[str, Any] | None = None
	icon: str | None = None


def setLevel(level: LogLevel | str) -> LogLevel:
	"""Sets the minimum level of the entries that are written out."""
	global LOG_LEVEL
	LOG_LEVEL = level if isinstance(level, LogLevel) else LEVELS[level.lower()]
	return LOG_LEVEL


def formatValue(value: Any) -> str:
	if isinstance(value, bool):
		return "yes" if value else "no"
	elif isinstance(value, float):
		return f"{value:0.3f}"
	elif isinstance(value, str):
		return repr(value) if not value or " " in value else value
	elif isinstance(value, (list, tuple)):
		return ",".join(formatValue(_) for _ in value)
	else:
		return str(value)


def formatEntry(entry: LogEntry) -> str:
	color: str = Term.Color(LEVEL_COLORS[entry.level])
	head: str = f"{color}{Term.BOLD}[{entry.origin}]{Term.RESET}{color}"
	parts: list[str] = [head]
	if entry.icon:
		parts.append(entry.icon)
	parts.append(entry.message)
	if entry.value is not None:
		parts.append(formatValue(entry.value))
	for k, v in (entry.context or {}).items():
		parts.append(f"{k}={formatValue(v)}")
	return f"{' '.join(parts)}{Term.RESET}"


def log(
	level: LogLevel,
	message: str,
	*,
	type: LogType = LogType.Message,
	value: Any = None,
	origin: str | None = None,
	icon: str | None = None,
	context: dict[str, Any] | None = None,
) -> LogEntry:
	entry = LogEntry(
		origin=origin or LogOrigin.get(),
		time=time.time(),
		level=level,
		type=type,
		message=message,
		value=value,
		context=context,
		icon=icon,
	)
	if level.value >= LOG_LEVEL.value:
		out: TextIO = sys.stderr
		out.write(formatEntry(entry) + "\n")
		out.flush()
	return entry


def debug(message: str, *, origin: str | None = None, icon: str | None = None, **context: Any) -> LogEntry:
	return log(LogLevel.Debug, message, origin=origin, icon=icon, context=context)


def info(message: str, *, origin: str | None = None, icon: str | None = None, **context: Any) -> LogEntry:
	return log(LogLevel.Info, message, origin=origin, icon=icon, context=context)


def warning(message: str, *, origin: str | None = None, icon: str | None = None, **context: Any) -> LogEntry:
	return log(LogLevel.Warning, message, origin=origin, icon=icon, context=context)


def error(
	message: str, code: int | str | None = None, *, origin: str | None = None, **context: Any
) -> LogEntry:
	"""Logs a handled error, along with its code."""
	return log(LogLevel.Error, message, value=code, origin=origin, context=context)


def event(name: str, value: Any = None, *, origin: str | None = None, **context: Any) -> LogEntry:
	"""Logs something that happened, as a request being answered."""
	return log(
		LogLevel.Info, name, type=LogType.Event, value=value, origin=origin, context=context
	)


def exception(e: BaseException, message: str | None = None) -> BaseException:
	"""Logs the exception along with its traceback, and returns it so that
	`raise exception(e)` works. This never fails, so that it can be used
	from exception handlers."""
	try:
		log(
			LogLevel.Exception,
			f"{message}: " if message else "",
			value=f"{type(e).__name__}: {e}",
		)
		if LogLevel.Exception.value >= LOG_LEVEL.value:
			out: TextIO = sys.stderr
			tb = e.__traceback__
			while tb:
				code = tb.tb_frame.f_code
				out.write(f"  … {code.co_filename}:{tb.tb_lineno} in {code.co_name}\n")
				tb = tb.tb_next
			out.flush()
	except Exception:  # nosec: B110
		pass
	return e


LOGGERS: dict[Callable[..., LogEntry], LogLevel] = {
	debug: LogLevel.Debug,
	info: LogLevel.Info,
	warning: LogLevel.Warning,
	error: LogLevel.Error,
	event: LogLevel.Info,
}


def logged(logger: Callable[..., LogEntry]) -> bool:
	"""Tells if entries logged with the given function are written out."""
	return LOGGERS.get(logger, LogLevel.Info).value >= LOG_LEVEL.value


# EOF
