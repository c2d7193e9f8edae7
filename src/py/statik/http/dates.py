from datetime import datetime, timezone

# Fixed pattern used both to write `Last-Modified` and to parse
# `If-Modified-Since`. It is always rendered in UTC.
HTTP_DATE_FORMAT: str = "%a, %d %b %Y %H:%M:%S GMT"

DAYS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTHS: tuple[str, ...] = (
	"Jan",
	"Feb",
	"Mar",
	"Apr",
	"May",
	"Jun",
	"Jul",
	"Aug",
	"Sep",
	"Oct",
	"Nov",
	"Dec",
)


def formatHTTPDate(timestamp: int | float) -> str:
	"""Formats the epoch timestamp following `HTTP_DATE_FORMAT`, truncated to
	the second."""
	t = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
	# NOTE: `%a` and `%b` are locale-dependent, so we expand them ourselves.
	return t.strftime(
		HTTP_DATE_FORMAT.replace("%a", DAYS[t.weekday()]).replace(
			"%b", MONTHS[t.month - 1]
		)
	)


def parseHTTPDate(value: str | None) -> int | None:
	"""Parses a date following `HTTP_DATE_FORMAT` into epoch seconds, returns
	`None` when the value does not match."""
	if not value:
		return None
	parts = value.strip().split(" ")
	if (
		len(parts) != 6
		or not parts[0].endswith(",")
		or parts[0][:-1] not in DAYS
		or parts[2] not in MONTHS
		or parts[5] != "GMT"
	):
		return None
	try:
		t = datetime.strptime(
			f"{parts[1]} {MONTHS.index(parts[2]) + 1} {parts[3]} {parts[4]}",
			"%d %m %Y %H:%M:%S",
		)
	except ValueError:
		return None
	return int(t.replace(tzinfo=timezone.utc).timestamp())


# EOF
