import re
from typing import NamedTuple, Pattern

from ..errors import InvalidRange, UnsupportedRange

# -----------------------------------------------------------------------------
#
# RANGE
#
# -----------------------------------------------------------------------------
# SEE: https://httpwg.org/specs/rfc9110.html#field.range
#
# Only the `unit=start-end` form is supported, suffix (`bytes=-500`) and
# open-ended (`bytes=500-`) ranges are treated as invalid, which means they
# are ignored and the whole resource is sent.


RE_RANGE: Pattern[str] = re.compile(
	r"^\s*(?P<unit>[!#$%&'*+\-.^_`|~0-9A-Za-z]+)\s*=\s*(?P<start>[0-9]+)\s*-\s*(?P<end>[0-9]+)\s*$"
)


class ByteRange(NamedTuple):
	"""A single range of bytes, both `start` and `end` being inclusive."""

	unit: str
	start: int
	end: int

	@property
	def length(self) -> int:
		return self.end - self.start + 1

	def clamp(self, size: int) -> "ByteRange | None":
		"""Returns this range bound to a resource of the given `size`, or `None`
		when the range can't be satisfied."""
		if self.start >= size:
			return None
		elif self.end >= size:
			return self._replace(end=size - 1)
		else:
			return self

	def contentRange(self, size: int) -> str:
		"""Returns the value of the `Content-Range` header for this range."""
		return f"{self.unit} {self.start}-{self.end}/{size}"

	@classmethod
	def Parse(cls, value: str) -> "ByteRange":
		return parseRange(value)


def parseRange(value: str) -> ByteRange:
	"""Parses the value of a `Range` header, raising `UnsupportedRange` for
	multiple ranges and `InvalidRange` for anything else that is not
	`unit=start-end` with `start <= end`."""
	if "," in value:
		raise UnsupportedRange(f"Multiple ranges are not supported: {value!r}")
	match = RE_RANGE.match(value)
	if not match:
		raise InvalidRange(f"Malformed range: {value!r}")
	start = int(match.group("start"))
	end = int(match.group("end"))
	if end < start:
		raise InvalidRange(f"Range ends before it starts: {value!r}")
	return ByteRange(match.group("unit"), start, end)


# EOF
