import io
from typing import BinaryIO, Iterator

DEFAULT_ENCODING: str = "utf8"
EOL: bytes = b"\r\n"
CHUNK_SIZE: int = 64_000


# -----------------------------------------------------------------------------
#
# LIMIT READER
#
# -----------------------------------------------------------------------------


class LimitReader(io.RawIOBase):
	"""Wraps a binary stream and reads at most `limit` bytes from it, after
	which reads return `b""` whatever is left in the wrapped stream.

	There is no internal buffer: every read goes straight to the wrapped
	stream, so `detach()` can hand it over to another consumer at any point,
	positioned right after the last delivered byte."""

	def __init__(self, stream: BinaryIO | io.RawIOBase, limit: int):
		super().__init__()
		if limit < 0:
			raise ValueError(f"Limit must be positive, got: {limit}")
		self.stream: BinaryIO | io.RawIOBase | None = stream
		self.limit: int = limit
		self.delivered: int = 0

	@property
	def remaining(self) -> int:
		return self.limit - self.delivered

	def readable(self) -> bool:
		return True

	def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
		if self.stream is None:
			raise ValueError("LimitReader has been detached")
		left = self.limit - self.delivered
		if left <= 0:
			return 0
		view = memoryview(buffer)
		# NOTE: We only ever ask the wrapped stream for what's left.
		chunk = self.stream.read(min(left, len(view)))
		if not chunk:
			return 0
		n = len(chunk)
		view[:n] = chunk
		self.delivered += n
		return n

	def read(self, size: int = -1) -> bytes:
		if self.stream is None:
			raise ValueError("LimitReader has been detached")
		left = self.limit - self.delivered
		if left <= 0:
			return b""
		chunk = self.stream.read(left if size is None or size < 0 else min(left, size))
		self.delivered += len(chunk)
		return chunk

	def readall(self) -> bytes:
		return self.read(-1)

	def detach(self) -> BinaryIO | io.RawIOBase:
		"""Returns the wrapped stream, the reader can't be used afterwards."""
		if self.stream is None:
			raise ValueError("LimitReader has already been detached")
		stream, self.stream = self.stream, None
		return stream

	def close(self) -> None:
		if self.stream is not None:
			self.stream.close()
		super().close()


def iterChunks(
	stream: BinaryIO | io.RawIOBase, size: int = CHUNK_SIZE
) -> Iterator[bytes]:
	"""Iterates on the chunks read from the given stream, making sure the
	stream is closed once the iteration ends, or is interrupted."""
	try:
		while chunk := stream.read(size):
			yield chunk
	finally:
		stream.close()


# -----------------------------------------------------------------------------
#
# LINE PARSER
#
# -----------------------------------------------------------------------------


class LineParser:
	"""Incrementally looks for an end-of-line delimiter in fed chunks."""

	__slots__ = ["buffer", "line", "eol", "eolsize", "offset"]

	def __init__(self, eol: bytes = EOL) -> None:
		self.buffer: bytearray = bytearray()
		self.line: bytes | None = None
		self.offset: int = 0
		self.eol: bytes = eol
		self.eolsize: int = len(eol)

	def reset(self) -> "LineParser":
		self.buffer.clear()
		self.line = None
		self.offset = 0
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bytes | None, int]:
		"""Returns the matching line and how many bytes were consumed from
		chunk after `start`. When the line is `None`, the whole chunk has
		been consumed and buffered."""
		pos = len(self.buffer)
		self.buffer += chunk[start:]
		end = self.buffer.find(self.eol, self.offset)
		if end == -1:
			# The delimiter may be split between two chunks
			self.offset = max(0, len(self.buffer) - self.eolsize + 1)
			return None, len(chunk) - start
		else:
			self.line = bytes(self.buffer[:end])
			self.buffer.clear()
			self.offset = 0
			return self.line, (end - pos) + self.eolsize


# EOF
