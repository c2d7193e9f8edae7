import zlib
from abc import ABC, abstractmethod
from typing import Iterable, Iterator


class BytesTransform(ABC):
	"""An abstract bytes transform."""

	@abstractmethod
	def feed(self, chunk: bytes) -> bytes:
		"""Feeds bytes to the transform, may return an empty result."""

	@abstractmethod
	def flush(self) -> bytes:
		"""Returns whatever the transform still holds, the transform must not
		be fed afterwards."""


class GZipEncoder(BytesTransform):
	"""Encode bytes as Gzip"""

	__slots__ = ["compressor"]

	def __init__(self, level: int = 6) -> None:
		super().__init__()
		self.compressor = zlib.compressobj(level=level, wbits=zlib.MAX_WBITS | 16)

	def feed(self, chunk: bytes) -> bytes:
		return self.compressor.compress(chunk)

	def flush(self) -> bytes:
		return self.compressor.flush()


class GZipDecoder(BytesTransform):
	"""Decodes bytes as Gzip"""

	__slots__ = ["decompressor"]

	def __init__(self) -> None:
		super().__init__()
		self.decompressor = zlib.decompressobj(wbits=zlib.MAX_WBITS | 32)

	def feed(self, chunk: bytes) -> bytes:
		return self.decompressor.decompress(chunk)

	def flush(self) -> bytes:
		return self.decompressor.flush()


def encoded(chunks: Iterable[bytes], transform: BytesTransform) -> Iterator[bytes]:
	"""Applies the transform to the given stream of chunks, skipping empty
	outputs. The source is closed when the iteration ends or is interrupted,
	if it supports it."""
	try:
		for chunk in chunks:
			if res := transform.feed(chunk):
				yield res
		if res := transform.flush():
			yield res
	finally:
		close = getattr(chunks, "close", None)
		if close:
			close()


# EOF
