import io
import os
import stat
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, NamedTuple

from mypy_extensions import mypyc_attr

from .errors import NotFound, PathOutsideRoot
from .package import Package


class StorageMetadata(NamedTuple):
	"""The metadata the static files service needs about a file."""

	lastModified: int
	length: int


# -----------------------------------------------------------------------------
#
# STORAGE
#
# -----------------------------------------------------------------------------
# Storages give access to the files to be served, keyed by relative paths
# (forward-slash separated, without a leading slash).


@mypyc_attr(allow_interpreted_subclasses=True)
class Storage(ABC):
	"""The contract the static files service relies on."""

	@abstractmethod
	def exists(self, path: str) -> bool:
		"""Tells if there is a regular file at the given path."""

	@abstractmethod
	def metadata(self, path: str) -> StorageMetadata:
		"""Returns the metadata of the file, raising `NotFound`."""

	@abstractmethod
	def open(self, path: str, start: int = 0) -> BinaryIO | io.RawIOBase:
		"""Opens the file for reading, positioned at `start`. Raises `NotFound`
		or any `OSError`."""

	@abstractmethod
	def isWithinRoot(self, path: str) -> bool:
		"""Tells if the path can't escape the storage root."""


class FileStorage(Storage):
	"""Serves files from a directory of the local filesystem."""

	def __init__(self, root: Path | str):
		super().__init__()
		self.root: Path = Path(root).resolve()

	def resolve(self, path: str) -> Path:
		"""Returns the canonical local path, raising `PathOutsideRoot` if it
		escapes the root, symlinks included."""
		local_path = self.root.joinpath(path.lstrip("/")).resolve()
		if local_path.parts[: len(parts := self.root.parts)] != parts:
			raise PathOutsideRoot(path)
		return local_path

	def isWithinRoot(self, path: str) -> bool:
		try:
			self.resolve(path)
		except PathOutsideRoot:
			return False
		except (OSError, RuntimeError, ValueError):
			# NOTE: Symlink loops raise `RuntimeError`, null bytes `ValueError`
			return False
		return True

	def _stat(self, path: str) -> os.stat_result:
		try:
			st = self.resolve(path).stat()
		except (PathOutsideRoot, OSError, ValueError) as e:
			raise NotFound(path) from e
		if not stat.S_ISREG(st.st_mode):
			raise NotFound(path)
		return st

	def exists(self, path: str) -> bool:
		try:
			self._stat(path)
		except NotFound:
			return False
		return True

	def metadata(self, path: str) -> StorageMetadata:
		st = self._stat(path)
		return StorageMetadata(st.st_mtime_ns // 1_000_000_000, st.st_size)

	def open(self, path: str, start: int = 0) -> BinaryIO:
		try:
			local_path = self.resolve(path)
		except PathOutsideRoot as e:
			raise NotFound(path) from e
		# A fresh handle per request, the caller owns it.
		f = open(local_path, "rb")
		if start:
			try:
				f.seek(start)
			except OSError:
				f.close()
				raise
		return f

	def __repr__(self) -> str:
		return f"(FileStorage {self.root})"


class PackageStorage(Storage):
	"""Serves files from a package. Only the paths that were packaged can be
	looked up, so no path can ever escape the root."""

	@classmethod
	def FromPath(cls, path: Path | str) -> "PackageStorage":
		return cls(Package.FromPath(path))

	def __init__(self, package: Package):
		super().__init__()
		self.package: Package = package

	def isWithinRoot(self, path: str) -> bool:
		return True

	def exists(self, path: str) -> bool:
		return path in self.package

	def metadata(self, path: str) -> StorageMetadata:
		entry = self.package.entry(path)
		return StorageMetadata(entry.lastModified, entry.length)

	def open(self, path: str, start: int = 0) -> BinaryIO | io.RawIOBase:
		reader = self.package.open(path)
		if start:
			reader.seek(start)
		return reader

	def __repr__(self) -> str:
		return f"(PackageStorage {self.package!r})"


# EOF
