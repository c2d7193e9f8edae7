import io
import mmap
import os
import stat
import struct
from importlib import resources
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, NamedTuple

from .errors import MalformedPackage, NotFound
from .utils.io import CHUNK_SIZE
from .utils.logging import info, warning

# -----------------------------------------------------------------------------
#
# FORMAT
#
# -----------------------------------------------------------------------------
# A package indexes many files inside a single buffer:
#
# ```
# [u64 meta_len]
# meta_len bytes of records, each being
#     [u64 path_len][path_len bytes of UTF-8 path][i64 last_modified][u64 length][u64 start]
# [data region: the files content, concatenated in the same order as the records]
# ```
#
# All integers are big-endian, `last_modified` is in epoch seconds (UTC) and
# `start` is relative to the beginning of the data region, which starts
# right after the records, at `8 + meta_len`.

U64: struct.Struct = struct.Struct(">Q")
# last_modified, length, start
RECORD_TAIL: struct.Struct = struct.Struct(">qQQ")
HEADER_SIZE: int = U64.size
# path_len + last_modified + length + start
RECORD_SIZE: int = U64.size + RECORD_TAIL.size


class PackageEntry(NamedTuple):
	"""The metadata of a file stored in a package."""

	path: str
	lastModified: int
	length: int
	start: int

	@property
	def end(self) -> int:
		"""The offset right after the last byte of the entry in the data region."""
		return self.start + self.length

	@property
	def recordSize(self) -> int:
		return RECORD_SIZE + len(self.path.encode("utf8"))


# -----------------------------------------------------------------------------
#
# SLICE READER
#
# -----------------------------------------------------------------------------


class SliceReader(io.RawIOBase):
	"""A read-only, seekable binary stream over a memory view. The view is
	never copied, only the bytes that are read are."""

	def __init__(self, data: memoryview):
		super().__init__()
		self.data: memoryview = data
		self.position: int = 0

	@property
	def length(self) -> int:
		return len(self.data)

	def readable(self) -> bool:
		return True

	def seekable(self) -> bool:
		return True

	def tell(self) -> int:
		return self.position

	def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
		if whence == io.SEEK_SET:
			position = offset
		elif whence == io.SEEK_CUR:
			position = self.position + offset
		elif whence == io.SEEK_END:
			position = len(self.data) + offset
		else:
			raise ValueError(f"Invalid whence: {whence}")
		if position < 0:
			raise ValueError(f"Negative seek position: {position}")
		# NOTE: Like files, we can seek past the end, reads will then be empty.
		self.position = position
		return position

	def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
		view = memoryview(buffer)
		chunk = self.data[self.position : self.position + len(view)]
		n = len(chunk)
		view[:n] = chunk
		self.position += n
		return n

	def read(self, size: int = -1) -> bytes:
		end = len(self.data) if size is None or size < 0 else self.position + size
		chunk = self.data[self.position : end]
		self.position += len(chunk)
		return bytes(chunk)

	def readall(self) -> bytes:
		return self.read(-1)


# -----------------------------------------------------------------------------
#
# PACKAGE
#
# -----------------------------------------------------------------------------


class Package:
	"""A decoded package, made of an index of entries and the data region they
	point into. Packages are never mutated once decoded, so they can be
	shared between threads without any locking."""

	@classmethod
	def FromBytes(cls, data: bytes | bytearray | memoryview | mmap.mmap) -> "Package":
		"""Decodes the package, raising `MalformedPackage` if anything is
		off. A package is either fully usable, or not at all."""
		view = memoryview(data).cast("B")
		if not view.readonly:
			# NOTE: We make a copy so that the package can't be mutated
			# from the outside.
			view = memoryview(bytes(view))
		size = len(view)
		if size < HEADER_SIZE:
			raise MalformedPackage(
				f"Package is {size} bytes, expected at least {HEADER_SIZE}"
			)
		meta_len: int = U64.unpack_from(view, 0)[0]
		meta_end: int = HEADER_SIZE + meta_len
		if meta_end > size:
			raise MalformedPackage(
				f"Package metadata is {meta_len} bytes, only {size - HEADER_SIZE} available"
			)
		index: dict[str, PackageEntry] = {}
		offset: int = HEADER_SIZE
		while offset < meta_end:
			if offset + U64.size > meta_end:
				raise MalformedPackage(f"Partial record at offset {offset}")
			path_len: int = U64.unpack_from(view, offset)[0]
			path_start: int = offset + U64.size
			record_end: int = path_start + path_len + RECORD_TAIL.size
			if record_end > meta_end:
				raise MalformedPackage(
					f"Record at offset {offset} overshoots the metadata by {record_end - meta_end} bytes"
				)
			try:
				path = str(view[path_start : path_start + path_len], "utf8")
			except UnicodeDecodeError as e:
				raise MalformedPackage(
					f"Record at offset {offset} has a malformed path: {e}"
				) from e
			last_modified, length, start = RECORD_TAIL.unpack_from(
				view, path_start + path_len
			)
			# NOTE: Duplicate paths overwrite the earlier entry
			index[path] = PackageEntry(path, last_modified, length, start)
			offset = record_end
		data_region = view[meta_end:]
		for entry in index.values():
			if entry.end > len(data_region):
				raise MalformedPackage(
					f"Entry '{entry.path}' ends at {entry.end}, past the data region of {len(data_region)} bytes"
				)
		return cls(index, data_region)

	@classmethod
	def FromPath(cls, path: Path | str) -> "Package":
		"""Loads the package by memory mapping the file at the given path."""
		with open(path, "rb") as f:
			try:
				data = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
			except ValueError as e:
				# Empty files can't be mapped
				raise MalformedPackage(f"Package file can't be mapped: {path}: {e}") from e
		package = cls.FromBytes(data)
		info(
			"Package loaded",
			Path=str(path),
			Entries=len(package),
			Size=len(package.data),
		)
		return package

	@classmethod
	def FromResource(cls, package: str, name: str) -> "Package":
		"""Loads a package shipped as data within an importable Python package."""
		return cls.FromBytes(resources.files(package).joinpath(name).read_bytes())

	def __init__(self, index: dict[str, PackageEntry], data: memoryview):
		self.index: dict[str, PackageEntry] = index
		self.data: memoryview = data

	def get(self, path: str) -> PackageEntry | None:
		return self.index.get(path)

	def entry(self, path: str) -> PackageEntry:
		if (res := self.index.get(path)) is None:
			raise NotFound(path)
		return res

	def entries(self) -> Iterator[PackageEntry]:
		"""Iterates on the entries in the order of the data region."""
		yield from sorted(self.index.values(), key=lambda _: (_.start, _.path))

	def open(self, path: str) -> SliceReader:
		"""Returns a stream over the content of the entry at the given path."""
		entry = self.entry(path)
		return SliceReader(self.data[entry.start : entry.end])

	def read(self, path: str) -> bytes:
		entry = self.entry(path)
		return bytes(self.data[entry.start : entry.end])

	def __contains__(self, path: object) -> bool:
		return path in self.index

	def __len__(self) -> int:
		return len(self.index)

	def __iter__(self) -> Iterator[str]:
		return iter(self.index)

	def __repr__(self) -> str:
		return f"(Package :entries {len(self.index)} :data {len(self.data)})"


# -----------------------------------------------------------------------------
#
# ENCODING
#
# -----------------------------------------------------------------------------


def validPackagePath(path: str) -> bool:
	"""Tells if the path can be stored in a package: valid UTF-8, relative,
	forward-slash separated, and with no empty, `.` or `..` segments."""
	try:
		path.encode("utf8")
	except UnicodeEncodeError:
		# Names that aren't UTF-8 on disk come back from `os` with surrogates
		return False
	return (
		bool(path)
		and "\\" not in path
		and all(_ not in ("", ".", "..") for _ in path.split("/"))
	)


def writePackage(
	root: Path | str,
	paths: Iterable[str],
	writer: BinaryIO,
	*,
	chunkSize: int = CHUNK_SIZE,
) -> int:
	"""Writes a package containing the files at the given `paths`, relative to
	`root`, and returns the number of bytes written. Paths are sorted by their
	UTF-8 bytes, so that the same files always produce the same package."""
	base = Path(root)
	files: list[str] = list(paths)
	for path in files:
		if not validPackagePath(path):
			raise ValueError(f"Path can't be stored in a package: {path!r}")
	files.sort(key=lambda _: _.encode("utf8"))
	for i, path in enumerate(files):
		if i and files[i - 1] == path:
			raise ValueError(f"Duplicate path: {path!r}")
	# We first gather the metadata, without reading the content
	entries: list[PackageEntry] = []
	offset: int = 0
	for path in files:
		st = (base / path).stat()
		if not stat.S_ISREG(st.st_mode):
			raise ValueError(f"Path is not a regular file: {path!r}")
		entry = PackageEntry(
			path, st.st_mtime_ns // 1_000_000_000, st.st_size, offset
		)
		entries.append(entry)
		offset += entry.length
	meta_len = sum(_.recordSize for _ in entries)
	written: int = writer.write(U64.pack(meta_len)) or 0
	for entry in entries:
		path_bytes = entry.path.encode("utf8")
		written += writer.write(U64.pack(len(path_bytes))) or 0
		written += writer.write(path_bytes) or 0
		written += (
			writer.write(RECORD_TAIL.pack(entry.lastModified, entry.length, entry.start))
			or 0
		)
	# And now the data region
	for entry in entries:
		copied: int = 0
		with open(base / entry.path, "rb") as f:
			while chunk := f.read(chunkSize):
				copied += len(chunk)
				written += writer.write(chunk) or 0
		if copied != entry.length:
			raise MalformedPackage(
				f"File '{entry.path}' changed while packaging, expected {entry.length} bytes, got {copied}"
			)
	return written


def listPackageFiles(root: Path | str) -> list[str]:
	"""Lists the regular files under `root`, as forward-slash separated paths
	relative to `root`. Files whose path can't be stored in a package are
	skipped with a warning."""
	base = Path(root)
	res: list[str] = []
	for dirpath, _, filenames in os.walk(base):
		for name in filenames:
			path = Path(dirpath) / name
			if not path.is_file():
				continue
			relpath = path.relative_to(base).as_posix()
			if validPackagePath(relpath):
				res.append(relpath)
			else:
				warning("Skipping file with unsupported name", Path=repr(relpath))
	return sorted(res, key=lambda _: _.encode("utf8"))


def createPackageFromDir(root: Path | str, writer: BinaryIO) -> int:
	"""Writes a package of all the files found under `root`."""
	return writePackage(root, listPackageFiles(root), writer)


def savePackage(root: Path | str, output: Path | str) -> int:
	"""Creates a package file at `output` from the files under `root`. The
	output file is excluded from the package if it lives under `root`."""
	base = Path(root)
	target = Path(output).absolute()
	files = [_ for _ in listPackageFiles(base) if (base / _).absolute() != target]
	with open(target, "wb") as f:
		size = writePackage(base, files, f)
	info("Package created", Path=str(target), Entries=len(files), Size=size)
	return size


# EOF
