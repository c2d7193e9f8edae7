import io
import os
import struct
import sys
from pathlib import Path

import pytest

from statik.errors import MalformedPackage, NotFound
from statik.package import (
	Package,
	createPackageFromDir,
	listPackageFiles,
	savePackage,
	writePackage,
)


def record(path: bytes, lastModified: int, length: int, start: int) -> bytes:
	return struct.pack(">Q", len(path)) + path + struct.pack(">qQQ", lastModified, length, start)


def package(*records: bytes, data: bytes = b"") -> bytes:
	meta = b"".join(records)
	return struct.pack(">Q", len(meta)) + meta + data


# -----------------------------------------------------------------------------
#
# ENCODING
#
# -----------------------------------------------------------------------------


def test_round_trip(packaged, files, mtime):
	pkg = Package.FromBytes(packaged)
	assert sorted(pkg) == sorted(files)
	assert len(pkg) == len(files)
	for path, data in files.items():
		assert pkg.read(path) == data
		entry = pkg.entry(path)
		assert entry.length == len(data)
		assert entry.lastModified == mtime


def test_layout():
	data = package(record(b"a.txt", 1000, 2, 0), data=b"AB")
	# meta_len = path_len (8) + path (5) + last_modified, length, start (24)
	assert data[:8] == struct.pack(">Q", 37)
	pkg = Package.FromBytes(data)
	assert pkg.read("a.txt") == b"AB"
	assert pkg.entry("a.txt").lastModified == 1000


def test_encoding_is_byte_exact(tmp_path):
	(tmp_path / "a.txt").write_bytes(b"AB")
	os.utime(tmp_path / "a.txt", (1000, 1000))
	buffer = io.BytesIO()
	size = createPackageFromDir(tmp_path, buffer)
	expected = package(record(b"a.txt", 1000, 2, 0), data=b"AB")
	assert buffer.getvalue() == expected
	assert size == len(expected)


def test_deterministic(tree, files, packaged):
	a = io.BytesIO()
	b = io.BytesIO()
	writePackage(tree, list(files), a)
	writePackage(tree, list(reversed(list(files))), b)
	assert a.getvalue() == b.getvalue() == packaged


def test_records_sorted_by_utf8_bytes(packaged, files):
	pkg = Package.FromBytes(packaged)
	assert [_.path for _ in pkg.entries()] == sorted(files, key=lambda _: _.encode("utf8"))


def test_offsets_are_contiguous(packaged):
	pkg = Package.FromBytes(packaged)
	offset = 0
	for entry in pkg.entries():
		assert entry.start == offset
		offset = entry.end
	assert offset == len(pkg.data)


def test_data_region_boundary(packaged, files):
	meta_len = struct.unpack(">Q", packaged[:8])[0]
	base = 8 + meta_len
	pkg = Package.FromBytes(packaged)
	assert len(pkg.data) == len(packaged) - base
	for entry in pkg.entries():
		assert packaged[base + entry.start : base + entry.end] == files[entry.path]


def test_write_rejects_invalid_paths(tree):
	for path in ("../secret.txt", "/index.html", "css//style.css", "./index.html", ""):
		with pytest.raises(ValueError):
			writePackage(tree, [path], io.BytesIO())


def test_write_rejects_duplicates(tree):
	with pytest.raises(ValueError):
		writePackage(tree, ["index.html", "index.html"], io.BytesIO())


def test_write_rejects_directories(tree):
	with pytest.raises(ValueError):
		writePackage(tree, ["css"], io.BytesIO())


def test_list_package_files(tree, files):
	assert sorted(listPackageFiles(tree)) == sorted(files)


@pytest.mark.skipif(sys.platform != "linux", reason="Needs arbitrary bytes in file names")
def test_list_skips_unsupported_names(tree, files):
	(tree / "back\\slash.txt").write_bytes(b"Backslash")
	with open(os.fsencode(tree) + b"/caf\xe9.txt", "wb") as f:
		f.write(b"Latin-1")
	assert sorted(listPackageFiles(tree)) == sorted(files)
	buffer = io.BytesIO()
	createPackageFromDir(tree, buffer)
	assert sorted(Package.FromBytes(buffer.getvalue())) == sorted(files)


def test_write_rejects_undecodable_names(tree):
	with pytest.raises(ValueError):
		writePackage(tree, ["caf\udce9.txt"], io.BytesIO())


def test_save_excludes_output(tree, files):
	output = tree / "site.pkg"
	size = savePackage(tree, output)
	assert output.stat().st_size == size
	pkg = Package.FromPath(output)
	assert "site.pkg" not in pkg
	assert sorted(pkg) == sorted(files)


# -----------------------------------------------------------------------------
#
# DECODING
#
# -----------------------------------------------------------------------------


def test_empty_package():
	pkg = Package.FromBytes(struct.pack(">Q", 0))
	assert len(pkg) == 0
	assert list(pkg.entries()) == []


def test_lookup(packaged):
	pkg = Package.FromBytes(packaged)
	assert pkg.get("missing") is None
	assert "missing" not in pkg
	with pytest.raises(NotFound):
		pkg.entry("missing")
	with pytest.raises(KeyError):
		pkg.read("missing")


def test_open_is_seekable(packaged, files):
	pkg = Package.FromBytes(packaged)
	reader = pkg.open("data/blob.bin")
	reader.seek(100)
	assert reader.tell() == 100
	assert reader.read(10) == files["data/blob.bin"][100:110]
	assert reader.read() == files["data/blob.bin"][110:]
	assert reader.read() == b""


def test_duplicates_last_wins():
	data = package(
		record(b"a", 1, 1, 0),
		record(b"a", 2, 1, 1),
		data=b"xy",
	)
	pkg = Package.FromBytes(data)
	assert len(pkg) == 1
	assert pkg.read("a") == b"y"
	assert pkg.entry("a").lastModified == 2


def test_mutable_buffers_are_copied(packaged, files):
	buffer = bytearray(packaged)
	pkg = Package.FromBytes(buffer)
	buffer[:] = b"\0" * len(buffer)
	assert pkg.read("index.html") == files["index.html"]


@pytest.mark.parametrize(
	"data",
	[
		b"",
		b"\0" * 7,
		# meta_len past the end of the buffer
		struct.pack(">Q", 100) + b"x" * 10,
		# Not enough room for a path length
		struct.pack(">Q", 4) + b"\0" * 4,
		# Path length overshoots the metadata
		struct.pack(">Q", 8) + struct.pack(">Q", 1000),
		# Record without its tail
		struct.pack(">Q", 9) + struct.pack(">Q", 1) + b"a",
		# Path is not UTF-8
		package(record(b"\xff\xfe", 0, 0, 0)),
		# Entry past the data region
		package(record(b"a", 0, 10, 0), data=b"ab"),
		package(record(b"a", 0, 1, 2), data=b"ab"),
	],
)
def test_malformed(data):
	with pytest.raises(MalformedPackage):
		Package.FromBytes(data)


def test_from_path(tmp_path, packaged, files):
	path = tmp_path / "site.pkg"
	path.write_bytes(packaged)
	pkg = Package.FromPath(path)
	assert pkg.read("index.html") == files["index.html"]


def test_from_path_empty_file(tmp_path):
	path = tmp_path / "empty.pkg"
	path.write_bytes(b"")
	with pytest.raises(MalformedPackage):
		Package.FromPath(path)


def test_from_path_missing(tmp_path):
	with pytest.raises(OSError):
		Package.FromPath(Path(tmp_path) / "missing.pkg")


def test_from_resource(tmp_path, monkeypatch, packaged, files):
	module = tmp_path / "resources" / "shipped_assets"
	module.mkdir(parents=True)
	(module / "__init__.py").write_text("")
	(module / "site.pkg").write_bytes(packaged)
	monkeypatch.syspath_prepend(str(tmp_path / "resources"))
	pkg = Package.FromResource("shipped_assets", "site.pkg")
	assert sorted(pkg) == sorted(files)
	assert pkg.read("css/style.css") == files["css/style.css"]


# EOF
