import io
import os
from pathlib import Path

import pytest

from statik.package import createPackageFromDir

# 2023-11-14 22:13:20 UTC
MTIME: int = 1_700_000_000

FILES: dict[str, bytes] = {
	"index.html": b"<html><body>Hello, World!</body></html>",
	"css/style.css": b"body { margin: 0; }",
	"data/blob.bin": bytes(range(256)) * 4,
	"empty.txt": b"",
	"ünïcode.txt": "héllo wörld".encode("utf8"),
	"README": b"A file without an extension",
}


@pytest.fixture
def files() -> dict[str, bytes]:
	return dict(FILES)


@pytest.fixture
def mtime() -> int:
	return MTIME


@pytest.fixture
def tree(tmp_path: Path) -> Path:
	"""A directory of files, all modified at `MTIME`, next to a file that
	lives outside of it."""
	root = tmp_path / "site"
	for path, data in FILES.items():
		p = root / path
		p.parent.mkdir(parents=True, exist_ok=True)
		p.write_bytes(data)
		os.utime(p, (MTIME, MTIME))
	(tmp_path / "secret.txt").write_bytes(b"Top secret")
	return root


@pytest.fixture
def packaged(tree: Path) -> bytes:
	"""The bytes of the package made out of `tree`."""
	buffer = io.BytesIO()
	createPackageFromDir(tree, buffer)
	return buffer.getvalue()


# EOF
