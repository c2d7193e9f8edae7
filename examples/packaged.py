"""
Packaged Assets Example

This packages a directory into a single file, and serves it under `/static/`
next to a small API. Routes always take precedence over static files.

Usage:
    python packaged.py [DIRECTORY]

Test with:
    curl http://localhost:8000/api/files
    curl -i http://localhost:8000/static/index.html
"""

import sys
import tempfile
from pathlib import Path

from statik import (
	HTTPRequest,
	HTTPResponse,
	Package,
	PackageStorage,
	Service,
	StaticFiles,
	on,
	run,
	savePackage,
)
from statik.utils.logging import info


class Files(Service):
	PREFIX = "/api"

	def __init__(self, package: Package):
		super().__init__()
		self.package: Package = package

	@on(GET="/files")
	def files(self, request: HTTPRequest) -> HTTPResponse:
		return request.respondText(
			"\n".join(f"{_.length:>10d} {_.path}" for _ in self.package.entries())
		)


if __name__ == "__main__":
	root = Path(sys.argv[1] if len(sys.argv) > 1 else ".")
	with tempfile.TemporaryDirectory() as tmp:
		path = Path(tmp) / "assets.pkg"
		savePackage(root, path)
		package = Package.FromPath(path)
		info("Serving packaged files", Root=str(root), Entries=len(package))
		run(Files(package), StaticFiles(PackageStorage(package), prefix="/static"))

# EOF
