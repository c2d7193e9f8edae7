"""
Static File Server Example

This serves the files of a directory, by default the current one.
Features shown:
- `StaticFiles` over a `FileStorage`
- Conditional requests, byte ranges and gzip compression
- Statik logging for nicer output

Usage:
    python fileserver.py [DIRECTORY]

Test with:
    curl -i http://localhost:8000/README.md
    curl -i -H 'Range: bytes=0-9' http://localhost:8000/README.md
    curl -i --compressed http://localhost:8000/README.md
"""

import sys

from statik import FileStorage, StaticFiles, run
from statik.utils.logging import info

if __name__ == "__main__":
	root = sys.argv[1] if len(sys.argv) > 1 else "."
	storage = FileStorage(root)
	info("Starting static file server", Root=str(storage.root))
	run(StaticFiles(storage))

# EOF
