import mimetypes
from pathlib import PurePosixPath

mimetypes.init()

# Extensions that `mimetypes` doesn't know about, or gets wrong
MIME_TYPES: dict[str, str] = dict(
	bz2="application/x-bzip",
	gz="application/x-gzip",
	js="text/javascript",
	mjs="text/javascript",
	md="text/markdown",
	wasm="application/wasm",
	webmanifest="application/manifest+json",
)


def extension(path: str) -> str | None:
	"""Returns the lowercase extension of the last path segment, without the
	leading dot, or `None` when there is none."""
	suffix = PurePosixPath(path).suffix
	return suffix[1:].lower() if suffix else None


def contentType(path: str) -> str | None:
	"""Guesses the content type from the given path extension, returns `None`
	when the path has no extension."""
	ext = extension(path)
	if ext is None:
		return None
	elif res := MIME_TYPES.get(ext):
		return res
	else:
		return mimetypes.guess_type(f"file.{ext}", strict=False)[0] or (
			"application/octet-stream"
		)


# EOF
