import resource

# Darwin reports limits high enough to overflow `setrlimit`
MAX_OPEN_FILES: int = 100_000


def raiseOpenFilesLimit(maximum: int = MAX_OPEN_FILES) -> int | None:
	"""Raises the soft limit of open files towards the hard limit, up to
	`maximum`. Each connection, and each file being sent, holds a
	descriptor. Returns the limit in effect, or `None` if it could not be
	changed."""
	soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
	target: int = maximum if hard == resource.RLIM_INFINITY else min(hard, maximum)
	if soft == resource.RLIM_INFINITY or target <= soft:
		return soft
	try:
		resource.setrlimit(resource.RLIMIT_NOFILE, (target, hard))
	except (ValueError, OSError):
		return None
	return target


# EOF
