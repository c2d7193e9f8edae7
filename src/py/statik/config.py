from os import getenv

PORT: int = int(getenv("PORT", 8000))

# If we're starting a development server, we want it to be accessible from everywhere
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

# The URL prefix under which the static files are served
PREFIX: str = getenv("STATIK_PREFIX", "/")

LOG_REQUESTS: bool = getenv("STATIK_LOG_REQUESTS", "1") == "1"

# Gzip compression level (1-9) used when clients accept gzip
COMPRESSION_LEVEL: int = int(getenv("STATIK_COMPRESSION_LEVEL", 6))

# Size of the chunks read from storage when streaming a body
CHUNK_SIZE: int = int(getenv("STATIK_CHUNK_SIZE", 64_000))

# EOF
