from .http.model import HTTPRequest, HTTPResponse, HTTPRequestError  # NOQA: F401
from .decorators import on  # NOQA: F401
from .errors import (  # NOQA: F401
	StatikError,
	MalformedPackage,
	NotFound,
	PathOutsideRoot,
	UnsupportedRange,
	InvalidRange,
)
from .model import Application, Service, mount  # NOQA: F401
from .package import Package, PackageEntry, savePackage  # NOQA: F401
from .storage import Storage, FileStorage, PackageStorage  # NOQA: F401
from .services.static import StaticFiles  # NOQA: F401
from .server import run  # NOQA: F401


# EOF
