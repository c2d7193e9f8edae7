import argparse
import sys
from pathlib import Path

from . import config
from .errors import MalformedPackage
from .http.dates import formatHTTPDate
from .package import Package, savePackage
from .server import run
from .services.static import StaticFiles
from .utils.logging import error, info


def serve(options: argparse.Namespace) -> int:
	path = Path(options.path)
	if not path.exists():
		error(f"Path does not exist: {path}", "NOPATH")
		return 1
	service = StaticFiles.FromPath(path, options.prefix)
	info("Serving static files", Path=str(path), Prefix=service.prefix)
	run(service, host=options.host, port=options.port)
	return 0


def pack(options: argparse.Namespace) -> int:
	root = Path(options.root)
	if not root.is_dir():
		error(f"Not a directory: {root}", "NODIR")
		return 1
	savePackage(root, options.output)
	return 0


def list_(options: argparse.Namespace) -> int:
	for entry in Package.FromPath(options.package).entries():
		sys.stdout.write(
			f"{entry.length:>12d}  {formatHTTPDate(entry.lastModified)}  {entry.path}\n"
		)
	return 0


def main(args: list[str] | None = None) -> int:
	parser = argparse.ArgumentParser(
		prog="statik",
		description="Serves static files from a directory or a package",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	commands = parser.add_subparsers(dest="command", required=True)

	cmd_serve = commands.add_parser(
		"serve",
		help="Serves a directory, or a package file",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	cmd_serve.add_argument("path", nargs="?", default=".", help="Directory or package")
	cmd_serve.add_argument(
		"--prefix",
		action="store",
		dest="prefix",
		help="URL prefix under which files are served",
		default=config.PREFIX,
	)
	cmd_serve.add_argument(
		"-H",
		"--host",
		action="store",
		dest="host",
		help="Specifies the host",
		default=config.HOST,
	)
	cmd_serve.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		type=int,
		help="Specifies the port",
		default=config.PORT,
	)
	cmd_serve.set_defaults(func=serve)

	cmd_pack = commands.add_parser("pack", help="Creates a package from a directory")
	cmd_pack.add_argument("root", help="Directory to package")
	cmd_pack.add_argument("output", help="Package file to write")
	cmd_pack.set_defaults(func=pack)

	cmd_list = commands.add_parser("list", help="Lists the entries of a package")
	cmd_list.add_argument("package", help="Package file to list")
	cmd_list.set_defaults(func=list_)

	options = parser.parse_args(args)
	try:
		return int(options.func(options))
	except MalformedPackage as e:
		error(f"Malformed package: {e}", "MALFORMED")
		return 1
	except ValueError as e:
		error(str(e), "INVALID")
		return 1
	except OSError as e:
		error(f"{e.strerror or e}: {e.filename or ''}", "IOERR")
		return 1


if __name__ == "__main__":
	sys.exit(main())

# EOF
