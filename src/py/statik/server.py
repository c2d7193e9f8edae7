import asyncio
import socket
import threading
from dataclasses import dataclass
from signal import SIGINT, SIGTERM
from typing import Any, Callable, Iterator, NamedTuple

from .config import HOST, LOG_REQUESTS, PORT
from .http.model import (
	HTTPBodyBlob,
	HTTPBodyStream,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPResponse,
)
from .http.parser import HTTPParser
from .model import Application, Service, mount
from .utils.limits import raiseOpenFilesLimit
from .utils.logging import debug, error, event, exception, info, logged, warning

# -----------------------------------------------------------------------------
#
# OPTIONS
#
# -----------------------------------------------------------------------------


class ServerOptions(NamedTuple):
	host: str = HOST
	port: int = PORT
	backlog: int = 1_024
	# How often the accept loop checks if it should stop
	polling: float = 1.0
	readsize: int = 4_096
	# Idle connections are closed after this many seconds
	keepalive: float = 30.0
	logRequests: bool = LOG_REQUESTS
	# The server stops as soon as this returns false
	condition: Callable[[], bool] | None = None
	stopSignals: bool = True


OPTIONS: ServerOptions = ServerOptions()


def plainResponse(status: str, text: str) -> bytes:
	"""A canned response, used when the application can't produce one."""
	return (
		f"HTTP/1.1 {status}\r\n"
		"Content-Type: text/plain\r\n"
		f"Content-Length: {len(text)}\r\n"
		"Connection: close\r\n"
		f"\r\n{text}"
	).encode("ascii")


BAD_REQUEST: bytes = plainResponse("400 Bad Request", "Bad Request")
SERVER_ERROR: bytes = plainResponse("500 Internal Server Error", "Internal server error")


@dataclass(slots=True)
class ServerState:
	isRunning: bool = True

	def stop(self) -> None:
		info("Server stopping…")
		self.isRunning = False

	def onException(
		self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
	) -> None:
		if e := context.get("exception"):
			exception(e)


@dataclass(slots=True)
class ConnectionStats:
	received: int = 0
	requests: int = 0
	responses: int = 0
	status: HTTPProcessingStatus = HTTPProcessingStatus.Processing


# -----------------------------------------------------------------------------
#
# SERVER
#
# -----------------------------------------------------------------------------


# NOTE: Sockets stay on the event loop, while processing requests and
# iterating on bodies reads from the storage, which blocks. Both are run in the
# loop's default executor.
class AIOSocketServer:
	"""An HTTP/1.1 server using asyncio with raw sockets, with support for
	keep-alive and pipelining."""

	@classmethod
	async def OnConnection(
		cls,
		app: Application,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
		options: ServerOptions,
	) -> ConnectionStats:
		"""Reads requests from the client and answers them in order, until
		either side asks to close or the connection goes idle."""
		parser = HTTPParser()
		stats = ConnectionStats()
		alive: bool = True
		try:
			while alive:
				try:
					chunk = await asyncio.wait_for(
						loop.sock_recv(client, options.readsize),
						timeout=options.keepalive,
					)
				except asyncio.TimeoutError:
					stats.status = HTTPProcessingStatus.Timeout
					break
				if not chunk:
					stats.status = HTTPProcessingStatus.NoData
					break
				stats.received += len(chunk)
				# A single chunk may hold more than one request when pipelining
				for atom in parser.feed(chunk):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Received=stats.received)
						await loop.sock_sendall(client, BAD_REQUEST)
						stats.status = atom
						alive = False
					elif atom is HTTPProcessingStatus.Complete:
						stats.status = atom
					elif isinstance(atom, HTTPRequest):
						stats.requests += 1
						alive = cls.WantsKeepAlive(atom)
						res = await cls.SendResponse(atom, app, client, loop=loop)
						if res is None:
							alive = False
						else:
							stats.responses += 1
							if options.logRequests:
								event(atom.method, atom.path, Status=res.status)
							alive = alive and not res.shouldClose
					if not alive:
						break
			if stats.requests != stats.responses:
				warning(
					"Connection closed with pending requests",
					Status=stats.status.name,
					Requests=stats.requests,
					Responses=stats.responses,
				)
		except Exception as e:
			exception(e)
		finally:
			client.close()
		return stats

	@staticmethod
	def WantsKeepAlive(request: HTTPRequest) -> bool:
		connection = (request.header("Connection") or "").lower()
		if request.protocol == "HTTP/1.0":
			return connection == "keep-alive"
		else:
			return connection != "close"

	@classmethod
	async def SendResponse(
		cls,
		request: HTTPRequest,
		app: Application,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
	) -> HTTPResponse | None:
		"""Processes the request and sends the response, which is returned
		once fully sent. The response is always closed."""
		try:
			res: HTTPResponse = await loop.run_in_executor(None, app.process, request)
		except Exception as e:
			exception(e, f"Failed to process {request.method} {request.path}")
			await loop.sock_sendall(client, SERVER_ERROR)
			return None
		try:
			await loop.sock_sendall(client, res.head())
			# The head of a HEAD response describes a body that is not sent
			if request.method != "HEAD":
				sent = await cls.SendBody(res, client, loop=loop)
				length = res.getHeader("Content-Length")
				# The client can't tell where this body ends and the next starts
				if length is not None and sent != int(length):
					warning(
						"Body length differs from Content-Length",
						Path=request.path,
						Expected=int(length),
						Sent=sent,
					)
					return None
		except (BrokenPipeError, ConnectionResetError):
			logged(debug) and debug("Client closed early", Path=request.path)
			return None
		except Exception as e:
			# The head is out, so all we can do is to close the connection
			exception(e, f"Failed to send {request.method} {request.path}")
			return None
		finally:
			res.close()
		return res

	@staticmethod
	async def SendBody(
		response: HTTPResponse,
		client: socket.socket,
		*,
		loop: asyncio.AbstractEventLoop,
	) -> int:
		"""Sends the body of the response, returning the number of bytes sent."""
		body = response.body
		if body is None:
			return 0
		elif isinstance(body, HTTPBodyBlob):
			await loop.sock_sendall(client, body.payload)
			return body.length
		elif isinstance(body, HTTPBodyStream):
			sent: int = 0
			chunks: Iterator[bytes] = iter(body.stream)
			while True:
				reading = loop.run_in_executor(None, next, chunks, None)
				try:
					chunk = await asyncio.shield(reading)
				except asyncio.CancelledError:
					# The stream can only be closed once the read is over
					await asyncio.wait((reading,))
					raise
				if chunk is None:
					return sent
				await loop.sock_sendall(client, chunk)
				sent += len(chunk)
		else:
			raise ValueError(f"Unsupported body type {type(body)}: {body!r}")

	@staticmethod
	def Bind(options: ServerOptions) -> socket.socket:
		"""Returns a non-blocking socket listening on the host and port."""
		sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
		sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
		try:
			sock.bind((options.host, options.port))
		except OSError:
			error(f"Unable to bind to {options.host}:{options.port}", "HOSTPORTERR")
			sock.close()
			raise
		sock.listen(options.backlog)
		sock.setblocking(False)
		return sock

	@classmethod
	async def Serve(cls, app: Application, options: ServerOptions = OPTIONS) -> None:
		"""Accepts connections until stopped, by a signal or by the options
		`condition`."""
		server = cls.Bind(options)
		loop = asyncio.get_running_loop()
		state = ServerState()
		# Signal handlers can only be installed from the main thread
		if options.stopSignals and threading.current_thread() is threading.main_thread():
			loop.add_signal_handler(SIGINT, state.stop)
			loop.add_signal_handler(SIGTERM, state.stop)
		loop.set_exception_handler(state.onException)
		connections: set[asyncio.Task[ConnectionStats]] = set()
		await app.start()
		info("Statik server listening", icon="🚀", Host=options.host, Port=options.port)
		try:
			while state.isRunning and (not options.condition or options.condition()):
				try:
					client, _ = await asyncio.wait_for(
						loop.sock_accept(server), timeout=options.polling
					)
				except asyncio.TimeoutError:
					continue
				except OSError as e:
					exception(e, "Failed to accept connection")
					# Typically EMFILE, we give some time for descriptors to be released
					await asyncio.sleep(0.1)
					continue
				task = loop.create_task(
					cls.OnConnection(app, client, loop=loop, options=options)
				)
				connections.add(task)
				task.add_done_callback(connections.discard)
		finally:
			server.close()
			for task in connections:
				task.cancel()
			await asyncio.gather(*connections, return_exceptions=True)
			await app.stop()


def run(
	*components: Application | Service,
	host: str = OPTIONS.host,
	port: int = OPTIONS.port,
	condition: Callable[[], bool] | None = None,
	logRequests: bool = OPTIONS.logRequests,
	keepalive: float = OPTIONS.keepalive,
) -> None:
	"""Mounts the components in an application and serves it until
	interrupted."""
	if limit := raiseOpenFilesLimit():
		logged(debug) and debug("Open files limit", Limit=limit)
	options = OPTIONS._replace(
		host=host,
		port=port,
		condition=condition,
		logRequests=logRequests,
		keepalive=keepalive,
	)
	app = mount(*components)
	try:
		asyncio.run(AIOSocketServer.Serve(app, options))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
