import asyncio
import socket
import threading

import pytest

from statik.http.model import HTTPRequest, HTTPResponse
from statik.model import Service, mount
from statik.server import AIOSocketServer, ServerOptions
from statik.services.static import StaticFiles
from statik.storage import FileStorage


def freePort() -> int:
	with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
		s.bind(("127.0.0.1", 0))
		return s.getsockname()[1]


def exchange(root, payload: bytes, service: StaticFiles | None = None) -> bytes:
	"""Starts a server for the files at `root` (or for the given service),
	sends the payload over a single connection and returns everything
	received until the server closes it."""

	async def scenario() -> bytes:
		running: bool = True
		port = freePort()
		options = ServerOptions(
			host="127.0.0.1",
			port=port,
			polling=0.05,
			keepalive=5.0,
			logRequests=False,
			stopSignals=False,
			condition=lambda: running,
		)
		server = asyncio.create_task(
			AIOSocketServer.Serve(
				mount(service or StaticFiles(FileStorage(root))), options
			)
		)
		try:
			for _ in range(100):
				try:
					reader, writer = await asyncio.open_connection("127.0.0.1", port)
					break
				except OSError:
					await asyncio.sleep(0.02)
			else:
				raise RuntimeError(f"Server did not start on port {port}")
			writer.write(payload)
			await writer.drain()
			res = await asyncio.wait_for(reader.read(), timeout=5.0)
			writer.close()
			return res
		finally:
			running = False
			await asyncio.wait_for(server, timeout=5.0)

	return asyncio.run(scenario())


def test_get(tree, files):
	res = exchange(tree, b"GET /index.html HTTP/1.1\r\nConnection: close\r\n\r\n")
	assert res.startswith(b"HTTP/1.1 200 OK\r\n")
	assert res.endswith(b"\r\n\r\n" + files["index.html"])


def test_keep_alive(tree, files):
	res = exchange(
		tree,
		b"HEAD /index.html HTTP/1.1\r\n\r\n"
		b"GET /data/blob.bin HTTP/1.1\r\nRange: bytes=5-10\r\n\r\n"
		b"GET /README HTTP/1.1\r\nConnection: close\r\n\r\n",
	)
	assert res.startswith(b"HTTP/1.1 200 OK\r\n")
	assert b"HTTP/1.1 206 Partial Content\r\n" in res
	assert files["data/blob.bin"][5:11] in res
	assert res.endswith(files["README"])
	# The HEAD response has no body, so the next response follows its head
	head = res[: res.index(b"\r\n\r\n") + 4]
	assert res[len(head) :].startswith(b"HTTP/1.1 206 Partial Content\r\n")


def test_bad_request(tree):
	res = exchange(tree, b"GARBAGE\r\n\r\n")
	assert res.startswith(b"HTTP/1.1 400 Bad Request\r\n")


def test_gzip_closes_connection(tree, files):
	# Without a length, the end of the body is the end of the connection
	res = exchange(tree, b"GET /data/blob.bin HTTP/1.1\r\nAccept-Encoding: gzip\r\n\r\n")
	assert res.startswith(b"HTTP/1.1 200 OK\r\n")
	assert b"\r\nConnection: close\r\n" in res
	assert b"\r\nContent-Encoding: gzip\r\n" in res



class ShrinkingFiles(StaticFiles):
	"""Truncates files once their response is created, as when a file is
	rewritten while being served."""

	def process(self, request: HTTPRequest) -> HTTPResponse | None:
		res = super().process(request)
		if res is not None and res.status == 200:
			with open(self.storage.root / request.path.lstrip("/"), "r+b") as f:
				f.truncate(10)
		return res


def test_short_body_closes_connection(tree, files):
	res = exchange(
		tree,
		b"GET /data/blob.bin HTTP/1.1\r\n\r\n" b"GET /README HTTP/1.1\r\n\r\n",
		ShrinkingFiles(FileStorage(tree)),
	)
	assert res.startswith(b"HTTP/1.1 200 OK\r\n")
	assert b"\r\nContent-Length: 1024\r\n" in res
	assert res.endswith(b"\r\n\r\n" + files["data/blob.bin"][:10])
	# The pipelined request is left unanswered
	assert res.count(b"HTTP/1.1 ") == 1


def test_cancelled_body_is_closed():
	started = threading.Event()
	release = threading.Event()
	closed: list[bool] = []

	def chunks():
		try:
			yield b"first"
			started.set()
			release.wait(5.0)
			yield b"second"
		finally:
			closed.append(True)

	class Streaming(Service):
		def fallback(self, request):
			return request.respond(chunks(), "text/plain", contentLength=11)

	async def scenario() -> None:
		loop = asyncio.get_running_loop()
		server, client = socket.socketpair()
		server.setblocking(False)
		client.setblocking(False)
		try:
			task = asyncio.create_task(
				AIOSocketServer.SendResponse(
					HTTPRequest("GET", "/"), mount(Streaming()), server, loop=loop
				)
			)
			# The second chunk is being read in the executor
			await loop.run_in_executor(None, started.wait, 5.0)
			task.cancel()
			release.set()
			with pytest.raises(asyncio.CancelledError):
				await task
		finally:
			server.close()
			client.close()

	asyncio.run(scenario())
	assert closed == [True]


# EOF
