from statik.http.model import (
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
)
from statik.http.parser import HTTPParser, parseQuery


def requests(*chunks: bytes) -> list[HTTPRequest]:
	parser = HTTPParser()
	return [_ for chunk in chunks for _ in parser.feed(chunk) if isinstance(_, HTTPRequest)]


def test_split_chunks():
	parser = HTTPParser()
	atoms = []
	for chunk in (
		b"GET /time/5 ",
		b"HTTP/1.1\r\nHost: ",
		b"127.0.0.1\r",
		b"\nConn",
		b"ection: close\r\n",
		b"\r",
		b"\n",
	):
		atoms += list(parser.feed(chunk))
	assert [type(_) for _ in atoms[:3]] == [HTTPRequestLine, HTTPHeaders, HTTPRequest]
	assert atoms[3] is HTTPProcessingStatus.Complete
	assert len(atoms) == 4
	request = atoms[2]
	assert request.method == "GET"
	assert request.path == "/time/5"
	assert request.protocol == "HTTP/1.1"
	assert request.headers == {"Host": "127.0.0.1", "Connection": "close"}
	assert request.header("connection") == "close"


def test_query():
	(request,) = requests(b"GET /search?q=static&page=2&all HTTP/1.1\r\n\r\n")
	assert request.path == "/search"
	assert request.query == {"q": "static", "page": "2", "all": ""}
	assert request.param("q") == "static"
	assert request.param("missing", "default") == "default"
	assert parseQuery("") == {}


def test_pipelined():
	res = requests(
		b"GET /a HTTP/1.1\r\n\r\nHEAD /b HTTP/1.1\r\nRange: bytes=0-1\r\n\r\nGET /c HTTP/1.0\r\n\r\n"
	)
	assert [(_.method, _.path) for _ in res] == [("GET", "/a"), ("HEAD", "/b"), ("GET", "/c")]
	assert res[1].header("Range") == "bytes=0-1"
	assert res[2].protocol == "HTTP/1.0"


def test_body_skipped():
	res = requests(
		b"POST /upload HTTP/1.1\r\nContent-Length: 5\r\n\r\nhel",
		b"loGET /next HTTP/1.1\r\n\r\n",
	)
	assert [(_.method, _.path) for _ in res] == [("POST", "/upload"), ("GET", "/next")]


def test_empty_lines_ignored():
	res = requests(b"\r\n\r\nGET / HTTP/1.1\r\n\r\n")
	assert [_.path for _ in res] == ["/"]


def test_bad_format():
	for payload in (b"GARBAGE\r\n", b"GET /\r\n"):
		assert HTTPProcessingStatus.BadFormat in list(HTTPParser().feed(payload))


def test_header_names_normalized():
	(request,) = requests(b"GET / HTTP/1.1\r\nif-modified-since: now\r\nACCEPT-ENCODING: gzip\r\n\r\n")
	assert request.headers == {"If-Modified-Since": "now", "Accept-Encoding": "gzip"}


# EOF
