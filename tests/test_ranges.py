import pytest

from statik.errors import InvalidRange, UnsupportedRange
from statik.http.ranges import ByteRange, parseRange


def test_parse():
	r = parseRange("bytes=5-10")
	assert r == ByteRange("bytes", 5, 10)
	assert r.length == 6
	assert ByteRange.Parse("bytes=0-0").length == 1


def test_parse_whitespace():
	assert parseRange(" bytes = 0 - 99 ") == ByteRange("bytes", 0, 99)


def test_parse_other_units():
	assert parseRange("items=1-2").unit == "items"


def test_multiple_ranges():
	with pytest.raises(UnsupportedRange):
		parseRange("bytes=0-1,5-6")
	with pytest.raises(UnsupportedRange):
		parseRange("bytes=0-1, garbage")


@pytest.mark.parametrize(
	"value",
	[
		"",
		"bytes",
		"bytes=",
		"bytes=10-5",
		"bytes=-5",
		"bytes=5-",
		"bytes=a-b",
		"bytes=1.5-2",
		"5-10",
		"=5-10",
		"bytes=٣-٤",
	],
)
def test_invalid(value):
	with pytest.raises(InvalidRange):
		parseRange(value)


def test_clamp():
	assert ByteRange("bytes", 5, 10).clamp(20) == ByteRange("bytes", 5, 10)
	assert ByteRange("bytes", 5, 100).clamp(20) == ByteRange("bytes", 5, 19)
	assert ByteRange("bytes", 19, 19).clamp(20) == ByteRange("bytes", 19, 19)
	assert ByteRange("bytes", 20, 30).clamp(20) is None
	assert ByteRange("bytes", 0, 0).clamp(0) is None


def test_content_range():
	assert ByteRange("bytes", 5, 10).contentRange(1024) == "bytes 5-10/1024"


# EOF
