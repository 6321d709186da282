import io

import pytest

from xvfs.grep import grep, main, match


@pytest.mark.parametrize(
    "pattern, text, expected",
    [
        ("^ab", "abc", True),
        ("^ab", "cab", False),
        ("a.c", "xabcx", True),
        ("ab*c", "ac", True),
        ("ab*c", "abbbc", True),
        ("ab*c", "adc", False),
        ("a$", "ba", True),
        ("a$", "ab", False),
        (".*", "", True),
        ("", "anything", True),
        ("^$", "", True),
        ("^$", "x", False),
        ("x", "", False),
    ],
)
def test_match(pattern, text, expected):
    assert match(pattern, text) is expected


def test_grep_prints_matching_lines():
    out = io.BytesIO()
    grep("o", io.BytesIO(b"one\ntwo\nthree\nfour\n"), out)
    assert out.getvalue() == b"one\ntwo\nfour\n"


def test_grep_drops_unterminated_last_line():
    out = io.BytesIO()
    grep("a", io.BytesIO(b"abc\nxyz\nlast a"), out)
    assert out.getvalue() == b"abc\n"


def test_grep_drops_overlong_line():
    long_line = b"a" * 2000 + b"\n"
    out = io.BytesIO()
    grep("a", io.BytesIO(long_line + b"ab\n"), out)
    assert b"ab\n" in out.getvalue()
    assert long_line not in out.getvalue()


def test_grep_many_lines_across_reads():
    lines = [f"line {i}\n".encode() for i in range(500)]
    out = io.BytesIO()
    grep("^line", io.BytesIO(b"".join(lines)), out)
    assert out.getvalue() == b"".join(lines)


def test_main_with_file(tmp_path, capsysbinary):
    path = tmp_path / "data.txt"
    path.write_bytes(b"hello\nworld\n")
    assert main(["hel", str(path)]) == 0
    assert capsysbinary.readouterr().out == b"hello\n"


def test_main_usage(capsysbinary):
    assert main([]) == 1
    assert b"usage" in capsysbinary.readouterr().err


def test_main_cannot_open(tmp_path, capsysbinary):
    missing = tmp_path / "missing"
    assert main(["x", str(missing)]) == 1
    assert capsysbinary.readouterr().out == f"grep: cannot open {missing}\n".encode()