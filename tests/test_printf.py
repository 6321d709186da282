import io

import pytest

from xvfs.printf import format, fprintf


@pytest.mark.parametrize("n", [0, 1, -1, 42, -12345, 2**31 - 1, -(2**31)])
def test_decimal_round_trip(n):
    assert int(format("%d", n)) == n


@pytest.mark.parametrize("n", [0, 1, 255, 4096, 2**32 - 1])
def test_hex_round_trip(n):
    assert int(format("%x", n), 16) == n
    assert format("%p", n) == format("%x", n)


def test_hex_is_upper_case():
    assert format("%x", 0xABC) == "ABC"


def test_negative_hex_is_unsigned():
    assert format("%x", -1) == "FFFFFFFF"


def test_lu_is_unsigned():
    assert int(format("%lu", -1)) == 2**32 - 1
    assert format("%lu", 7) == "7"


def test_l_without_u_prints_itself_then_continues():
    assert format("%lx") == "%lx"


def test_string_and_null():
    assert format("<%s>", "abc") == "<abc>"
    assert format("%s", None) == "(null)"


def test_char_from_int_and_str():
    assert format("%c%c", 65, "b") == "Ab"


def test_percent_and_unknown():
    assert format("100%%") == "100%"
    assert format("%q") == "%q"


def test_trailing_percent_dropped():
    assert format("abc%") == "abc"


def test_missing_argument():
    with pytest.raises(TypeError):
        format("%d")


def test_fprintf_writes_stream():
    stream = io.StringIO()
    count = fprintf(stream, "%s=%d\n", "x", 3)
    assert stream.getvalue() == "x=3\n"
    assert count == len("x=3\n")