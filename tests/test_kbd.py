import pytest

from xvfs.kbd import KEY_UP, KEY_DEL, Keyboard


def test_plain_letter():
    assert Keyboard().feed(0x1E) == ord("a")


def test_shift_held_and_released():
    kbd = Keyboard()
    assert kbd.feed(0x2A) == 0
    assert kbd.feed(0x1E) == ord("A")
    assert kbd.feed(0xAA) == 0
    assert kbd.feed(0x1E) == ord("a")


def test_control_letter():
    kbd = Keyboard()
    kbd.feed(0x1D)
    assert kbd.feed(0x19) == ord("P") - ord("@")


def test_caps_lock_toggles():
    kbd = Keyboard()
    kbd.feed(0x3A)
    kbd.feed(0xBA)
    assert kbd.feed(0x1E) == ord("A")
    kbd.feed(0x2A)
    assert kbd.feed(0x1E) == ord("a")
    kbd.feed(0xAA)
    kbd.feed(0x3A)
    assert kbd.feed(0x1E) == ord("a")


def test_e0_escaped_keys():
    kbd = Keyboard()
    assert kbd.feed(0xE0) == 0
    assert kbd.feed(0x48) == KEY_UP
    kbd.feed(0xE0)
    assert kbd.feed(0x53) == KEY_DEL


def test_e0_escape_cleared_after_key():
    kbd = Keyboard()
    kbd.feed(0xE0)
    kbd.feed(0x48)
    assert kbd.feed(0x1E) == ord("a")


def test_right_ctrl_release_with_escape():
    kbd = Keyboard()
    kbd.feed(0xE0)
    kbd.feed(0x1D)
    assert kbd.feed(0x19) == ord("P") - ord("@")
    kbd.feed(0xE0)
    kbd.feed(0x9D)
    assert kbd.feed(0x19) == ord("p")


def test_decode_text():
    assert Keyboard().decode([0x23, 0xA3, 0x17, 0x97, 0x1C]) == "hi\n"


def test_decode_shifted_symbols():
    assert Keyboard().decode([0x2A, 0x02, 0x03, 0xAA, 0x02]) == "!@1"


def test_scancode_out_of_range():
    with pytest.raises(ValueError):
        Keyboard().feed(256)