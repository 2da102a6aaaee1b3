"""
Raw keyboard input decoding.

Turns the bytes read from a raw-mode terminal into key names such as
``CTRL_X``, ``ENTER``, ``UP`` or a plain character. One read may hold several
keys (pasted text, fast typing), so decoding yields a sequence.
"""

from __future__ import annotations

from collections.abc import Iterator

ESC = 0x1B

# Escape sequences sent by xterm-compatible terminals
ESCAPE_SEQUENCES: dict[bytes, str] = {
    b"\x1b[A": "UP",
    b"\x1b[B": "DOWN",
    b"\x1b[C": "RIGHT",
    b"\x1b[D": "LEFT",
    b"\x1b[H": "HOME",
    b"\x1b[F": "END",
    b"\x1bOA": "UP",
    b"\x1bOB": "DOWN",
    b"\x1bOC": "RIGHT",
    b"\x1bOD": "LEFT",
    b"\x1bOH": "HOME",
    b"\x1bOF": "END",
    b"\x1bOP": "F1",
    b"\x1bOQ": "F2",
    b"\x1bOR": "F3",
    b"\x1bOS": "F4",
    b"\x1b[1~": "HOME",
    b"\x1b[2~": "INSERT",
    b"\x1b[3~": "DELETE",
    b"\x1b[4~": "END",
    b"\x1b[5~": "PAGE_UP",
    b"\x1b[6~": "PAGE_DOWN",
    b"\x1b[15~": "F5",
    b"\x1b[17~": "F6",
    b"\x1b[18~": "F7",
    b"\x1b[19~": "F8",
    b"\x1b[20~": "F9",
    b"\x1b[21~": "F10",
    b"\x1b[23~": "F11",
    b"\x1b[24~": "F12",
    b"\x1b[Z": "SHIFT_TAB",
}

_SEQUENCES_LONGEST_FIRST = sorted(ESCAPE_SEQUENCES.items(), key=lambda item: len(item[0]), reverse=True)

CONTROL_KEYS: dict[int, str] = {
    0x00: "CTRL_SPACE",
    0x08: "BACKSPACE",
    0x09: "TAB",
    0x0A: "ENTER",
    0x0D: "ENTER",
    0x7F: "BACKSPACE",
}


def _control_name(byte: int) -> str:
    if byte in CONTROL_KEYS:
        return CONTROL_KEYS[byte]
    if 0x01 <= byte <= 0x1A:
        return f"CTRL_{chr(byte + 0x40)}"
    return f"CTRL_0x{byte:02X}"


def _utf8_length(lead: int) -> int:
    if lead >= 0xF0:
        return 4
    if lead >= 0xE0:
        return 3
    if lead >= 0xC0:
        return 2
    return 1


def iter_keys(data: bytes) -> Iterator[tuple[str, bytes]]:
    """Yield ``(key_name, raw_bytes)`` for every key contained in ``data``."""
    i = 0
    size = len(data)
    while i < size:
        byte = data[i]

        if byte == ESC:
            for seq, name in _SEQUENCES_LONGEST_FIRST:
                if data.startswith(seq, i):
                    yield name, seq
                    i += len(seq)
                    break
            else:
                yield "ESCAPE", data[i : i + 1]
                i += 1
            continue

        if byte < 0x20 or byte == 0x7F:
            yield _control_name(byte), data[i : i + 1]
            i += 1
            continue

        length = _utf8_length(byte)
        chunk = data[i : i + length]
        yield chunk.decode("utf-8", errors="replace"), chunk
        i += len(chunk)


def decode_key(data: bytes) -> str:
    """Name of the first key in ``data`` (empty string for no data)."""
    for name, _ in iter_keys(data):
        return name
    return ""
