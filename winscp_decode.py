#!/usr/bin/env python3
"""
winscp_decode.py — decoder for the passwords WinSCP keeps in its session store.

WinSCP does not encrypt saved passwords unless a master password is set. Each
stored byte is scrambled with a fixed XOR + complement and written out as two
hex digits, so the password can always be recovered with the host and
username the session was saved with.

Record layout (after unscrambling, one byte per two hex digits):
  flag                  0xFF = extended record, anything else = password length
  [reserved, length]    only present for extended records
  skip                  number of filler bytes that follow
  filler * skip
  body * length         extended records prefix the password with username+host

Usage examples:
  >>> from winscp_decode import decode_password
  >>> decode_password("10.0.0.1", "root", "A35C4E5C2E3333286D6C726C726C726D2F393F2E3928")
  'secret'
"""

import logging
import string
from typing import List, Sequence

log = logging.getLogger(__name__)

# WinSCP password scrambling constants.
PASSWORD_MAGIC = 0xA3
PASSWORD_FLAG = 0xFF

MAX_FIELD = 0xFF
HEX_DIGITS = frozenset(string.hexdigits)


class MalformedEncoding(ValueError):
    """The encoded string is too short for the fields it declares."""


# ---------- Hex unpacking ----------

def unpack_hex(text: str) -> List[int]:
    """Split a hex string into nibbles, one per character.

    Characters that are not hex digits become 0 instead of raising, so a
    damaged value still yields a best-effort decode.
    """
    return [int(ch, 16) if ch in HEX_DIGITS else 0 for ch in text]


# ---------- Scramble transform ----------

def decode_byte(a: int, b: int) -> int:
    """Unscramble the byte stored as the nibble pair (a, b); a is the high nibble."""
    return ~(((a << 4) + b) ^ PASSWORD_MAGIC) & 0xFF


def encode_byte(value: int) -> str:
    # inverse of decode_byte
    return f"{(~value & 0xFF) ^ PASSWORD_MAGIC:02X}"


class NibbleCursor:
    """Forward-only reader over an unpacked nibble sequence."""

    def __init__(self, nibbles: Sequence[int]):
        self._nibbles = nibbles
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._nibbles) - self._pos

    def next_byte(self) -> int:
        # An exhausted (or odd) tail reads as zero padding.
        if self.remaining < 2:
            self._pos = len(self._nibbles)
            return 0
        a = self._nibbles[self._pos]
        b = self._nibbles[self._pos + 1]
        self._pos += 2
        return decode_byte(a, b)

    def skip(self, count: int) -> None:
        """Discard `count` encoded bytes."""
        if count * 2 > self.remaining:
            raise MalformedEncoding(
                f"skip field declares {count} bytes, only {self.remaining // 2} left")
        self._pos += count * 2


# ---------- Record decoding ----------

def decode_password(host: str, username: str, encoded: str) -> str:
    """Recover the cleartext password of one stored session.

    Raises MalformedEncoding if the record is truncated.
    """
    cursor = NibbleCursor(unpack_hex(encoded))

    flag = cursor.next_byte()
    if flag == PASSWORD_FLAG:
        cursor.next_byte()  # reserved
        length = cursor.next_byte()
    else:
        length = flag

    skip = cursor.next_byte()
    log.debug("flag=0x%02X length=%d skip=%d", flag, length, skip)
    cursor.skip(skip)

    if length * 2 > cursor.remaining:
        raise MalformedEncoding(
            f"password field declares {length} bytes, only {cursor.remaining // 2} left")
    clear = "".join(chr(cursor.next_byte()) for _ in range(length))

    if flag == PASSWORD_FLAG:
        # Extended records carry username+host in front of the password.
        key = username + host
        if len(clear) < len(key):
            raise MalformedEncoding(
                f"decoded {len(clear)} characters, shorter than the {len(key)}-character username+host prefix")
        clear = clear[len(key):]
    return clear


def encode_password(host: str, username: str, password: str, skip: int = 0, extended: bool = True) -> str:
    """Build the hex string WinSCP would store for `password`.

    Filler bytes are zeros and no trailing padding is added, so the output is
    shorter than what WinSCP writes but decodes the same way.
    """
    body = (username + host + password) if extended else password
    if len(body) > MAX_FIELD:
        raise ValueError(f"password field too long ({len(body)} > {MAX_FIELD})")
    if not 0 <= skip <= MAX_FIELD:
        raise ValueError(f"skip must be 0..{MAX_FIELD}")
    if not extended and len(body) == PASSWORD_FLAG:
        raise ValueError("a 255-character simple record is indistinguishable from the extended flag")

    header = [PASSWORD_FLAG, 0, len(body)] if extended else [len(body)]
    values = header + [skip] + [0] * skip + [ord(ch) for ch in body]
    for v in values:
        if v > 0xFF:
            raise ValueError(f"character {chr(v)!r} does not fit in one byte")
    return "".join(encode_byte(v) for v in values)
