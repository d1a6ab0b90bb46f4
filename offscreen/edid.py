"""Decoding of monitor identification (EDID) blocks.

Only the fields needed to identify a monitor are decoded: the three letter
manufacturer ID, the product code, the serial number and the monitor name
descriptor if there is one.

Reference: https://en.wikipedia.org/wiki/Extended_Display_Identification_Data
"""

import struct
from dataclasses import dataclass
from typing import Optional

from .exceptions import EdidError

EDID_HEADER = b"\x00\xff\xff\xff\xff\xff\xff\x00"
EDID_BLOCK_SIZE = 128
EDID_MAX_SIZE = 256  # base block plus one extension block

# Display descriptors live at fixed offsets in the base block
_DESCRIPTOR_OFFSETS = (54, 72, 90, 108)
_DESCRIPTOR_MONITOR_NAME = 0xFC


@dataclass(frozen=True)
class Edid:
    """Identification fields decoded from an EDID block."""

    manufacturer_id: str
    product_code: int
    serial_number: int = 0
    name: Optional[str] = None

    def matches(self, manufacturer_id: str, product_code: int) -> bool:
        return self.manufacturer_id == manufacturer_id and self.product_code == product_code


def decode_manufacturer_id(word: int) -> str:
    """Decode the packed manufacturer ID (three 5-bit letters, A=1)."""
    letters = []
    for shift in (10, 5, 0):
        value = (word >> shift) & 0x1F
        if not 1 <= value <= 26:
            raise EdidError(f"invalid manufacturer ID: {word:#06x}")
        letters.append(chr(ord("A") + value - 1))
    return "".join(letters)


def encode_manufacturer_id(manufacturer_id: str) -> int:
    """Pack a three letter manufacturer ID into its 16-bit EDID form."""
    if not isinstance(manufacturer_id, str) or len(manufacturer_id) != 3 or not all("A" <= c <= "Z" for c in manufacturer_id):
        raise ValueError(f"manufacturer ID must be three uppercase letters: {manufacturer_id!r}")
    word = 0
    for letter in manufacturer_id:
        word = (word << 5) | (ord(letter) - ord("A") + 1)
    return word


def _monitor_name(block: bytes) -> Optional[str]:
    for offset in _DESCRIPTOR_OFFSETS:
        descriptor = block[offset:offset + 18]
        # Display descriptors (as opposed to timing descriptors) start with 00 00
        if descriptor[0:2] != b"\x00\x00" or descriptor[3] != _DESCRIPTOR_MONITOR_NAME:
            continue
        text = descriptor[5:18].split(b"\n", 1)[0]
        return text.decode("ascii", errors="replace").strip() or None
    return None


def parse_edid(data: bytes) -> Edid:
    """Parse raw EDID bytes.

    Raises:
        EdidError: if the data is too short or does not start with the
            EDID header.
    """
    data = bytes(data)
    if len(data) < EDID_BLOCK_SIZE:
        raise EdidError(f"EDID data too short: {len(data)} bytes, need {EDID_BLOCK_SIZE}")
    if data[:8] != EDID_HEADER:
        raise EdidError("EDID data does not start with the EDID header")

    (manufacturer_word,) = struct.unpack_from(">H", data, 8)
    product_code, serial_number = struct.unpack_from("<HI", data, 10)

    return Edid(
        manufacturer_id=decode_manufacturer_id(manufacturer_word),
        product_code=product_code,
        serial_number=serial_number,
        name=_monitor_name(data[:EDID_BLOCK_SIZE]),
    )
