"""Windows-1252 decoding as browsers do it."""

import codecs

LEGACY_ENCODING = "cp1252"
LEGACY_ERRORS = "cp1252-c1"

# Python's cp1252 table leaves these bytes undefined
UNDEFINED_BYTES = frozenset(b"\x81\x8d\x8f\x90\x9d")


def _c1_control(error: UnicodeError) -> tuple[str, int]:
    """Map an undefined cp1252 byte to the C1 control with the same value."""
    if isinstance(error, UnicodeDecodeError):
        byte = error.object[error.start]
        if byte in UNDEFINED_BYTES:
            return chr(byte), error.start + 1
    raise error


codecs.register_error(LEGACY_ERRORS, _c1_control)


def decode_legacy(data: bytes) -> str:
    """Decode windows-1252; every byte value maps to a character."""
    return data.decode(LEGACY_ENCODING, LEGACY_ERRORS)
