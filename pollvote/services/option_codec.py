# Uppercase hex symbols, indexed by nibble value
HEX_SYMBOLS = (
    "0", "1", "2", "3", "4", "5", "6", "7",
    "8", "9", "A", "B", "C", "D", "E", "F",
)  # fmt: skip

# Hex of b"\x0a\x20", the record header preceding every option hash
OPTION_DELIMITER = "0A20"

# Leading bytes of the decrypted plaintext that precede the first hash
PLAINTEXT_PAD_SIZE = 2


class OptionHashCodec:
    """Turns decrypted vote plaintext into the list of selected option hashes."""

    @staticmethod
    def strip_padding(plaintext: bytes) -> bytes:
        return plaintext[PLAINTEXT_PAD_SIZE:]

    @staticmethod
    def encode(data: bytes) -> str:
        """Encodes bytes as uppercase hex via nibble lookup."""
        chars: list[str] = []
        for byte in data:
            chars.append(HEX_SYMBOLS[byte >> 4])
            chars.append(HEX_SYMBOLS[byte & 0x0F])
        return "".join(chars)

    @staticmethod
    def decode(hex_string: str) -> bytes:
        """Inverse of encode."""
        return bytes.fromhex(hex_string)

    @staticmethod
    def split(hex_string: str) -> list[str]:
        """
        Splits on the "0A20" delimiter, keeping empty pieces.
        The delimiter is matched on the hex text, not on byte boundaries, so a
        hash whose hex happens to contain "0A20" is split as well.
        """
        return hex_string.split(OPTION_DELIMITER)

    @classmethod
    def decode_option_hashes(cls, plaintext: bytes) -> list[str]:
        """Strips the pad from decrypted plaintext and returns its option hashes."""
        return cls.split(cls.encode(cls.strip_padding(plaintext)))
