"""
dbcsmap.base - errors, warnings and name normalisation

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""


class GenerationError(Exception):
    """Table or registry generation failed."""


class StructuralError(GenerationError):
    """Reference converter result breaks the one byte pair, one code point contract."""

    def __init__(self, encoding, data, message):
        # args must hold all constructor arguments for unpickling
        super().__init__(encoding, bytes(data), message)
        self.encoding, self.data, self.message = self.args

    def __str__(self):
        return f'{self.encoding}: {self.message} [bytes {self.data.hex(" ").upper()}]'


class ExternalToolError(GenerationError):
    """Reference converter failed in an unexpected way."""

    def __init__(self, encoding, data, cause):
        super().__init__(encoding, bytes(data), str(cause))
        self.encoding, self.data, self.cause = self.args

    def __str__(self):
        return (
            f'{self.encoding}: reference converter failed on bytes '
            f'{self.data.hex(" ").upper()}: {self.cause}'
        )


class ConfigurationError(GenerationError):
    """Inconsistent encoding family or alias configuration."""


class UnrecognizedEncoding(KeyError):
    """Encoding name not found in registry."""


class FileFormatError(ValueError):
    """Table or registry file is malformed."""


class AsciiMismatchWarning(UserWarning):
    """Single byte below 0x80 does not convert to the equal code point."""

    def __init__(self, encoding, byte, codepoint):
        super().__init__(encoding, byte, codepoint)
        self.encoding, self.byte, self.codepoint = self.args

    def __str__(self):
        return (
            f'{self.encoding}: byte 0x{self.byte:02X} converts to '
            f'U+{self.codepoint:04X}, not to the ASCII code point'
        )


# separators removed in normalised names
SEPARATORS = '-_'


def normalise_name(name):
    """Normalise encoding name to registry key: lowercase, separators stripped."""
    name = str(name).lower()
    for char in SEPARATORS:
        name = name.replace(char, '')
    return name
