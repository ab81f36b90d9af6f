"""
dbcsmap.converters - reference converters from legacy bytes to unicode

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import logging
from pathlib import Path

from .base import normalise_name
from .loaders import mapping_readers


class ConversionError(ValueError):
    """Bytes could not be converted."""


class InvalidSequence(ConversionError):
    """Bytes do not form a valid character."""


class IncompleteSequence(ConversionError):
    """Bytes are a valid but truncated prefix of a character."""


# reasons given by python decoders for truncated input
_INCOMPLETE_REASONS = ('incomplete', 'unexpected end of data', 'truncated data')


class ReferenceConverter:
    """
    Convert byte sequences in a legacy encoding to unicode.

    Implementations raise InvalidSequence if the bytes form no valid character
    and IncompleteSequence if they are a valid but truncated prefix.
    Any other exception is considered a failure of the converter itself.
    """

    def convert(self, data, encoding):
        """Convert bytes in given encoding to a unicode string."""
        raise NotImplementedError

    def __repr__(self):
        """Representation."""
        return f'{type(self).__name__}()'


class CodecConverter(ReferenceConverter):
    """Reference converter using python's codec registry."""

    def convert(self, data, encoding):
        """Convert bytes in given encoding to a unicode string."""
        data = bytes(data)
        try:
            return data.decode(encoding, errors='strict')
        except UnicodeDecodeError as exc:
            if any(_reason in exc.reason for _reason in _INCOMPLETE_REASONS):
                raise IncompleteSequence(exc.reason) from exc
            raise InvalidSequence(exc.reason) from exc


class MappingConverter(ReferenceConverter):
    """Reference converter using mapping tables of byte sequences to characters."""

    def __init__(self, mappings=None):
        """Create converter from a dictionary encoding -> {bytes: char}."""
        self._mappings = {}
        self._prefixes = {}
        self._max_length = {}
        for encoding, mapping in (mappings or {}).items():
            self.register(encoding, mapping)

    def register(self, encoding, mapping):
        """Add or replace the mapping for an encoding."""
        key = normalise_name(encoding)
        mapping = {bytes(_k): _v for _k, _v in mapping.items() if _k}
        self._mappings[key] = mapping
        # proper prefixes of multibyte sequences
        self._prefixes[key] = {
            _seq[:_i]
            for _seq in mapping
            for _i in range(1, len(_seq))
        }
        self._max_length[key] = max((len(_seq) for _seq in mapping), default=1)

    @classmethod
    def load(cls, encoding, filename, *, format=None, **kwargs):
        """Create converter for one encoding from a mapping file."""
        self = cls()
        self.register(encoding, read_mapping(filename, format=format, **kwargs))
        return self

    @property
    def encodings(self):
        """Normalised names of the encodings with a registered mapping."""
        return tuple(self._mappings)

    def convert(self, data, encoding):
        """Convert bytes in given encoding to a unicode string."""
        key = normalise_name(encoding)
        try:
            mapping = self._mappings[key]
        except KeyError as exc:
            raise LookupError(f'No mapping registered for encoding `{encoding}`.') from exc
        data = bytes(data)
        chars = []
        pos = 0
        while pos < len(data):
            # longest match first
            for length in range(min(self._max_length[key], len(data) - pos), 0, -1):
                seq = data[pos:pos+length]
                if seq in mapping:
                    chars.append(mapping[seq])
                    pos += length
                    break
            else:
                rest = data[pos:]
                if rest in self._prefixes[key]:
                    raise IncompleteSequence(f'incomplete sequence {rest.hex()}')
                if data[pos] < 0x80:
                    # ascii passes through unless the mapping redefines it
                    chars.append(chr(data[pos]))
                    pos += 1
                    continue
                raise InvalidSequence(f'no mapping for {rest[:1].hex()}')
        return ''.join(chars)

    def __repr__(self):
        """Representation."""
        return f"{type(self).__name__}(encodings={self.encodings})"


def read_mapping(filename, *, format=None, **kwargs):
    """Read a {bytes: char} mapping from a mapping file."""
    path = Path(filename)
    format = (format or path.suffix[1:]).lower()
    try:
        reader, format_kwargs = mapping_readers[format]
    except KeyError as exc:
        raise ValueError(f'Undefined mapping file format `{format}`.') from exc
    logging.debug('Reading %s mapping from `%s`', format, path)
    return reader(path.read_bytes(), **{**format_kwargs, **kwargs})
