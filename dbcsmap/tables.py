"""
dbcsmap.tables - double-byte lookup tables

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import sys
import hashlib
import logging
from array import array
from pathlib import Path

from .constants import (
    LEAD_MIN, LEAD_COUNT, TRAIL_COUNT, SLOT_COUNT, TABLE_SIZE, UNDEFINED,
)
from .base import (
    StructuralError, ExternalToolError, FileFormatError, AsciiMismatchWarning,
)
from .converters import ConversionError, InvalidSequence, IncompleteSequence
from .storage import write_compressed, read_compressed


class LookupTable:
    """
    Lookup table from double-byte sequences to UCS-2 code units.

    Holds one slot per byte pair, for lead bytes 0x80--0xFF and trail bytes
    0x00--0xFF, in row-major order. Undefined pairs hold U+FFFD.
    """

    def __init__(self, codeunits=None, *, name=''):
        """Create table from a sequence of 32768 code units."""
        if codeunits is None:
            codeunits = array('H', (UNDEFINED,)) * SLOT_COUNT
        else:
            codeunits = array('H', codeunits)
        if len(codeunits) != SLOT_COUNT:
            raise ValueError(
                f'Lookup table must have {SLOT_COUNT} slots, not {len(codeunits)}.'
            )
        self._codeunits = codeunits
        self.name = name

    @staticmethod
    def slot(lead, trail):
        """Slot index for a lead and trail byte."""
        if not (LEAD_MIN <= lead < LEAD_MIN + LEAD_COUNT and 0 <= trail < TRAIL_COUNT):
            raise ValueError(
                f'Byte pair 0x{lead:02X} 0x{trail:02X} is outside the double-byte range.'
            )
        return (lead - LEAD_MIN) * TRAIL_COUNT + trail

    def codeunit(self, lead, trail):
        """Code unit stored for a byte pair; U+FFFD if undefined."""
        return self._codeunits[self.slot(lead, trail)]

    def char(self, lead, trail):
        """Character for a byte pair, empty string if undefined."""
        codeunit = self.codeunit(lead, trail)
        if codeunit == UNDEFINED:
            return ''
        return chr(codeunit)

    @property
    def mapping(self):
        """Dictionary of byte pair -> character for all defined pairs."""
        return {
            bytes((LEAD_MIN + _index // TRAIL_COUNT, _index % TRAIL_COUNT)): chr(_codeunit)
            for _index, _codeunit in enumerate(self._codeunits)
            if _codeunit != UNDEFINED
        }

    @property
    def defined(self):
        """Number of defined byte pairs."""
        return sum(_codeunit != UNDEFINED for _codeunit in self._codeunits)

    def __len__(self):
        """Number of slots."""
        return SLOT_COUNT

    def __eq__(self, other):
        """Compare to other table."""
        return isinstance(other, LookupTable) and self._codeunits == other._codeunits

    def __repr__(self):
        """Representation."""
        return f"{type(self).__name__}(name='{self.name}', defined={self.defined})"

    # serialisation

    def to_bytes(self):
        """Pack table as little-endian code units."""
        data = array('H', self._codeunits)
        if sys.byteorder != 'little':
            data.byteswap()
        return data.tobytes()

    @classmethod
    def from_bytes(cls, data, *, name=''):
        """Unpack table from little-endian code units."""
        if len(data) != TABLE_SIZE:
            raise FileFormatError(
                f'Lookup table data must be {TABLE_SIZE} bytes long, not {len(data)}.'
            )
        codeunits = array('H')
        codeunits.frombytes(bytes(data))
        if sys.byteorder != 'little':
            codeunits.byteswap()
        return cls(codeunits, name=name)

    def digest(self):
        """SHA-1 hex digest of the uncompressed table."""
        return hashlib.sha1(self.to_bytes()).hexdigest()

    def save(self, path):
        """Write gzip-compressed table to file; return digest of the uncompressed data."""
        write_compressed(path, self.to_bytes())
        digest = self.digest()
        logging.info('Wrote table for %s to `%s`', self.name, path)
        logging.info('Hash: %s', digest)
        return digest

    @classmethod
    def load(cls, path, *, name=''):
        """Read gzip-compressed table from file."""
        path = Path(path)
        return cls.from_bytes(
            read_compressed(path), name=name or path.name.split('.')[0]
        )


###############################################################################
# table builder

def _convert(converter, data, encoding):
    """Call reference converter; wrap any failure other than the two defined ones."""
    try:
        return converter.convert(data, encoding)
    except ConversionError:
        raise
    except Exception as exc:
        raise ExternalToolError(encoding, data, exc) from exc


def check_ascii(converter, encoding):
    """
    Check that single bytes 0x00--0x7F convert to single characters.
    Return a list of AsciiMismatchWarning for bytes that convert to a
    different code point.
    """
    warnings = []
    for byte in range(LEAD_MIN):
        data = bytes((byte,))
        try:
            chars = _convert(converter, data, encoding)
        except ConversionError as exc:
            raise StructuralError(
                encoding, data, f'single byte does not convert: {exc}'
            ) from exc
        if len(chars) != 1:
            raise StructuralError(
                encoding, data, f'must convert to a single character, got {len(chars)}'
            )
        if ord(chars) != byte:
            warning = AsciiMismatchWarning(encoding, byte, ord(chars))
            logging.warning('%s', warning)
            warnings.append(warning)
    return warnings


def build_table(converter, encoding):
    """
    Build the lookup table for an encoding by probing every byte pair.

    converter: ReferenceConverter providing the ground truth
    encoding: name of the encoding as known to the converter

    Returns the LookupTable and a list of AsciiMismatchWarning.
    Raises StructuralError or ExternalToolError on any inconsistency.
    """
    logging.info('Generate table for %s', encoding)
    warnings = check_ascii(converter, encoding)
    codeunits = array('H')
    for lead in range(LEAD_MIN, LEAD_MIN + LEAD_COUNT):
        for trail in range(TRAIL_COUNT):
            data = bytes((lead, trail))
            try:
                chars = _convert(converter, data, encoding)
            except InvalidSequence:
                codeunits.append(UNDEFINED)
                continue
            except IncompleteSequence as exc:
                raise StructuralError(
                    encoding, data,
                    'incomplete sequence; encoding needs more than two bytes'
                ) from exc
            if len(chars) != 1:
                raise StructuralError(
                    encoding, data, f'must convert to a single character, got {len(chars)}'
                )
            codepoint = ord(chars)
            if codepoint > 0xFFFF:
                raise StructuralError(
                    encoding, data, f'U+{codepoint:04X} does not fit in a UCS-2 code unit'
                )
            codeunits.append(codepoint)
    table = LookupTable(codeunits, name=encoding)
    logging.debug('%d byte pairs defined in %s', table.defined, encoding)
    return table, warnings
