"""
dbcsmap - lookup tables and registry for double-byte character sets

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import sys as _sys
assert _sys.version_info >= (3, 9)

from .constants import VERSION as __version__
from .constants import REGISTRY_FILE, UNDEFINED
from .base import (
    GenerationError, StructuralError, ExternalToolError, ConfigurationError,
    UnrecognizedEncoding, FileFormatError, AsciiMismatchWarning, normalise_name,
)
from .converters import (
    ReferenceConverter, CodecConverter, MappingConverter,
    ConversionError, InvalidSequence, IncompleteSequence,
)
from .tables import LookupTable, build_table, check_ascii
from .families import EncodingFamily, FamilyMember, load_config, parse_config, plan_jobs
from .registry import EncodingRegistry, TableEntry
from .generate import generate, generate_table, TableReport


def load_registry(path):
    """Load the registry artifact written by `generate`."""
    return EncodingRegistry.load(path)
