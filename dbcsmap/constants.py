"""
dbcsmap.constants - version and table geometry

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

VERSION = '0.1.0'

# lead bytes 0x80--0xFF, trail bytes 0x00--0xFF
LEAD_MIN = 0x80
LEAD_COUNT = 0x80
TRAIL_COUNT = 0x100
SLOT_COUNT = LEAD_COUNT * TRAIL_COUNT
# bytes per UCS-2 code unit
SLOT_SIZE = 2
TABLE_SIZE = SLOT_COUNT * SLOT_SIZE

# replacement character marks byte pairs with no defined character
UNDEFINED = 0xFFFD

# where the generator puts tables, relative to the registry artifact
TABLE_DIR = 'dbcs_tables'
TABLE_SUFFIX = '.bin.gz'
REGISTRY_FILE = 'dbcs.json'
