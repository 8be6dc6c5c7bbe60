# Container layout
PROPERTIES_SIZE = 5  # opaque coder properties
SIZE_FIELD_SIZE = 8  # u64 little endian uncompressed size
HEADER_SIZE = PROPERTIES_SIZE + SIZE_FIELD_SIZE

# Size field value meaning "not known up front; decode until the end marker"
UNKNOWN_SIZE = 0xFFFF_FFFF_FFFF_FFFF

# Default LZMA1 coder settings (4 MiB dictionary, lc=3 lp=0 pb=2)
DEFAULT_DICT_SIZE = 1 << 22
DEFAULT_LC = 3
DEFAULT_LP = 0
DEFAULT_PB = 2
DEFAULT_PRESET = 6

# Property byte limits: lc in 0..8, lp in 0..4, pb in 0..4
MAX_LC = 8
MAX_LP = 4
MAX_PB = 4

DEFAULT_CHUNK_SIZE = 65_536  # 64 KiB streaming buffer

# External attributes: bits 0..15 belong to the archive format, 16..31 hold st_mode
MODE_SHIFT = 16
LOW_MASK = 0xFFFF
ATTR_MASK = 0xFFFF_FFFF

# MS-DOS attribute bits used in the low half
DOS_DIRECTORY = 0x10
