"""
dbcsmap.loaders - mapping file readers

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import logging


# registry of mapping file format readers
mapping_readers = {}

def register_reader(format, **default_kwargs):
    """Decorator to register mapping file reader."""
    def decorator(reader):
        mapping_readers[format] = (reader, default_kwargs)
        return reader
    return decorator


def int_to_bytes(in_int):
    """Convert integer to big-endian bytes, at least one byte long."""
    return in_int.to_bytes(max(1, -(-in_int.bit_length() // 8)), 'big')


@register_reader('txt')
@register_reader('map')
@register_reader('ucp', separator=':', joiner=',')
def _from_text_columns(
        data, *, comment='#', separator=None, joiner='+',
        codepoint_column=0, unicode_column=1, ignore_errors=False,
    ):
    """
    Extract byte sequence -> char mapping from text columns in file data.
    Columns hold hex numbers; multibyte sequences may be given as one large
    number, as in the Unicode consortium's vendor mapping files.
    """
    mapping = {}
    for line in data.decode('utf-8-sig').splitlines():
        # ignore empty lines and comment lines
        if (not line) or (line[0] == comment):
            continue
        line = line.split(comment)[0]
        splitline = line.split(separator)
        if len(splitline) <= max(codepoint_column, unicode_column):
            # undefined code points have no unicode column
            continue
        cp_str = splitline[codepoint_column].strip()
        uni_str = splitline[unicode_column].strip()
        if uni_str.upper().startswith('U+'):
            uni_str = uni_str[2:]
        try:
            seq = b''.join(
                int_to_bytes(int(_substr, 16))
                for _substr in cp_str.split(joiner)
            )
            char = ''.join(
                chr(int(_substr, 16))
                for _substr in uni_str.split(joiner)
            )
        except (ValueError, TypeError) as e:
            if not ignore_errors:
                logging.warning('Could not parse line in text mapping file: %s [%s]', e, repr(line))
            continue
        if char != '\uFFFD':
            # u+FFFD replacement character is used to mark undefined sequences
            mapping[seq] = char
    return mapping


@register_reader('ucm')
def _from_ucm_charmap(data):
    """Extract byte sequence -> char mapping from icu ucm file data."""
    comment = '#'
    escape = '\\'
    precision = '|'
    mapping = {}
    parse = False
    for line in data.decode('utf-8-sig').splitlines():
        if (not line) or (line[0] == comment):
            continue
        if line.startswith('<comment_char>'):
            comment = line.split()[-1].strip()
        elif line.startswith('<escape_char>'):
            escape = line.split()[-1].strip()
        elif line.startswith('CHARMAP'):
            parse = True
            continue
        elif line.startswith('END CHARMAP'):
            parse = False
        if not parse:
            continue
        seq, uni_str = b'', ''
        for item in line.split():
            if item.startswith('<U'):
                # e.g. <U0000> or <U2913C>
                uni_str = item[2:-1]
            elif item.startswith(escape + 'x'):
                seq = bytes.fromhex(item.replace(escape + 'x', ''))
            elif item.startswith(precision):
                # only accept |0 roundtrip and |3 reverse fallback mappings
                # these are the ones that apply when decoding
                if item[1:].strip() not in ('0', '3'):
                    break
        else:
            if not uni_str or not seq:
                logging.warning('Could not parse line in ucm charmap file: %s.', repr(line))
                continue
            if seq in mapping:
                logging.debug('Ignoring redefinition of byte sequence %s', seq.hex())
            else:
                # sequences of code points are written as <U0041><U0301>
                mapping[seq] = ''.join(
                    chr(int(_substr, 16)) for _substr in uni_str.split('><U')
                )
    return mapping
