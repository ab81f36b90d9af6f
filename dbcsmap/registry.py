"""
dbcsmap.registry - registry of encoding names and table files

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass

from .base import (
    ConfigurationError, UnrecognizedEncoding, FileFormatError, normalise_name,
)
from .storage import atomic_open
from .tables import LookupTable


@dataclass(frozen=True)
class TableEntry:
    """Registry entry for a generated table."""
    identifier: str
    filename: Path
    source_name: str = ''
    aliases: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, 'identifier', normalise_name(self.identifier))
        object.__setattr__(self, 'filename', Path(self.filename))
        object.__setattr__(self, 'aliases', tuple(normalise_name(_a) for _a in self.aliases))

    @property
    def type(self):
        """Table type."""
        return 'dbcs'

    def load(self):
        """Load the lookup table for this entry."""
        return LookupTable.load(self.filename, name=self.identifier)


class EncodingRegistry:
    """
    Map encoding identifiers and aliases to table entries.
    Aliases refer to an identifier, never to another alias.
    """

    def __init__(self, aliases=None):
        """Create registry seeded with a dictionary of alias -> identifier."""
        self._index = {}
        for alias, target in (aliases or {}).items():
            self.add_alias(alias, target)

    normalise = staticmethod(normalise_name)

    def _insert(self, name, value):
        """Add key to index; never overwrite."""
        key = normalise_name(name)
        if key in self._index:
            raise ConfigurationError(
                f"Encoding identifier '{name}'~'{key}' is defined more than once."
            )
        self._index[key] = value

    def add_entry(self, entry):
        """Register a table entry and its aliases."""
        self._insert(entry.identifier, entry)
        for alias in entry.aliases:
            self.add_alias(alias, entry.identifier)

    def add_alias(self, alias, target):
        """Register an alias for an identifier."""
        key, target = normalise_name(alias), normalise_name(target)
        if key == target:
            raise ConfigurationError(f"Alias '{alias}' refers to itself.")
        if isinstance(self._index.get(target, None), str):
            raise ConfigurationError(
                f"Alias '{alias}' refers to alias '{target}'; "
                'aliases must refer to an encoding identifier.'
            )
        for _alias, _target in self.aliases().items():
            if _target == key:
                raise ConfigurationError(
                    f"Alias '{_alias}' refers to '{key}', which cannot also be an alias."
                )
        self._insert(alias, target)

    def resolve(self, name):
        """Get table entry by identifier or alias; raise UnrecognizedEncoding if not found."""
        key = normalise_name(name)
        value = self._index.get(key, None)
        if isinstance(value, str):
            # exactly one hop
            value = self._index.get(value, None)
        if isinstance(value, TableEntry):
            return value
        raise UnrecognizedEncoding(f"No registered table matches '{name}' ['{key}'].")

    __getitem__ = resolve

    def __contains__(self, name):
        """Name resolves to a table entry."""
        try:
            self.resolve(name)
        except UnrecognizedEncoding:
            return False
        return True

    def __iter__(self):
        """Iterate over registered identifiers and aliases."""
        return iter(self._index.keys())

    def __len__(self):
        return len(self._index)

    def entries(self):
        """Registered table entries, in order of registration."""
        return tuple(
            _value for _value in self._index.values()
            if isinstance(_value, TableEntry)
        )

    def aliases(self):
        """Dictionary of registered alias -> identifier."""
        return {
            _key: _value for _key, _value in self._index.items()
            if isinstance(_value, str)
        }

    def validate(self):
        """Check every alias refers to a table entry; raise ConfigurationError if not."""
        for alias, target in self.aliases().items():
            if not isinstance(self._index.get(target, None), TableEntry):
                raise ConfigurationError(
                    f"Alias '{alias}' refers to '{target}', which is not a registered table."
                )

    def __repr__(self):
        """Representation."""
        return f'{type(self).__name__}({len(self.entries())} tables, {len(self.aliases())} aliases)'

    # persistence

    def to_dict(self, base=None):
        """
        Convert to a dictionary suitable for json.
        Table filenames are given relative to `base`, if provided.
        """
        output = {}
        for key, value in self._index.items():
            if isinstance(value, str):
                output[key] = value
            else:
                filename = value.filename
                if base is not None:
                    filename = os.path.relpath(filename, base)
                output[key] = {
                    'type': value.type,
                    'filename': Path(filename).as_posix(),
                }
        return output

    def save(self, path):
        """Validate and write registry to a json file atomically."""
        self.validate()
        path = Path(path)
        text = json.dumps(self.to_dict(base=path.parent), indent=2)
        with atomic_open(path, 'wb') as stream:
            stream.write(text.encode('utf-8') + b'\n')
        logging.info('Wrote registry of %d tables to `%s`', len(self.entries()), path)

    @classmethod
    def from_dict(cls, mapping, base=None):
        """Create registry from a dictionary as read from json."""
        aliases = {}
        for key, value in mapping.items():
            if isinstance(value, str):
                aliases.setdefault(normalise_name(value), []).append(key)
        self = cls()
        for key, value in mapping.items():
            if isinstance(value, str):
                self._insert(key, normalise_name(value))
                continue
            if not isinstance(value, dict) or value.get('type', None) != 'dbcs':
                raise FileFormatError(f"Unsupported registry entry for '{key}': {value!r}")
            filename = Path(value['filename'])
            if base is not None and not filename.is_absolute():
                filename = Path(base) / filename
            self._insert(key, TableEntry(
                identifier=key, filename=filename,
                aliases=aliases.get(normalise_name(key), ()),
            ))
        self.validate()
        return self

    @classmethod
    def load(cls, path):
        """Read registry from a json file; table filenames are relative to it."""
        path = Path(path)
        try:
            mapping = json.loads(path.read_text(encoding='utf-8'))
        except ValueError as exc:
            raise FileFormatError(f'Could not parse registry `{path}`: {exc}') from exc
        return cls.from_dict(mapping, base=path.parent)
