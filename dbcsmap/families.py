"""
dbcsmap.families - encoding family definitions and generation plan

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import json
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Optional
from importlib.resources import files

from .base import ConfigurationError, normalise_name
from . import data


###############################################################################
# normalisation rules
# each rule takes a family member and returns (identifier, converter name, aliases)

normalisation_rules = {}

def register_rule(name):
    """Decorator to register a normalisation rule."""
    def decorator(rule):
        normalisation_rules[name] = rule
        return rule
    return decorator


@register_rule('identity')
def _identity(member):
    """Member is the converter name."""
    return normalise_name(member), member, ()


@register_rule('windows-codepage')
def _windows_codepage(member):
    """Member is a Windows code page number."""
    number = str(member)
    return f'windows{number}', f'cp{number}', (f'win{number}', f'cp{number}', number)


###############################################################################
# declarations

@dataclass(frozen=True)
class FamilyMember:
    """Encoding declared in a family."""
    name: str
    # overrides for the converter name; additional aliases
    source: Optional[str] = None
    aliases: tuple = ()
    # mapping file to use instead of the default converter
    mapping: Optional[Path] = None
    format: Optional[str] = None


@dataclass(frozen=True)
class EncodingFamily:
    """Encodings sharing a normalisation rule."""
    members: tuple
    rule: str = 'identity'

    def normalise(self, member):
        """Derive identifier, converter name and aliases from a member."""
        try:
            rule = normalisation_rules[self.rule]
        except KeyError as exc:
            raise ConfigurationError(f'Undefined normalisation rule `{self.rule}`.') from exc
        identifier, source_name, aliases = rule(member.name)
        return identifier, member.source or source_name, (*aliases, *member.aliases)


@dataclass(frozen=True)
class FamilyConfig:
    """Seed aliases and encoding families."""
    families: tuple
    aliases: dict


@dataclass(frozen=True)
class TableJob:
    """Table to generate for one encoding."""
    identifier: str
    source_name: str
    aliases: tuple = ()
    mapping: Optional[Path] = None
    format: Optional[str] = None


def _parse_member(member, base_dir):
    """Convert member declaration to FamilyMember."""
    if isinstance(member, str):
        return FamilyMember(name=member)
    if not isinstance(member, dict) or 'name' not in member:
        raise ConfigurationError(f'Malformed family member declaration: {member!r}')
    unknown = set(member) - {'name', 'source', 'aliases', 'mapping', 'format'}
    if unknown:
        raise ConfigurationError(
            f"Unknown keys {sorted(unknown)} in declaration of `{member['name']}`."
        )
    mapping = member.get('mapping', None)
    if mapping is not None and base_dir is not None:
        mapping = Path(base_dir) / mapping
    return FamilyMember(
        name=str(member['name']),
        source=member.get('source', None),
        aliases=tuple(member.get('aliases', ())),
        mapping=Path(mapping) if mapping is not None else None,
        format=member.get('format', None),
    )


def parse_config(config, base_dir=None):
    """Create FamilyConfig from a dictionary as read from json."""
    try:
        families = tuple(
            EncodingFamily(
                members=tuple(
                    _parse_member(_member, base_dir) for _member in _family['members']
                ),
                rule=_family.get('rule', 'identity'),
            )
            for _family in config.get('families', ())
        )
        aliases = {str(_k): str(_v) for _k, _v in config.get('aliases', {}).items()}
    except (KeyError, TypeError, AttributeError) as exc:
        raise ConfigurationError(f'Malformed encoding family configuration: {exc}') from exc
    return FamilyConfig(families=families, aliases=aliases)


def load_config(filename=None):
    """Load family configuration from json file; use the packaged default if none given."""
    if filename is None:
        logging.debug('Loading default encoding families')
        text = (files(data) / 'families.json').read_text()
        base_dir = None
    else:
        logging.debug('Loading encoding families from `%s`', filename)
        text = Path(filename).read_text()
        base_dir = Path(filename).parent
    try:
        config = json.loads(text)
    except ValueError as exc:
        raise ConfigurationError(f'Could not parse encoding family configuration: {exc}') from exc
    return parse_config(config, base_dir)


def plan_jobs(config, only=()):
    """
    List the tables to generate, in declaration order.
    only: restrict to these encodings (by identifier, member name or alias)
    """
    # seed aliases select their target
    seeds = {
        normalise_name(_alias): normalise_name(_target)
        for _alias, _target in config.aliases.items()
    }
    wanted = {normalise_name(_name) for _name in only}
    selected = {seeds.get(_name, _name) for _name in wanted}
    matched = set()
    jobs = []
    for family in config.families:
        for member in family.members:
            identifier, source_name, aliases = family.normalise(member)
            identifier = normalise_name(identifier)
            aliases = tuple(normalise_name(_alias) for _alias in aliases)
            if wanted:
                hits = selected & {identifier, normalise_name(member.name), *aliases}
                if not hits:
                    continue
                matched |= hits
            jobs.append(TableJob(
                identifier=identifier,
                source_name=source_name,
                aliases=aliases,
                mapping=member.mapping,
                format=member.format,
            ))
    unknown = [
        _name for _name in only
        if seeds.get(normalise_name(_name), normalise_name(_name)) not in matched
    ]
    if unknown:
        raise ConfigurationError(
            'No encoding family declares ' + ', '.join(f'`{_name}`' for _name in unknown)
        )
    return jobs
