"""
dbcsmap.generate - generate lookup tables and registry for encoding families

(c) 2024 dbcsmap contributors
licence: https://opensource.org/licenses/MIT
"""

import logging
from pathlib import Path
from dataclasses import dataclass, field
from concurrent.futures import ProcessPoolExecutor

from .constants import TABLE_DIR, TABLE_SUFFIX, REGISTRY_FILE
from .base import GenerationError, ConfigurationError, normalise_name
from .converters import CodecConverter, MappingConverter
from .families import load_config, plan_jobs
from .registry import EncodingRegistry, TableEntry
from .tables import build_table


@dataclass(frozen=True)
class TableReport:
    """Outcome of generating one table."""
    identifier: str
    source_name: str
    filename: Path
    digest: str
    defined: int
    warnings: tuple = field(default=())

    def __str__(self):
        lines = [
            f'{self.identifier} [{self.source_name}]: {self.defined} byte pairs defined',
            f'    file: {self.filename}',
            f'    hash: {self.digest}',
        ]
        lines.extend(f'    warning: {_w}' for _w in self.warnings)
        return '\n'.join(lines)


def table_path(outdir, identifier):
    """Location of the table file for an encoding."""
    return Path(outdir) / TABLE_DIR / f'{identifier}{TABLE_SUFFIX}'


def _get_converter(job, converter):
    """Converter to use for a job."""
    if job.mapping is None:
        return converter or CodecConverter()
    try:
        return MappingConverter.load(job.source_name, job.mapping, format=job.format)
    except (EnvironmentError, ValueError) as exc:
        raise ConfigurationError(
            f'{job.identifier}: could not load mapping file `{job.mapping}`: {exc}'
        ) from exc


def generate_table(job, outdir, converter=None):
    """
    Build and write the table for one encoding.
    Returns the TableEntry and a TableReport.
    """
    table, warnings = build_table(_get_converter(job, converter), job.source_name)
    filename = table_path(outdir, job.identifier)
    digest = table.save(filename)
    entry = TableEntry(
        identifier=job.identifier, filename=filename,
        source_name=job.source_name, aliases=job.aliases,
    )
    report = TableReport(
        identifier=job.identifier, source_name=job.source_name,
        filename=filename, digest=digest, defined=table.defined,
        warnings=tuple(warnings),
    )
    return entry, report


def _run_job(job, outdir, converter):
    """Generate one table; return the failure instead of raising it."""
    try:
        return generate_table(job, outdir, converter), None
    except GenerationError as exc:
        return None, exc


def assemble_registry(aliases, entries):
    """Fold table entries into a registry seeded with aliases, in the given order."""
    registry = EncodingRegistry(aliases)
    for entry in entries:
        registry.add_entry(entry)
    registry.validate()
    return registry


def generate(
        config=None, outdir='.', *, registry_file=REGISTRY_FILE,
        workers=1, converter=None, only=(),
    ):
    """
    Generate tables for all encodings in a family configuration and write the registry.

    config: FamilyConfig; use the packaged default if None
    outdir: directory for the registry; tables go in a subdirectory
    registry_file: registry file name; don't write the registry if empty
    workers: number of processes to build tables in
    converter: reference converter for encodings without a mapping file
    only: restrict to these encodings

    Returns the EncodingRegistry and a list of TableReport, in plan order.
    """
    if config is None:
        config = load_config()
    outdir = Path(outdir)
    jobs = plan_jobs(config, only=only)
    aliases = config.aliases
    if only:
        # drop seed aliases for encodings not generated
        identifiers = {_job.identifier for _job in jobs}
        aliases = {
            _alias: _target for _alias, _target in aliases.items()
            if normalise_name(_target) in identifiers
        }
    # check configuration before writing anything
    assemble_registry(aliases, (
        TableEntry(
            identifier=_job.identifier, filename=table_path(outdir, _job.identifier),
            source_name=_job.source_name, aliases=_job.aliases,
        )
        for _job in jobs
    ))
    if workers > 1 and len(jobs) > 1:
        with ProcessPoolExecutor(max_workers=workers) as executor:
            # map preserves plan order whatever the completion order
            results = list(executor.map(
                _run_job, jobs, (outdir,)*len(jobs), (converter,)*len(jobs)
            ))
    else:
        results = [_run_job(_job, outdir, converter) for _job in jobs]
    failures = [
        (_job.identifier, _exc) for _job, (_, _exc) in zip(jobs, results)
        if _exc is not None
    ]
    for identifier, exc in failures:
        logging.error('Could not generate table for %s: %s', identifier, exc)
    if failures:
        raise GenerationError(
            'Table generation failed for '
            + ', '.join(_identifier for _identifier, _ in failures)
        ) from failures[0][1]
    entries = [_result[0] for _result, _ in results]
    reports = [_result[1] for _result, _ in results]
    registry = assemble_registry(aliases, entries)
    if registry_file:
        registry.save(outdir / registry_file)
    return registry, reports
