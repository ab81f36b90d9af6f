"""
dbcsmap test suite
generation driver and script tests
"""

import os
import json
import gzip
import unittest
from unittest import mock

import dbcsmap
from dbcsmap import (
    generate, parse_config, load_registry, LookupTable,
    ConfigurationError, GenerationError, StructuralError,
)
from dbcsmap.scripts import generate as generate_script
from .base import BaseTester, FakeConverter, FAKE_PAIRS


class BrokenBig5Converter(FakeConverter):
    """Fake converter that reports an incomplete sequence for big5 only."""

    def convert(self, data, encoding):
        if encoding == 'big5' and bytes(data) == b'\xa1\x40':
            raise dbcsmap.IncompleteSequence('incomplete multibyte sequence')
        return super().convert(data, encoding)


class TestGenerate(BaseTester):
    """Test table and registry generation."""

    config = parse_config({
        'aliases': {'euccn': 'gb2312'},
        'families': [
            {'members': ['gbk', 'gb2312', 'big5']},
            {'rule': 'windows-codepage', 'members': ['950']},
        ],
    })

    def test_generate(self):
        """Tables and registry are written for all encodings."""
        registry, reports = generate(
            self.config, self.temp_path, converter=FakeConverter(FAKE_PAIRS)
        )
        self.assertEqual(
            [_r.identifier for _r in reports], ['gbk', 'gb2312', 'big5', 'windows950']
        )
        for report in reports:
            self.assertTrue(report.filename.exists())
            with gzip.open(report.filename, 'rb') as f:
                self.assertEqual(len(f.read()), 65536)
            self.assertEqual(report.defined, len(FAKE_PAIRS))
            self.assertEqual(report.warnings, ())
        self.assertIs(registry['euccn'], registry['gb2312'])
        self.assertIs(registry['cp950'], registry['windows950'])

    def test_registry_artifact(self):
        """Registry artifact maps identifiers to table files and aliases to identifiers."""
        generate(self.config, self.temp_path, converter=FakeConverter(FAKE_PAIRS))
        data = json.loads((self.temp_path / 'dbcs.json').read_text())
        self.assertEqual(data['euccn'], 'gb2312')
        self.assertEqual(
            data['gbk'], {'type': 'dbcs', 'filename': 'dbcs_tables/gbk.bin.gz'}
        )
        self.assertEqual(data['win950'], 'windows950')
        self.assertEqual(data['950'], 'windows950')
        self.assertEqual(list(data)[:3], ['euccn', 'gbk', 'gb2312'])
        registry = load_registry(self.temp_path / 'dbcs.json')
        table = registry['EUC-CN'].load()
        self.assertEqual(table.mapping, FAKE_PAIRS)

    def test_report_hash(self):
        """Report carries the hash of the uncompressed table."""
        _, reports = generate(
            self.config, self.temp_path, converter=FakeConverter(FAKE_PAIRS),
            only=('gbk',),
        )
        report, = reports
        self.assertEqual(report.digest, LookupTable.load(report.filename).digest())
        self.assertIn(report.digest, str(report))

    def test_ascii_warnings_reported(self):
        """ASCII mismatches are reported, not fatal."""
        converter = FakeConverter(FAKE_PAIRS, single={0x7E: chr(0x203E)})
        _, reports = generate(self.config, self.temp_path, converter=converter)
        for report in reports:
            self.assertEqual(len(report.warnings), 1)
            self.assertEqual(report.warnings[0].byte, 0x7E)

    def test_duplicate_identifier(self):
        """Two families declaring big5 fail before any file is written."""
        config = parse_config({'families': [
            {'members': ['gbk', 'big5']},
            {'members': ['BIG-5']},
        ]})
        converter = FakeConverter(FAKE_PAIRS)
        with self.assertRaises(ConfigurationError):
            generate(config, self.temp_path, converter=converter)
        self.assertEqual(os.listdir(self.temp_path), [])
        self.assertEqual(converter.calls, 0)

    def test_dangling_seed_alias(self):
        """Seed alias to an undeclared encoding fails before any file is written."""
        config = parse_config({
            'aliases': {'euccn': 'gb2312'},
            'families': [{'members': ['gbk']}],
        })
        with self.assertRaises(ConfigurationError):
            generate(config, self.temp_path, converter=FakeConverter(FAKE_PAIRS))
        self.assertEqual(os.listdir(self.temp_path), [])

    def test_only_drops_unused_seed_alias(self):
        """Restricting generation drops seed aliases for skipped encodings."""
        registry, _ = generate(
            self.config, self.temp_path, converter=FakeConverter(FAKE_PAIRS),
            only=('big5',),
        )
        self.assertEqual([_e.identifier for _e in registry.entries()], ['big5'])
        self.assertNotIn('euccn', registry)

    def test_only_by_alias(self):
        """Generation can be restricted by an alias of the encoding."""
        registry, reports = generate(
            self.config, self.temp_path, converter=FakeConverter(FAKE_PAIRS),
            only=('cp950',),
        )
        self.assertEqual([_r.identifier for _r in reports], ['windows950'])
        self.assertIs(registry['win950'], registry['windows950'])

    def test_only_unknown_keeps_registry(self):
        """Restricting to an undeclared encoding fails and leaves the registry alone."""
        generate(self.config, self.temp_path, converter=FakeConverter(FAKE_PAIRS))
        registry_file = self.temp_path / 'dbcs.json'
        before = registry_file.read_bytes()
        converter = FakeConverter(FAKE_PAIRS)
        with self.assertRaises(ConfigurationError):
            generate(
                self.config, self.temp_path, converter=converter,
                only=('shift-jis',),
            )
        self.assertEqual(registry_file.read_bytes(), before)
        self.assertEqual(converter.calls, 0)

    def test_failure_isolated(self):
        """Failure of one encoding does not stop the others; registry is not published."""
        with self.assertRaises(GenerationError) as cm:
            generate(self.config, self.temp_path, converter=BrokenBig5Converter(FAKE_PAIRS))
        self.assertIn('big5', str(cm.exception))
        self.assertIsInstance(cm.exception.__cause__, StructuralError)
        tables = self.temp_path / 'dbcs_tables'
        self.assertEqual(
            sorted(os.listdir(tables)),
            ['gb2312.bin.gz', 'gbk.bin.gz', 'windows950.bin.gz'],
        )
        self.assertFalse((self.temp_path / 'dbcs.json').exists())

    def test_no_registry_file(self):
        """Registry is not written if no file name is given."""
        registry, _ = generate(
            self.config, self.temp_path, registry_file='',
            converter=FakeConverter(FAKE_PAIRS),
        )
        self.assertFalse((self.temp_path / 'dbcs.json').exists())
        self.assertIn('gbk', registry)

    def test_mapping_file(self):
        """Members with a mapping file are built from it."""
        (self.temp_path / 'TEST.TXT').write_text('0xB0A1\t0x554A\n0xB0A2\t0x963F\n')
        config_file = self.temp_path / 'families.json'
        config_file.write_text(json.dumps({'families': [{'members': [
            {'name': 'test-dbcs', 'mapping': 'TEST.TXT'},
        ]}]}))
        out_path = self.temp_path / 'out'
        registry, reports = generate(dbcsmap.load_config(config_file), out_path)
        table = registry['testdbcs'].load()
        self.assertEqual(table.mapping, {b'\xb0\xa1': chr(0x554A), b'\xb0\xa2': chr(0x963F)})

    def test_missing_mapping_file(self):
        """Missing mapping file fails generation for that encoding."""
        config = parse_config({'families': [{'members': [
            {'name': 'test-dbcs', 'mapping': str(self.temp_path / 'NOPE.TXT')},
        ]}]})
        with self.assertRaises(GenerationError) as cm:
            generate(config, self.temp_path)
        self.assertIsInstance(cm.exception.__cause__, ConfigurationError)

    def test_parallel_matches_sequential(self):
        """Tables built in parallel equal those built sequentially."""
        config = parse_config({
            'aliases': {'euccn': 'gb2312'},
            'families': [{'members': ['gbk', 'gb2312']}],
        })
        _, sequential = generate(config, self.temp_path / 'seq')
        registry, parallel = generate(config, self.temp_path / 'par', workers=2)
        self.assertEqual(
            [(_r.identifier, _r.digest) for _r in sequential],
            [(_r.identifier, _r.digest) for _r in parallel],
        )
        self.assertEqual(registry['gbk'].load().codeunit(0xB0, 0xA1), 0x554A)


class TestDefaultFamilies(BaseTester):
    """Test building the packaged encoding families with Python's codecs."""

    def test_generate_defaults(self):
        """All packaged encodings build and resolve through the registry."""
        registry, reports = generate(None, self.temp_path)
        self.assertEqual(
            [_r.identifier for _r in reports],
            ['gbk', 'gb2312', 'big5', 'euckr', 'windows949', 'windows950'],
        )
        for report in reports:
            self.assertGreater(report.defined, 7000)
            self.assertEqual(report.warnings, ())
        loaded = load_registry(self.temp_path / 'dbcs.json')
        self.assertEqual(loaded['EUC-CN'].load().char(0xB0, 0xA1), chr(0x554A))
        self.assertEqual(loaded['gbk'].load().char(0xB0, 0xA1), chr(0x554A))
        self.assertEqual(loaded['big5'].load().char(0xA4, 0x40), chr(0x4E00))
        self.assertEqual(loaded['cp950'].load().char(0xA4, 0x40), chr(0x4E00))
        self.assertEqual(loaded['cp949'].load().char(0xB0, 0xA1), chr(0xAC00))
        euckr = loaded['euc-kr'].load()
        self.assertEqual(euckr.char(0xB0, 0xA1), chr(0xAC00))
        self.assertEqual(euckr.char(0xA4, 0xD4), chr(0x3164))


class TestScript(BaseTester):
    """Test the command-line script."""

    def test_main(self):
        """Script generates tables and prints the report."""
        config_file = self.temp_path / 'families.json'
        config_file.write_text(json.dumps({
            'aliases': {'euccn': 'gb2312'},
            'families': [{'members': ['gbk', 'gb2312']}],
        }))
        out_path = self.temp_path / 'out'
        with mock.patch('builtins.print') as mock_print:
            generate_script.main([
                '--families', str(config_file), '--output', str(out_path),
                '--only', 'gb2312',
            ])
        self.assertTrue((out_path / 'dbcs.json').exists())
        self.assertTrue((out_path / 'dbcs_tables' / 'gb2312.bin.gz').exists())
        self.assertFalse((out_path / 'dbcs_tables' / 'gbk.bin.gz').exists())
        printed = '\n'.join(str(_c.args[0]) for _c in mock_print.call_args_list)
        self.assertIn('gb2312', printed)
        self.assertIn('hash:', printed)

    def test_main_failure_exits(self):
        """Script exits with an error status on configuration errors."""
        config_file = self.temp_path / 'families.json'
        config_file.write_text(json.dumps({
            'families': [{'members': ['big5']}, {'members': ['big5']}],
        }))
        with self.assertRaises(SystemExit) as cm:
            generate_script.main([
                '--families', str(config_file), '--output', str(self.temp_path / 'out'),
            ])
        self.assertEqual(cm.exception.code, 1)
        self.assertFalse((self.temp_path / 'out').exists())


if __name__ == '__main__':
    unittest.main()
