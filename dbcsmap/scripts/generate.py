"""
Generate double-byte lookup tables and the encoding registry
(c) 2024 dbcsmap contributors, licence: https://opensource.org/licenses/MIT
"""

import sys
import argparse
from pathlib import Path

import dbcsmap
from dbcsmap.plumbing import wrap_main

script_name = Path(sys.argv[0]).name


def _positive_int(value):
    number = int(value, 0)
    if number < 1:
        raise argparse.ArgumentTypeError(f'must be at least 1, not {value}')
    return number


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog=script_name,
        description='Generate lookup tables for double-byte encodings and write the registry.',
    )
    parser.add_argument(
        '--families', type=Path, default=None,
        help='json file declaring encoding families and aliases (default: packaged definitions)',
    )
    parser.add_argument(
        '--output', type=Path, default=Path('.'),
        help='directory to write registry and tables to (default: current directory)',
    )
    parser.add_argument(
        '--registry', default=dbcsmap.REGISTRY_FILE,
        help=f'registry file name (default: {dbcsmap.REGISTRY_FILE})',
    )
    parser.add_argument(
        '--workers', type=_positive_int, default=1,
        help='number of processes to build tables in (default: 1)',
    )
    parser.add_argument(
        '--only', nargs='+', default=(), metavar='ENCODING',
        help='only generate tables for these encodings',
    )
    parser.add_argument('--verbose', action='store_true', help='report progress')
    parser.add_argument('--debug', action='store_true', help='enable debugging output')
    parser.add_argument(
        '--version', action='version', version=f'dbcsmap v{dbcsmap.__version__}'
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    with wrap_main(args.debug, args.verbose):
        config = dbcsmap.load_config(args.families)
        _, reports = dbcsmap.generate(
            config, args.output, registry_file=args.registry,
            workers=args.workers, only=args.only,
        )
        for report in reports:
            print(report)


if __name__ == '__main__':
    main()
