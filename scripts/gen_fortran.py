#!/usr/bin/env python3
"""
gen_fortran.py - Fortran binding generator entry point

Generates a C++ wrapper file and a Fortran module for a declaration tree.

Usage:
    python scripts/gen_fortran.py IR_JSON [--typemaps JSON ...] [--bindings MODULE]
                                  [--outdir DIR] [--noproxy] [--final]
"""

import argparse
import importlib
import os
import sys

# Get paths
script_dir = os.path.dirname(os.path.abspath(__file__))

# Add scripts directory to path
sys.path.insert(0, script_dir)

from fortran_gen import Generator, GenerationError, IR
from bindings import fortran


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Generate Fortran bindings')
    parser.add_argument('ir', help='Declaration tree (JSON)')
    parser.add_argument('--typemaps', action='append', default=[],
                        help='Additional typemaps (JSON), may be repeated')
    parser.add_argument('--bindings', default=None,
                        help='Configuration module under bindings/ (e.g. spdemo)')
    parser.add_argument('--outdir', default='.',
                        help='Output directory')
    parser.add_argument('--noproxy', action='store_true',
                        help='Only generate the C interface layer')
    parser.add_argument('--final', action='store_true',
                        help='Generate finalizers for classes')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    gen = Generator(output_root=args.outdir)

    # Apply library-specific configuration, or just the default typemaps
    if args.bindings:
        bindings = importlib.import_module(f'bindings.{args.bindings}')
        bindings.configure(gen)
    else:
        fortran.configure(gen)
    for path in args.typemaps:
        gen.typemaps.load(path)

    try:
        module = IR.load(args.ir).module
    except (OSError, ValueError) as e:
        print(f'  >> error: {args.ir}: {e}', file=sys.stderr)
        return 1
    config = gen.module(module)
    if args.noproxy:
        config.use_proxy = False
    if args.final:
        config.use_final = True

    gen.prepare()
    try:
        gen.generate_module(args.ir)
    except GenerationError:
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
