# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
The ``ffgff`` command line interface.
"""

__name__ = "ffgff"
__author__ = "The ffgff developers"
__all__ = ["main"]

import argparse
import logging
from ffgff.convert import convert
from ffgff.error import (
    AggregatedValidationError,
    FormatSupportError,
    MappingError,
    SequenceIndexError,
    ValidationError,
)
from ffgff.file import InvalidFileError
from ffgff.validation.engine import ValidationConfig, ValidationEngine

_logger = logging.getLogger(__name__)


def create_parser():
    parser = argparse.ArgumentParser(
        prog="ffgff",
        description="Convert genome annotations between GFF3 and the "
        "EMBL flat-file format",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    conversion = subparsers.add_parser(
        "conversion",
        help="convert a file, the direction is chosen by the file extensions",
    )
    conversion.add_argument("input", help="the input file (.gff3 or .embl)")
    conversion.add_argument("output", help="the output file (.embl or .gff3)")
    conversion.add_argument(
        "--rules",
        "-r",
        dest="rules",
        help="a JSON file overriding rule severities and fixes",
    )
    conversion.add_argument(
        "--fasta",
        "-f",
        dest="fasta",
        help="a FASTA file of the reference sequences",
    )
    conversion.add_argument(
        "--no-fail-fast",
        dest="fail_fast",
        action="store_false",
        help="collect all rule violations instead of stopping at the first",
    )
    conversion.add_argument(
        "--verbose",
        "-v",
        dest="verbose",
        action="store_true",
        help="print debug output",
    )
    return parser


def main(argv=None):
    """
    Run the command line interface.

    Parameters
    ----------
    argv : list of str, optional
        The arguments, by default taken from :data:`sys.argv`.

    Returns
    -------
    exit_code : int
        ``0`` on success, ``1`` if the conversion failed.
    """
    args = create_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = ValidationConfig.read(args.rules) if args.rules is not None else None
    engine = ValidationEngine.default(config=config, fail_fast=args.fail_fast)
    try:
        result = convert(args.input, args.output, engine, fasta=args.fasta)
    except AggregatedValidationError as e:
        for error in e.errors:
            _logger.error(str(error))
        return 1
    except (
        ValidationError,
        MappingError,
        SequenceIndexError,
        FormatSupportError,
        InvalidFileError,
    ) as e:
        _logger.error(str(e))
        return 1
    for warning in result.warnings:
        _logger.warning(str(warning))
    _logger.info(
        "Converted %d record(s) with %d warning(s)",
        len(result.entries),
        len(result.warnings),
    )
    return 0
