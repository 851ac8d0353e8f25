# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
This subpackage provides byte accurate random access to the sequences
of FASTA files.

A :class:`SequenceIndexBuilder` scans the bytes of a record once,
classifying them with a :class:`ByteAlphabet`, and creates a
:class:`SequenceIndex`, that maps base positions to byte positions.
"""

__name__ = "ffgff.fasta"
__author__ = "The ffgff developers"

from .alphabet import *
from .builder import *
from .file import *
from .index import *
