# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
This subpackage is used for reading and writing files in the
*Generic Feature Format 3* (GFF3).

The :class:`GFFReader` streams a GFF3 file annotation by annotation,
i.e. grouped by reference sequence, while the :class:`GFFWriter`
writes them back.
The translations stored in the ``##FASTA`` section at the end of a
GFF3 file are accessed with the :class:`TranslationReader`.
"""

__name__ = "ffgff.gff"
__author__ = "The ffgff developers"

from .feature import *
from .file import *
from .translation import *
