# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
This subpackage is used for reading and writing flat files in the
*EMBL* format, as used by the *European Nucleotide Archive* (ENA).

The :class:`EMBLFile` gives low-level access to the line blocks of a
single entry, while :func:`get_entry()` and :func:`set_entry()`
convert between such a file and an :class:`Entry`.
Files containing multiple entries are handled by :class:`MultiFile`.
"""

__name__ = "ffgff.embl"
__author__ = "The ffgff developers"

from .file import *
from .convert import *
