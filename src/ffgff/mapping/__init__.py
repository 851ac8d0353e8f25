# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
This subpackage maps annotations between the GFF3 and the flat-file
representation.

The :class:`EntryMapper` converts :class:`GFF3Annotation` objects into
flat-file :class:`Entry` objects, the :class:`AnnotationMapper` works
in the opposite direction.
Feature types and qualifiers are translated via a
:class:`MappingTable`.
"""

__name__ = "ffgff.mapping"
__author__ = "The ffgff developers"

from .tables import *
from .directives import *
from .gff_to_entry import *
from .entry_to_gff import *
