# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
This is the top-level package of *ffgff*, a converter of genome
annotations between the *Generic Feature Format 3* (GFF3) and the
*EMBL* flat-file format.

The top-level package contains the flat-file data model, the
errors raised during conversion and the high-level conversion
functions.
The file formats, the structural mapping and the validation are
handled by the subpackages.
"""

__version__ = "0.1.0"
__name__ = "ffgff"
__author__ = "The ffgff developers"

from .file import *
from .error import *
from .annotation import *
from .ontology import *
from .convert import *
