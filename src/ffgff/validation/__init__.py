# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
This subpackage validates and fixes GFF3 features and annotations.

Each rule and fix is described by a :class:`Rule` or :class:`Fix`
descriptor.
The :class:`ValidationEngine` applies them and decides based on the
:class:`Severity` of a rule, whether a violation is ignored, emitted
as warning or treated as error.
"""

__name__ = "ffgff.validation"
__author__ = "The ffgff developers"

from .engine import *
from .rules import *
