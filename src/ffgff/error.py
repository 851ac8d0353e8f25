# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
This module contains the errors and warnings raised during conversion.
"""

__name__ = "ffgff"
__author__ = "The ffgff developers"
__all__ = [
    "ValidationError",
    "AggregatedValidationError",
    "MappingError",
    "SequenceIndexError",
    "FormatSupportError",
    "ConversionWarning",
]


class ValidationError(Exception):
    """
    Indicates that an input violates a validation rule.

    Validation outcomes are tagged with the name of the `rule` that
    produced them, so that the severity assigned to this rule decides
    whether the error is raised, collected or only emitted as
    :class:`ConversionWarning`.

    Parameters
    ----------
    rule : str
        The name of the rule that was violated, e.g. ``'LOCATION'``.
    message : str
        A human readable description of the problem.
    line : int, optional
        The 1-based line number in the input file, if known.

    Attributes
    ----------
    rule, message, line
        Same as the parameters.
    severity : Severity or None
        The severity that was assigned to this error by the
        :class:`ValidationEngine`.
        ``None`` if the error was not dispatched yet.
    """

    def __init__(self, rule, message, line=None):
        self.rule = rule
        self.message = message
        self.line = line
        self.severity = None
        super().__init__(self._format())

    def _format(self):
        if self.line is None:
            return f"{self.rule}: {self.message}"
        return f"{self.rule} (line {self.line}): {self.message}"


class AggregatedValidationError(ValidationError):
    """
    Raised at the end of a run that did not fail fast, listing all
    collected :class:`ValidationError` objects.

    Parameters
    ----------
    errors : list of ValidationError
        The collected errors.
    """

    def __init__(self, errors):
        self.errors = list(errors)
        summary = "\n".join(str(error) for error in self.errors)
        super().__init__(
            "AGGREGATED", f"{len(self.errors)} validation error(s)\n{summary}"
        )


class MappingError(Exception):
    """
    Indicates a semantic problem during the structural mapping between
    GFF3 and flat-file representations.
    These errors are always fatal.

    Parameters
    ----------
    rule : str
        A stable identifier of the problem,
        e.g. ``'GFF3_UNMAPPED_FEATURE'``.
    message : str
        A human readable description of the problem.
    accession : str, optional
        The accession of the record that was mapped.
    feature_id : str, optional
        The identifier of the offending feature.
    """

    def __init__(self, rule, message, accession=None, feature_id=None):
        self.rule = rule
        self.message = message
        self.accession = accession
        self.feature_id = feature_id
        context = []
        if accession is not None:
            context.append(f"accession '{accession}'")
        if feature_id is not None:
            context.append(f"feature '{feature_id}'")
        text = f"{rule}: {message}"
        if context:
            text += f" ({', '.join(context)})"
        super().__init__(text)


class SequenceIndexError(Exception):
    """
    Indicates that a FASTA file cannot be indexed, e.g. because it
    contains bytes outside of the sequence alphabet.

    Parameters
    ----------
    message : str
        A human readable description of the problem.
    offset : int, optional
        The absolute byte offset of the problem in the file.
    """

    def __init__(self, message, offset=None):
        self.offset = offset
        super().__init__(message)


class FormatSupportError(Exception):
    """
    Indicates that the requested conversion between file formats is not
    supported.
    """

    pass


class ConversionWarning(Warning):
    """
    Emitted for validation problems whose severity is set to *WARN*.
    """

    pass
