# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

__name__ = "ffgff.validation"
__author__ = "The ffgff developers"
__all__ = [
    "Severity",
    "Target",
    "Rule",
    "Fix",
    "ValidationConfig",
    "ValidationEngine",
]

import json
import logging
import warnings
from collections import namedtuple
from enum import Enum, auto
from ffgff.error import AggregatedValidationError, ConversionWarning, ValidationError
from ffgff.file import open_text

_logger = logging.getLogger(__name__)


class Severity(Enum):
    """
    The consequence of a rule violation.

        - **OFF** - The violation is ignored
        - **WARN** - The violation is recorded and emitted as
          :class:`ConversionWarning`
        - **ERROR** - The violation aborts the conversion or, if the
          engine does not fail fast, is collected
    """

    OFF = auto()
    WARN = auto()
    ERROR = auto()


class Target(Enum):
    """
    The kind of object a rule or fix is applied to.
    """

    FEATURE = auto()
    ANNOTATION = auto()


Rule = namedtuple("Rule", ["name", "target", "callback", "severity"])
Rule.__doc__ = """
Descriptor of a validation rule.

Parameters
----------
name : str
    The unique name of the rule, e.g. ``'LOCATION'``.
target : Target
    The kind of object the rule checks.
callback : callable
    Called with the checked object and the line number.
    Raises :class:`ValidationError` if the object violates the rule.
severity : Severity
    The default severity of the rule.
"""

Fix = namedtuple("Fix", ["name", "target", "callback", "enabled"])
Fix.__doc__ = """
Descriptor of a fix, i.e. a function that corrects an object in place.

Parameters
----------
name : str
    The unique name of the fix, e.g. ``'LOCUS_TAG_TO_UPPERCASE'``.
target : Target
    The kind of object the fix is applied to.
callback : callable
    Called with the object and the line number.
enabled : bool
    Whether the fix is applied by default.
"""


class ValidationConfig:
    """
    User overrides for rule severities and fix activation.

    Parameters
    ----------
    severities : dict, optional
        Maps rule names to :class:`Severity` values.
    fixes : dict, optional
        Maps fix names to a boolean, that indicates whether the fix is
        enabled.

    Examples
    --------

    >>> config = ValidationConfig({"LOCATION": Severity.WARN})
    >>> print(config.get_severity("LOCATION", Severity.ERROR))
    Severity.WARN
    >>> print(config.get_severity("DANGLING_PARENT", Severity.ERROR))
    Severity.ERROR
    """

    def __init__(self, severities=None, fixes=None):
        self._severities = dict(severities) if severities is not None else {}
        self._fixes = dict(fixes) if fixes is not None else {}

    @staticmethod
    def read(file):
        """
        Read a configuration from a JSON file.

        The file contains an object with the optional members
        ``severities`` (mapping rule names to ``'OFF'``, ``'WARN'`` or
        ``'ERROR'``) and ``fixes`` (mapping fix names to booleans).

        Parameters
        ----------
        file : file-like object or str
            The file to be read.
            Alternatively a file path can be supplied.

        Returns
        -------
        config : ValidationConfig
            The configuration.
        """
        with open_text(file) as f:
            content = json.load(f)
        try:
            severities = {
                rule: Severity[value.upper()]
                for rule, value in content.get("severities", {}).items()
            }
        except KeyError as e:
            raise ValueError(f"Unknown severity {e}") from e
        fixes = {name: bool(value) for name, value in content.get("fixes", {}).items()}
        return ValidationConfig(severities, fixes)

    def get_severity(self, rule, default):
        return self._severities.get(rule, default)

    def is_fix_enabled(self, fix, default):
        return self._fixes.get(fix, default)


class ValidationEngine:
    """
    Applies fixes and validation rules to GFF3 features and
    annotations and dispatches rule violations according to their
    severity.

    Violations of syntactic rules, found while parsing, are reported
    via :meth:`handle_syntactic_error()` and dispatched the same way.

    Parameters
    ----------
    config : ValidationConfig, optional
        Severity and fix overrides.
    rules : iterable object of Rule, optional
        The rules to apply, in the given order.
    fixes : iterable object of Fix, optional
        The fixes to apply, in the given order.
        Fixes are always applied before the rules.
    fail_fast : bool, optional
        If true, the first violation of an *ERROR* severity rule is
        raised.
        Otherwise such violations are collected and raised together by
        :meth:`raise_collected()`.

    Attributes
    ----------
    warnings : list of ValidationError
        All violations of *WARN* severity rules.
    errors : list of ValidationError
        All collected violations of *ERROR* severity rules, if the
        engine does not fail fast.
    """

    def __init__(self, config=None, rules=None, fixes=None, fail_fast=True):
        self._config = config if config is not None else ValidationConfig()
        self._rules = list(rules) if rules is not None else []
        self._fixes = list(fixes) if fixes is not None else []
        self._fail_fast = fail_fast
        self.warnings = []
        self.errors = []

    @staticmethod
    def default(ontology=None, config=None, fail_fast=True):
        """
        Create an engine with the builtin rules and fixes.

        Parameters
        ----------
        ontology : OntologyLookup, optional
            The ontology used by ontology dependent rules.
            By default the bundled *Sequence Ontology* subset is used.
        config : ValidationConfig, optional
            Severity and fix overrides.
        fail_fast : bool, optional
            See class description.

        Returns
        -------
        engine : ValidationEngine
            The engine.
        """
        # Avoid circular import
        from ffgff.validation.rules import default_fixes, default_rules

        return ValidationEngine(
            config, default_rules(ontology), default_fixes(), fail_fast
        )

    def validate_feature(self, feature, line=None):
        """
        Apply all feature fixes and rules to a GFF3 feature.

        Parameters
        ----------
        feature : GFF3Feature
            The feature, that might be modified by fixes.
        line : int, optional
            The line number of the feature in the input file.
        """
        self._apply(Target.FEATURE, feature, line)

    def validate_annotation(self, annotation, line=None):
        """
        Apply all annotation fixes and rules to a GFF3 annotation.

        Parameters
        ----------
        annotation : GFF3Annotation
            The annotation, that might be modified by fixes.
        line : int, optional
            The line number at which the annotation was completed.
        """
        self._apply(Target.ANNOTATION, annotation, line)

    def handle_syntactic_error(self, error):
        """
        Dispatch a syntactic error found while parsing.

        Parameters
        ----------
        error : ValidationError
            The error.

        Returns
        -------
        severity : Severity
            The severity assigned to the error.
            If the error is not raised, the caller recovers in the same
            way for every severity, e.g. an invalid record is always
            skipped.
        """
        severity = self._config.get_severity(error.rule, Severity.ERROR)
        self._dispatch(error, severity)
        return severity

    def raise_collected(self):
        """
        Raise all collected errors, if there are any.

        Raises
        ------
        AggregatedValidationError
            If errors were collected.
        """
        if len(self.errors) > 0:
            raise AggregatedValidationError(self.errors)

    def _apply(self, target, obj, line):
        for fix in self._fixes:
            if fix.target != target:
                continue
            if self._config.is_fix_enabled(fix.name, fix.enabled):
                _logger.debug("Applying fix %s (line %s)", fix.name, line)
                fix.callback(obj, line)
        for rule in self._rules:
            if rule.target != target:
                continue
            severity = self._config.get_severity(rule.name, rule.severity)
            if severity == Severity.OFF:
                continue
            try:
                rule.callback(obj, line)
            except ValidationError as error:
                error.rule = rule.name
                self._dispatch(error, severity)

    def _dispatch(self, error, severity):
        error.severity = severity
        if severity == Severity.OFF:
            return
        if severity == Severity.WARN:
            self.warnings.append(error)
            warnings.warn(str(error), ConversionWarning)
        elif self._fail_fast:
            raise error
        else:
            self.errors.append(error)
