# This source code is part of the ffgff package and is distributed
# under the 3-Clause BSD License. Please see 'LICENSE.rst' for further
# information.

"""
Functions for converting an :class:`Entry` from/to an *EMBL* file.
"""

__name__ = "ffgff.embl"
__author__ = "The ffgff developers"
__all__ = ["get_entry", "set_entry", "parse_location", "location_string"]

import re
import textwrap
import warnings
from ffgff.annotation import CompoundLocation, Entry, Feature, Location
from ffgff.file import InvalidFileError

# Column positions, relative to the content of 'FT' lines
_QUAL_START = 16
_LINE_WIDTH = 80
# Width of the qualifier column in a complete line
_QUAL_WIDTH = _LINE_WIDTH - 5 - _QUAL_START
_DESCRIPTION_WIDTH = _LINE_WIDTH - 5
# Qualifiers whose continuation lines are joined without whitespace
_CONTIGUOUS_QUALIFIERS = ("translation",)
# Qualifiers whose values are written without quotes
_UNQUOTED_QUALIFIERS = (
    "anticodon",
    "codon_start",
    "direction",
    "estimated_length",
    "mod_base",
    "number",
    "rpt_type",
    "rpt_unit_range",
    "tag_peptide",
    "transl_except",
    "transl_table",
)
_RANGE_PATTERN = re.compile(r"^(<?)(\d+)\.\.(>?)(\d+)$")
_SINGLE_PATTERN = re.compile(r"^(<|>)?(\d+)$")


def get_entry(embl_file):
    """
    Get the entry, i.e. the identification, the description and the
    features, from an *EMBL* file.

    Parameters
    ----------
    embl_file : EMBLFile
        The file to read the entry from.

    Returns
    -------
    entry : Entry
        The entry.
        Features with unsupported locations are skipped with a warning.

    Raises
    ------
    InvalidFileError
        If the file has no valid identification line.
    """
    id_lines = embl_file.get_lines("ID")
    if len(id_lines) != 1:
        raise InvalidFileError("File must contain exactly one 'ID' line")
    accession, version, topology, molecule_type = _parse_id_line(id_lines[0])

    # The primary accession overrides the accession in the 'ID' line
    ac_lines = embl_file.get_lines("AC")
    if len(ac_lines) > 0:
        primary = ac_lines[0].split(";")[0].strip()
        if len(primary) > 0:
            accession = primary

    description = " ".join(line.strip() for line in embl_file.get_lines("DE"))
    entry = Entry(
        accession,
        version,
        topology,
        molecule_type,
        description if len(description) > 0 else None,
    )
    for key, location_str, qualifier_lines in _split_features(
        embl_file.get_lines("FT")
    ):
        try:
            location = parse_location(location_str)
        except ValueError:
            warnings.warn(
                f"'{location_str}' is an unsupported location identifier, "
                f"skipping feature"
            )
            continue
        entry.add_feature(Feature(key, location, _parse_qualifiers(qualifier_lines)))
    return entry


def set_entry(embl_file, entry):
    """
    Set the identification, description and feature lines of an *EMBL*
    file from an entry.

    Parameters
    ----------
    embl_file : EMBLFile
        The file to be edited.
    entry : Entry
        The entry that is put into the file.
    """
    source = entry.get_source_feature()
    length = source.get_location_range()[1] if source is not None else 0
    molecule_type = entry.molecule_type
    if molecule_type is None and source is not None:
        mol_types = source.get_values("mol_type")
        if len(mol_types) > 0 and mol_types[0] is not None:
            molecule_type = mol_types[0]
    if molecule_type is None:
        molecule_type = "genomic DNA"
    version = entry.version if entry.version is not None else 1

    embl_file.set_lines(
        "ID",
        [
            f"{entry.accession}; SV {version}; {entry.topology.value}; "
            f"{molecule_type}; STD; UNC; {length} BP."
        ],
    )
    embl_file.set_lines("AC", [f"{entry.accession};"])
    if entry.description is not None:
        embl_file.set_lines(
            "DE", textwrap.wrap(entry.description, _DESCRIPTION_WIDTH)
        )
    if source is not None:
        organisms = source.get_values("organism")
        if len(organisms) > 0 and organisms[0] is not None:
            embl_file.set_lines("OS", [organisms[0]])
    embl_file.set_lines("FH", ["Key             Location/Qualifiers", ""])
    embl_file.set_lines("FT", _feature_lines(entry.features))


def parse_location(location_str):
    """
    Parse a flat-file location string.

    Parameters
    ----------
    location_str : str
        The location string, e.g.
        ``'complement(join(<1..100,200..>300))'``.

    Returns
    -------
    location : CompoundLocation
        The parsed location.
        A complemented location is represented by a complemented
        compound location, if it comprises all member locations.

    Raises
    ------
    ValueError
        If the location string is malformed or contains unsupported
        features, like references to other entries or sites between
        bases.

    Examples
    --------

    >>> location = parse_location("complement(join(<1..100,200..300))")
    >>> print(location.complement, location.get_location_range())
    True (1, 300)
    >>> print(location.left_partial, location.five_prime_partial)
    True False
    """
    location_str = "".join(location_str.split())
    compound = CompoundLocation()
    inner = _strip_operator(location_str, "complement")
    if inner is not None:
        compound.complement = True
        location_str = inner
    members = _strip_operator(location_str, "join")
    if members is None:
        members = _strip_operator(location_str, "order")
    if members is None:
        compound.add_location(_parse_member(location_str))
    else:
        for member_str in _split_top_level(members):
            compound.add_location(_parse_member(member_str))
    return compound


def location_string(location):
    """
    Create the flat-file location string of a compound location.

    Parameters
    ----------
    location : CompoundLocation
        The location.

    Returns
    -------
    location_str : str
        The location string.

    Examples
    --------

    >>> location = CompoundLocation(
    ...     [
    ...         Location(1, 5, Location.Strand.REVERSE),
    ...         Location(8, 10, Location.Strand.REVERSE, Location.Partial.FIVE_PRIME),
    ...     ]
    ... )
    >>> print(location_string(location))
    join(complement(1..5),complement(8..>10))
    """
    member_strings = [_member_string(loc) for loc in location]
    if len(member_strings) == 1:
        location_str = member_strings[0]
    else:
        location_str = "join(" + ",".join(member_strings) + ")"
    if location.complement:
        location_str = f"complement({location_str})"
    return location_str


def _parse_id_line(line):
    """
    Parse an identification line of the form
    ``X56734; SV 1; linear; mRNA; STD; PLN; 1859 BP.``.
    """
    fields = [field.strip() for field in line.strip().rstrip(".").split(";")]
    if len(fields) != 7:
        raise InvalidFileError(f"Unsupported identification line '{line}'")
    accession = fields[0]
    version = None
    if fields[1].startswith("SV"):
        version_str = fields[1][2:].strip()
        if version_str.isdigit():
            version = int(version_str)
    try:
        topology = Entry.Topology(fields[2].lower())
    except ValueError:
        raise InvalidFileError(f"Unknown topology '{fields[2]}'")
    return accession, version, topology, fields[3]


def _split_features(lines):
    """
    Split the feature table into features.

    Yields
    ------
    key : str
        The feature key.
    location_str : str
        The complete location string.
    qualifier_lines : list of str
        The lines containing qualifiers.
    """
    key = None
    location_lines = []
    qualifier_lines = []
    in_qualifiers = False
    quote_open = False
    for line in lines:
        if len(line.strip()) == 0:
            continue
        if line[0] != " ":
            if key is not None:
                yield key, "".join(location_lines), qualifier_lines
            key = line[:_QUAL_START].strip()
            location_lines = []
            qualifier_lines = []
            in_qualifiers = False
            quote_open = False
        if key is None:
            raise InvalidFileError("Feature table does not start with a key")
        content = line[_QUAL_START:].strip()
        if not quote_open and content.startswith("/"):
            in_qualifiers = True
        if in_qualifiers:
            qualifier_lines.append(content)
            if content.count('"') % 2 == 1:
                quote_open = not quote_open
        else:
            location_lines.append(content)
    if key is not None:
        yield key, "".join(location_lines), qualifier_lines


def _parse_qualifiers(lines):
    """
    Parse the qualifier lines of a feature into a dictionary.
    Multiple values of the same qualifier are separated by a line
    break.
    """
    qualifiers = []
    quote_open = False
    for line in lines:
        if not quote_open and line.startswith("/"):
            qualifiers.append([line])
        else:
            qualifiers[-1].append(line)
        if line.count('"') % 2 == 1:
            quote_open = not quote_open

    qual = {}
    for qualifier_lines in qualifiers:
        name, _, first_value = qualifier_lines[0][1:].partition("=")
        if "=" not in qualifier_lines[0]:
            value = None
        else:
            separator = "" if name in _CONTIGUOUS_QUALIFIERS else " "
            value = separator.join([first_value] + qualifier_lines[1:])
            if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
                value = value[1:-1].replace('""', '"')
        _set_qual(qual, name, value)
    return qual


def _set_qual(qual_dict, key, val):
    """
    Set a mapping key to val in the dictionary.
    If the key already exists in the dictionary, append the value (str)
    to the existing value, separated by a line break.
    """
    if key in qual_dict and qual_dict[key] is not None and val is not None:
        qual_dict[key] += "\n" + val
    elif key not in qual_dict:
        qual_dict[key] = val


def _feature_lines(features):
    lines = []
    indent = " " * _QUAL_START
    for feature in features:
        location_lines = _wrap_location(location_string(feature.location))
        lines.append(feature.key.ljust(_QUAL_START) + location_lines[0])
        lines.extend(indent + line for line in location_lines[1:])
        for name, value in feature.qual.items():
            if value is None:
                lines.append(indent + f"/{name}")
                continue
            for single_value in value.split("\n"):
                if name in _UNQUOTED_QUALIFIERS:
                    text = f"/{name}={single_value}"
                else:
                    escaped = single_value.replace('"', '""')
                    text = f'/{name}="{escaped}"'
                contiguous = name in _CONTIGUOUS_QUALIFIERS
                lines.extend(
                    indent + line for line in _wrap_qualifier(text, contiguous)
                )
    return lines


def _wrap_qualifier(text, contiguous):
    """
    Wrap a qualifier to the width of the qualifier column.
    Lines are broken at whitespace, which is removed, unless the value
    is contiguous.
    """
    lines = []
    while len(text) > _QUAL_WIDTH:
        split = -1 if contiguous else text.rfind(" ", 1, _QUAL_WIDTH + 1)
        if split == -1:
            lines.append(text[:_QUAL_WIDTH])
            text = text[_QUAL_WIDTH:]
        else:
            lines.append(text[:split])
            text = text[split + 1 :]
    lines.append(text)
    return lines


def _wrap_location(location_str):
    """
    Wrap a location string after commas.
    """
    lines = [""]
    for part in re.split(r"(?<=,)", location_str):
        if len(lines[-1]) > 0 and len(lines[-1]) + len(part) > _QUAL_WIDTH:
            lines.append("")
        lines[-1] += part
    return lines


def _strip_operator(location_str, operator):
    """
    Get the argument of an operator, if the complete string is
    enclosed by it.
    """
    if not (location_str.startswith(operator + "(") and location_str.endswith(")")):
        return None
    inner = location_str[len(operator) + 1 : -1]
    # The closing parenthesis must belong to the operator
    depth = 0
    for char in inner:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return None
    return inner if depth == 0 else None


def _split_top_level(location_str):
    parts = []
    depth = 0
    start = 0
    for i, char in enumerate(location_str):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(location_str[start:i])
            start = i + 1
    parts.append(location_str[start:])
    return parts


def _parse_member(location_str):
    inner = _strip_operator(location_str, "complement")
    if inner is not None:
        return _parse_range(inner, Location.Strand.REVERSE)
    return _parse_range(location_str, Location.Strand.FORWARD)


def _parse_range(location_str, strand):
    """
    Parse a single base or a base range, i.e. ``'<5'`` or
    ``'<1..>10'``.
    """
    # '<' and '>' mark the lower and higher position,
    # while the partiality flags are relative to the strand
    if strand == Location.Strand.REVERSE:
        left_flag = Location.Partial.THREE_PRIME
        right_flag = Location.Partial.FIVE_PRIME
    else:
        left_flag = Location.Partial.FIVE_PRIME
        right_flag = Location.Partial.THREE_PRIME

    match = _SINGLE_PATTERN.match(location_str)
    if match is not None:
        position = int(match.group(2))
        partial = Location.Partial.NONE
        if match.group(1) == "<":
            partial |= left_flag
        elif match.group(1) == ">":
            partial |= right_flag
        return Location(position, position, strand, partial)

    match = _RANGE_PATTERN.match(location_str)
    if match is None:
        raise ValueError(f"Unsupported location '{location_str}'")
    first = int(match.group(2))
    last = int(match.group(4))
    partial = Location.Partial.NONE
    if match.group(1) == "<":
        partial |= left_flag
    if match.group(3) == ">":
        partial |= right_flag
    return Location(first, last, strand, partial)


def _member_string(location):
    first_str = str(location.first)
    last_str = str(location.last)
    if location.left_partial:
        first_str = "<" + first_str
    if location.right_partial:
        last_str = ">" + last_str
    if location.first == location.last and not (
        location.left_partial and location.right_partial
    ):
        if location.left_partial:
            location_str = first_str
        elif location.right_partial:
            location_str = last_str
        else:
            location_str = first_str
    else:
        location_str = f"{first_str}..{last_str}"
    if location.is_complement:
        location_str = f"complement({location_str})"
    return location_str
