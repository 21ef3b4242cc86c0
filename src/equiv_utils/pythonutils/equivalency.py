"""
Deep structural equivalence of two object graphs.

Two values are equivalent if every reachable member, string and ordered collection element of one matches the other,
position for position. The first divergence ends the check and is reported with the full path that led to it.

Handled shapes (see :mod:`~equiv_utils.pythonutils.pytypes`):
    - None: only equivalent to None. A field one object has and the other does not is a mismatch too
    - str: ordinal (codepoint-exact, case-sensitive) equality
    - ordered sequences (list, tuple, range, generators, numpy arrays, ...): same length, then element by element.
      Mappings are compared as their sequence of (key, value) items
    - values (numbers, bytes, enums, dates, numpy scalars, ...): built-in '==', with NaN equal to NaN
    - everything else: fields first, then properties, each in declaration order

Reference cycles and shared sub-graphs are only walked once per (actual, expected) pair.

NOTE: recursion depth grows with the depth of the graphs being compared. A graph nested deeper than the interpreter's
recursion limit will raise a RecursionError.
"""

import logging
import numpy as np
from collections.abc import Mapping
from dataclasses import dataclass
from typing_extensions import Self
from .members import MISSING, describe_members
from .messages import render_equivalence_message
from .pytypes import Shape, classify, full_type_name
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from typing import Any, Iterator, Optional, Union
    from .messages import FailureReporter


_LOGGER = logging.getLogger(__name__)

DEFAULT_INVOKING_NAME = 'should_be_equivalent_to'


@dataclass(frozen=True)
class EquivalencyOptions:
    """Options for :func:`should_be_equivalent_to`.

    Args:
        compare_using_runtime_types (bool): if False, members are compared as the type they are declared (annotated)
            as, so a member declared as a base class only has its base class members compared. If True, the concrete
            type of the value found there is used instead, and the types of both sides must match exactly. Members
            without a usable annotation always use the runtime type. Defaults to False.
    """
    compare_using_runtime_types: bool = False


@dataclass(frozen=True)
class PathSegment:
    """One step of a ComparisonPath: a member name, 'Element [i]' or 'Count', plus the type resolved at that step"""
    name: str
    type_name: 'Optional[str]' = None

    def __str__(self) -> str:
        return self.name if self.type_name is None else '%s [%s]' % (self.name, self.type_name)


class ComparisonPath:
    """Immutable path from the root of the compared graphs down to the values currently being compared"""
    __slots__ = ('_segments',)

    def __init__(self, segments: 'tuple[PathSegment, ...]' = ()) -> None:
        self._segments = tuple(segments)

    def extend(self, name: str) -> Self:
        """Returns a new path one segment deeper"""
        return self.__class__(self._segments + (PathSegment(name),))

    def annotate(self, type_name: str) -> Self:
        """Returns a new path with `type_name` attached to the last segment, or as the only segment of an empty path"""
        if not self._segments:
            return self.__class__((PathSegment('', type_name),))
        return self.__class__(self._segments[:-1] + (PathSegment(self._segments[-1].name, type_name),))

    @property
    def segments(self) -> 'tuple[PathSegment, ...]':
        return self._segments

    def __iter__(self) -> 'Iterator[PathSegment]':
        return iter(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __eq__(self, other: 'Any') -> bool:
        return isinstance(other, ComparisonPath) and self._segments == other._segments

    def __hash__(self) -> int:
        return hash(self._segments)

    def __str__(self) -> str:
        return ' -> '.join(str(s).strip() for s in self._segments)

    def __repr__(self) -> str:
        return '%s(%s)' % (self.__class__.__name__, repr(str(self)))


class VisitedPairs:
    """The (actual, expected) pairs of objects already compared during one top-level check, keyed by identity.

    Recorded objects are kept referenced until the check is done, otherwise temporaries (eg: the item tuples of a
    mapping) could be freed and their id() reused by an unrelated object.
    """

    def __init__(self) -> None:
        self._pairs: 'dict[int, tuple[Any, dict[int, Any]]]' = {}

    def contains(self, actual: 'Any', expected: 'Any') -> bool:
        entry = self._pairs.get(id(actual))
        return entry is not None and id(expected) in entry[1]

    def record(self, actual: 'Any', expected: 'Any') -> None:
        entry = self._pairs.setdefault(id(actual), (actual, {}))
        entry[1][id(expected)] = expected

    def __len__(self) -> int:
        return sum(len(e[1]) for e in self._pairs.values())


def should_be_equivalent_to(actual: 'Any', expected: 'Any', options: 'Union[EquivalencyOptions, str, None]' = None,
    custom_message: 'Optional[str]' = None) -> None:
    """Checks that `actual` is structurally equivalent to `expected`, raising an ``EquivalenceMismatchError`` at the first
    divergence.

    Args:
        actual (Any): the value being checked
        expected (Any): the value it should be equivalent to
        options (Union[EquivalencyOptions, str, None]): options for the check, or None for the defaults. A string passed
            here (with no `custom_message`) is used as the custom message instead.
        custom_message (Optional[str]): extra text to add to the failure message. Defaults to None.

    Raises:
        EquivalenceMismatchError: if the graphs diverge
        UnsupportedShapeError: if a compared type has an indexer (``__getitem__``) but is not a sequence
        EquivalenceCheckingError: if reading a member or iterating a sequence raised an unexpected error
    """
    if isinstance(options, str) and custom_message is None:
        options, custom_message = None, options

    if options is None:
        options = EquivalencyOptions()
    elif not isinstance(options, EquivalencyOptions):
        raise TypeError("`options` must be EquivalencyOptions, not %s" % repr(type(options).__name__))

    if custom_message is not None and not isinstance(custom_message, str):
        raise TypeError("`custom_message` must be str, not %s" % repr(type(custom_message).__name__))

    _LOGGER.debug("Checking equivalence of %s and %s (runtime types: %s)", type(actual).__name__,
        type(expected).__name__, options.compare_using_runtime_types)
    compare_objects(actual, expected, None, ComparisonPath(), VisitedPairs(), options, custom_message,
        DEFAULT_INVOKING_NAME)


compare_equivalent = should_be_equivalent_to


def is_equivalent(actual: 'Any', expected: 'Any', options: 'Optional[EquivalencyOptions]' = None) -> bool:
    """Returns True if `actual` is structurally equivalent to `expected`, False otherwise.

    Only a content mismatch gives False: an ``UnsupportedShapeError`` or ``EquivalenceCheckingError`` still propagates.
    """
    try:
        should_be_equivalent_to(actual, expected, options)
    except EquivalenceMismatchError:
        return False
    return True


def compare_objects(actual: 'Any', expected: 'Any', forced_type: 'Optional[type]', path: 'ComparisonPath',
    visited: 'VisitedPairs', options: 'EquivalencyOptions', custom_message: 'Optional[str]', invoking_name: str,
    reporter: 'FailureReporter' = render_equivalence_message) -> None:
    """Compares one pair of values, recursing into their contents.

    Args:
        actual (Any): the actual value at `path`
        expected (Any): the expected value at `path`
        forced_type (Optional[type]): if not None, the type to compare both values as (the declared type of the member
            they were read from). Otherwise the runtime types of both values are used and must be identical
        path (ComparisonPath): path to these values, not yet annotated with their type
        visited (VisitedPairs): pairs already compared in this check
        options (EquivalencyOptions): the options of this check
        custom_message (Optional[str]): passed through to the reporter
        invoking_name (str): passed through to the reporter
        reporter (FailureReporter): renders the failure message
    """
    report = (custom_message, invoking_name, reporter)

    if _both_values_are_absent(actual, expected, path, *report):
        return

    t = forced_type if forced_type is not None else _type_to_compare(actual, expected, path, *report)
    path = path.annotate(full_type_name(t))

    try:
        shape = classify(t)

        if shape is Shape.TEXT:
            _compare_strings(actual, expected, path, *report)
        elif shape is Shape.VALUE:
            _compare_values(actual, expected, path, *report)
        elif actual is expected or visited.contains(actual, expected):
            _LOGGER.debug("Skipping pair already compared, at path: %s", path)
        else:
            visited.record(actual, expected)
            if shape is Shape.SEQUENCE:
                _compare_sequences(actual, expected, path, visited, options, *report)
            else:
                _compare_members(actual, expected, t, path, visited, options, *report)

    except (EquivalenceMismatchError, UnsupportedShapeError, EquivalenceCheckingError, RecursionError):
        raise
    except Exception as err:
        raise EquivalenceCheckingError("Could not determine equivalence at path: %s" % path, path) from err


def _both_values_are_absent(actual, expected, path, custom_message, invoking_name, reporter) -> bool:
    """True if both are None (or both are missing fields), raising if only one of them is"""
    if actual is expected and (actual is None or actual is MISSING):
        return True
    if any(v is None or v is MISSING for v in (actual, expected)):
        _fail(actual, expected, path, custom_message, invoking_name, reporter)
    return False


def _type_to_compare(actual, expected, path, custom_message, invoking_name, reporter) -> type:
    actual_type, expected_type = type(actual), type(expected)
    if actual_type is not expected_type:
        _fail(actual_type, expected_type, path, custom_message, invoking_name, reporter)
    return actual_type


def _compare_strings(actual, expected, path, custom_message, invoking_name, reporter) -> None:
    # str.__eq__ compares codepoints, with no normalization or locale
    if not isinstance(actual, str) or not isinstance(expected, str) or str.__ne__(actual, expected):
        _fail(actual, expected, path, custom_message, invoking_name, reporter)


def _compare_values(actual, expected, path, custom_message, invoking_name, reporter) -> None:
    if not (_is_nan(actual) and _is_nan(expected)) and not bool(actual == expected):
        _fail(actual, expected, path, custom_message, invoking_name, reporter)


def _is_nan(value: 'Any') -> bool:
    return isinstance(value, (float, np.floating)) and bool(np.isnan(value))


def _compare_sequences(actual, expected, path, visited, options, custom_message, invoking_name, reporter) -> None:
    actual_list = _materialize(actual)
    expected_list = _materialize(expected)

    if len(actual_list) != len(expected_list):
        _fail(len(actual_list), len(expected_list), path.extend('Count'), custom_message, invoking_name, reporter)

    for i, (actual_item, expected_item) in enumerate(zip(actual_list, expected_list)):
        compare_objects(actual_item, expected_item, None, path.extend('Element [%d]' % i), visited, options,
            custom_message, invoking_name, reporter)


def _materialize(sequence: 'Any') -> list:
    """Converts a sequence into a list. Mappings become their list of (key, value) items"""
    if isinstance(sequence, Mapping):
        return list(sequence.items())
    if isinstance(sequence, np.ndarray) and sequence.ndim == 0:
        return [sequence[()]]
    return list(sequence)


def _compare_members(actual, expected, t, path, visited, options, custom_message, invoking_name, reporter) -> None:
    description = describe_members(t)

    # There's no general way to list every value an indexer can return
    if description.has_indexer:
        raise UnsupportedShapeError(t, path)

    for member in description.fields_of(actual, expected) + description.properties:
        member_path = path.extend(member.name)
        try:
            actual_value, expected_value = member.get(actual), member.get(expected)
        except Exception as err:
            raise EquivalenceCheckingError("Could not read %s %s at path: %s"
                % (member.kind, repr(member.name), member_path), member_path) from err

        forced_type = None if options.compare_using_runtime_types else member.declared_type
        compare_objects(actual_value, expected_value, forced_type, member_path, visited, options, custom_message,
            invoking_name, reporter)


def _fail(actual, expected, path, custom_message, invoking_name, reporter) -> 'None':
    raise EquivalenceMismatchError(expected, actual, path, custom_message, invoking_name,
        reporter(expected, actual, path, custom_message, invoking_name))


class EquivalenceMismatchError(AssertionError):
    """Error raised at the first divergence found by :func:`should_be_equivalent_to`"""

    def __init__(self, expected: 'Any', actual: 'Any', path: 'ComparisonPath', custom_message: 'Optional[str]',
        invoking_name: str, message: str) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.path = path
        self.custom_message = custom_message
        self.invoking_name = invoking_name


class UnsupportedShapeError(TypeError):
    """Error raised when a compared type has an indexer, which cannot be compared. This is never a content mismatch"""

    def __init__(self, t: type, path: 'ComparisonPath') -> None:
        super().__init__("Comparing types that have indexers is not supported: %s (at path: %s)"
            % (repr(full_type_name(t)), path))
        self.type = t
        self.path = path


class EquivalenceCheckingError(Exception):
    """Error raised whenever there is an unexpected problem reading the values being compared"""

    def __init__(self, message: str, path: 'ComparisonPath') -> None:
        super().__init__(message)
        self.path = path
