"""
Type helpers used when deciding how two values should be compared.

Every value reached during an equivalence check is classified into exactly one ``Shape``:
    - TEXT: str, compared ordinally
    - SEQUENCE: anything iterable that is not text, compared by position
    - VALUE: scalars whose built-in equality is trusted (numbers, bytes, enums, dates, numpy scalars, ...). Functions,
      methods, partials and modules are values too: they have no comparable state, so they are equal only by identity
      (bound methods: same function bound to the same object)
    - COMPOSITE: everything else, compared member by member

Declared types come from annotations, which may be typing constructs rather than classes, so they are resolved into a
plain class (or None, meaning "no narrowing") with :func:`resolve_declared_type`.
"""

import datetime
import decimal
import fractions
import functools
import types
import typing
import uuid
import numpy as np
from collections.abc import Iterable
from enum import Enum
from types import UnionType
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from typing import Any, Optional


# Types whose own '==' is trusted as atomic. Checked after TEXT and SEQUENCE, so iterable scalars (bytes, etc.) must
# also be listed in _ITERABLE_VALUE_TYPES to avoid being compared element-wise
_VALUE_TYPES = (bool, int, float, complex, bytes, bytearray, memoryview, np.number, np.bool_, Enum, decimal.Decimal,
    fractions.Fraction, datetime.date, datetime.time, datetime.timedelta, datetime.tzinfo, uuid.UUID, type,
    type(None), type(Ellipsis), type(NotImplemented), types.FunctionType, types.BuiltinFunctionType, types.MethodType,
    functools.partial, types.ModuleType)
_ITERABLE_VALUE_TYPES = (bytes, bytearray, memoryview, type)


class Shape(Enum):
    """The closed set of ways two non-None values can be compared"""
    TEXT = 'text'
    SEQUENCE = 'sequence'
    VALUE = 'value'
    COMPOSITE = 'composite'


def classify(t: 'type') -> 'Shape':
    """Returns the Shape used to compare values of type `t`

    Enum classes are iterable, but Enum members are not, so an Enum member always lands on VALUE.
    """
    if not isinstance(t, type):
        raise TypeError("Can only classify types, not %s" % repr(type(t).__name__))

    if issubclass(t, str):
        return Shape.TEXT
    if issubclass(t, Iterable) and not issubclass(t, _ITERABLE_VALUE_TYPES):
        return Shape.SEQUENCE
    if issubclass(t, _VALUE_TYPES):
        return Shape.VALUE
    return Shape.COMPOSITE


def resolve_declared_type(hint: 'Any') -> 'Optional[type]':
    """Converts a type annotation into the class that comparisons should be forced to, or None to not force any type

    ``Optional[X]`` resolves to ``X``, parametrised generics to their origin (``list[int]`` -> ``list``), and
    ``Annotated[X, ...]`` to ``X``. Anything that does not name a single class (``Any``, ``object``, a TypeVar, a string
    forward reference, a union of several types, ``Literal``) resolves to None.
    """
    if hint is None or hint is typing.Any or hint is object:
        return None

    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is UnionType:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        return resolve_declared_type(args[0]) if len(args) == 1 else None
    if origin is typing.Annotated:
        return resolve_declared_type(typing.get_args(hint)[0])
    if origin is typing.Literal or origin is typing.ClassVar:
        return None
    if origin is not None:
        hint = origin

    return hint if isinstance(hint, type) and hint is not object else None


def full_type_name(t: 'type') -> 'str':
    """Returns the fully-qualified name of a type, eg: 'builtins.int' or 'collections.OrderedDict'"""
    return '%s.%s' % (t.__module__, t.__qualname__)
