"""
Describes which members of a type take part in an equivalence check.

A type is described once as a :class:`TypeDescription` (cached per type) listing its declared fields, then its
properties, each in declaration order (base classes first, as dataclasses order their fields). Declared fields are the
public annotated class attributes and public ``__slots__``. The public attributes an instance sets in its ``__dict__``
without declaring them are compared too, after the declared fields and without a declared type.

Members are only ever read: a ``functools.cached_property`` that was not computed yet is computed without being stored.
"""

import dataclasses
import functools
import inspect
import logging
import typing
from .pytypes import resolve_declared_type
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from typing import Any, Optional


_LOGGER = logging.getLogger(__name__)

FIELD = 'field'
PROPERTY = 'property'

_PROPERTY_TYPES = (property, functools.cached_property)


class _Missing:
    """Read in place of a field an object does not have"""
    def __repr__(self) -> str:
        return '<missing>'
MISSING = _Missing()


@dataclasses.dataclass(frozen=True)
class Member:
    """A single comparable member: its name, declared type (None if it does not narrow) and kind"""
    name: str
    declared_type: 'Optional[type]'
    kind: str = FIELD
    descriptor: 'Any' = dataclasses.field(default=None, compare=False, repr=False)

    def get(self, obj: 'Any') -> 'Any':
        """Reads this member from `obj` without changing it. Fields `obj` does not have read as MISSING, property
        getters are allowed to raise"""
        if isinstance(self.descriptor, functools.cached_property):
            cache = getattr(obj, '__dict__', {})
            return cache[self.name] if self.name in cache else self.descriptor.func(obj)
        if self.kind == PROPERTY:
            return getattr(obj, self.name)
        return getattr(obj, self.name, MISSING)


@dataclasses.dataclass(frozen=True)
class TypeDescription:
    type: type
    fields: 'tuple[Member, ...]'
    properties: 'tuple[Member, ...]'
    has_indexer: bool

    def fields_of(self, actual: 'Any', expected: 'Any') -> 'tuple[Member, ...]':
        """Returns the declared fields, then the undeclared public attributes of `actual` and `expected` (keys of `actual`
        first, then any keys only `expected` has).

        Attributes declared by a subclass of this type are left out, so a value compared as its base type only has the
        base type's members compared.
        """
        names = {}
        for obj in (actual, expected):
            below = _declared_below(type(obj), self.type)
            for name in getattr(obj, '__dict__', {}):
                if _is_public(name) and name not in self._member_names and name not in below:
                    names.setdefault(name, None)
        return self.fields + tuple(Member(name, None, FIELD) for name in names)

    @functools.cached_property
    def _member_names(self) -> 'frozenset[str]':
        return frozenset(m.name for m in self.fields + self.properties)


@functools.lru_cache(maxsize=None)
def describe_members(t: 'type') -> 'TypeDescription':
    """Returns the (cached) description of the comparable members of type `t`"""
    hints = _type_hints(t)
    properties = _describe_properties(t)
    property_names = {p.name for p in properties}

    fields = {}
    for klass in reversed(t.__mro__):
        if klass is object:
            continue

        for name, raw_hint in inspect.get_annotations(klass).items():
            hint = hints.get(name, raw_hint)
            if not _is_public(name) or name in property_names or _is_class_only(hint):
                continue
            fields.setdefault(name, Member(name, resolve_declared_type(hint), FIELD))

        for name in _slot_names(klass):
            if _is_public(name) and name not in property_names:
                fields.setdefault(name, Member(name, None, FIELD))

    # Only the instance's own lookup chain counts: a '__getitem__' on the metaclass subscripts the class, not instances
    has_indexer = any('__getitem__' in vars(klass) for klass in t.__mro__ if klass is not object)

    description = TypeDescription(t, tuple(fields.values()), properties, has_indexer)
    _LOGGER.debug("Described %s: fields=%s properties=%s indexer=%s", t.__qualname__,
        [f.name for f in description.fields], [p.name for p in description.properties], description.has_indexer)
    return description


@functools.lru_cache(maxsize=None)
def _declared_below(obj_type: 'type', t: 'type') -> 'frozenset[str]':
    """Names declared (annotated, slotted or properties) by the classes of `obj_type` that are not classes of `t`"""
    if obj_type is t:
        return frozenset()

    names = set()
    for klass in obj_type.__mro__:
        if klass in t.__mro__:
            continue
        names.update(inspect.get_annotations(klass))
        names.update(_slot_names(klass))
        names.update(name for name, value in vars(klass).items() if isinstance(value, _PROPERTY_TYPES))
    return frozenset(names)


def _describe_properties(t: 'type') -> 'tuple[Member, ...]':
    """Properties of `t`, base classes first. An override keeps the position of the property it overrides"""
    properties = {}
    for klass in reversed(t.__mro__):
        for name, value in vars(klass).items():
            if not _is_public(name):
                continue
            if isinstance(value, _PROPERTY_TYPES):
                properties[name] = Member(name, _return_type(value), PROPERTY, value)
            elif name in properties:
                # Overridden by something that is no longer a property
                del properties[name]
    return tuple(properties.values())


def _slot_names(klass: 'type') -> 'tuple[str, ...]':
    slots = vars(klass).get('__slots__', ())
    return (slots,) if isinstance(slots, str) else tuple(slots)


def _return_type(prop: 'Any') -> 'Optional[type]':
    getter = prop.fget if isinstance(prop, property) else prop.func
    if getter is None:
        return None
    try:
        return resolve_declared_type(typing.get_type_hints(getter).get('return'))
    except Exception:
        # Unresolvable annotations (eg: forward references to undefined names) just don't narrow the type
        return None


def _type_hints(t: 'type') -> 'dict[str, Any]':
    try:
        return typing.get_type_hints(t)
    except Exception:
        _LOGGER.debug("Could not resolve type hints of %s, falling back on raw annotations", t.__qualname__)
        return {}


def _is_class_only(hint: 'Any') -> bool:
    """ClassVar and InitVar annotations do not describe instance state"""
    if isinstance(hint, str):
        return hint.startswith(('ClassVar', 'typing.ClassVar', 'InitVar', 'dataclasses.InitVar'))
    return typing.get_origin(hint) is typing.ClassVar or hint is typing.ClassVar \
        or isinstance(hint, dataclasses.InitVar)


def _is_public(name: str) -> bool:
    return not name.startswith('_')
