"""
Tests for the equiv_utils.pythonutils.members file.
"""

import functools
from dataclasses import InitVar, dataclass, field
from typing import ClassVar, Optional
from equiv_utils.pythonutils.members import FIELD, MISSING, PROPERTY, describe_members


@dataclass
class _Base:
    b: int
    a: str
    _private: int = 0
    counter: ClassVar[int] = 0

    @property
    def total(self) -> int:
        return self.b


@dataclass
class _Derived(_Base):
    z: Optional[float] = None
    seed: InitVar[int] = 0
    tags: list = field(default_factory=list)

    def __post_init__(self, seed):
        pass

    @property
    def label(self) -> str:
        return self.a

    @property
    def total(self) -> int:
        return self.b * 2


class _Slotted:
    __slots__ = ('x', 'y', '_z')

    def __init__(self, x, y):
        self.x, self.y, self._z = x, y, None


class _Plain:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)

    @functools.cached_property
    def lazy(self):
        return 1


class _Mixed:
    id: int

    def __init__(self, id, items):
        self.id = id
        self.items = items


class _Indexed:
    def __getitem__(self, item):
        return item


class _SubIndexed(_Indexed):
    pass


class _SubscriptMeta(type):
    def __getitem__(cls, item):
        return cls


class _ClassSubscript(metaclass=_SubscriptMeta):
    pass


def test_fields_in_declaration_order():
    """Tests that fields are listed base class first, in declaration order, skipping private and class-only ones"""
    desc = describe_members(_Derived)
    assert [f.name for f in desc.fields] == ['b', 'a', 'z', 'tags']
    assert all(f.kind == FIELD for f in desc.fields)
    assert [f.declared_type for f in desc.fields] == [int, str, float, list]

    # Every public instance attribute is declared, so reading instances adds nothing
    assert desc.fields_of(_Derived(1, 'a'), _Derived(2, 'b')) == desc.fields


def test_properties():
    """Tests that properties keep the position of the property they override, and their declared return type"""
    desc = describe_members(_Derived)
    assert [p.name for p in desc.properties] == ['total', 'label']
    assert [p.declared_type for p in desc.properties] == [int, str]
    assert all(p.kind == PROPERTY for p in desc.properties)
    assert desc.properties[0].get(_Derived(2, 'x')) == 4


def test_slots():
    """Tests public __slots__ as fields"""
    desc = describe_members(_Slotted)
    assert [f.name for f in desc.fields] == ['x', 'y']
    assert desc.fields[0].get(_Slotted(1, 2)) == 1


def test_instance_fields():
    """Tests reading undeclared fields from instances, after the declared ones"""
    desc = describe_members(_Plain)
    assert desc.fields == ()
    assert [p.name for p in desc.properties] == ['lazy']

    actual, expected = _Plain(b=1, a=2, _c=3), _Plain(a=2, d=4)
    actual.lazy
    fields = desc.fields_of(actual, expected)
    assert [f.name for f in fields] == ['b', 'a', 'd']
    assert fields[0].get(expected) is MISSING
    assert fields[2].get(expected) == 4

    mixed = describe_members(_Mixed)
    assert [f.name for f in mixed.fields_of(_Mixed(1, [2]), _Mixed(1, [2]))] == ['id', 'items']
    assert mixed.fields[0].declared_type is int


def test_subclass_fields_left_out():
    """Tests that reading an instance as its base type leaves out the fields its subclass declares"""
    desc = describe_members(_Base)
    fields = desc.fields_of(_Derived(1, 'a'), _Derived(1, 'a'))
    assert [f.name for f in fields] == ['b', 'a']


def test_cached_property_read_only():
    """Tests that reading a cached property does not store it, but uses the stored value if there is one"""
    desc = describe_members(_Plain)
    obj = _Plain(a=1)
    assert desc.properties[0].get(obj) == 1
    assert vars(obj) == {'a': 1}

    obj.__dict__['lazy'] = 5
    assert desc.properties[0].get(obj) == 5


def test_indexer():
    """Tests detecting indexers"""
    assert describe_members(_Indexed).has_indexer
    assert not describe_members(_Plain).has_indexer
    assert not describe_members(_Derived).has_indexer
    assert describe_members(_SubIndexed).has_indexer

    # Subscripting the class is not an indexer on its instances
    assert not describe_members(_ClassSubscript).has_indexer


def test_cached():
    """Tests that each type is only described once"""
    assert describe_members(_Derived) is describe_members(_Derived)
