"""
Failure messages for equivalence checks.

The equivalence engine never builds text itself. On the first divergence it hands the structured facts (expected value,
actual value, path, custom message and the name of the invoking assertion) to a reporter, which is any callable with
the signature of :func:`render_equivalence_message`.
"""

from .pytypes import full_type_name
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from typing import Any, Iterable, Optional, Protocol

    class FailureReporter(Protocol):
        def __call__(self, expected: 'Any', actual: 'Any', path: 'Iterable[Any]', custom_message: 'Optional[str]',
            invoking_name: str) -> str:
            ...


_MAX_STR_LEN = 1000
_INDENT = '    '
_ROOT_PATH = '<root>'


def render_equivalence_message(expected: 'Any', actual: 'Any', path: 'Iterable[Any]', custom_message: 'Optional[str]' = None,
    invoking_name: str = 'should_be_equivalent_to') -> str:
    """Renders the message for two values that were not equivalent.

    Each path segment goes on its own line, indented one level deeper than its parent, so the message reads like the
    graph that was walked::

        should_be_equivalent_to
            Comparing object equivalence, at path:
         [shop.Order]
            lines [builtins.list]
                Element [1] [shop.Line]
                    quantity [builtins.int]

            Expected value to be
        5
            but was
        2

    Args:
        expected (Any): the expected value at the divergence (a type if the types were what differed)
        actual (Any): the actual value at the divergence
        path (Iterable[Any]): the path segments to the divergence. Each is rendered with str()
        custom_message (Optional[str]): extra text given by the caller, added under 'Additional Info'
        invoking_name (str): the name of the assertion that ran the check

    Returns:
        str: the rendered message
    """
    segments = [str(s) for s in path]
    path_lines = '\n'.join((_INDENT * i) + s for i, s in enumerate(segments)) if segments else _ROOT_PATH

    message = "%s\n%sComparing object equivalence, at path:\n%s\n\n%sExpected value to be\n%s\n%sbut was\n%s" % \
        (invoking_name, _INDENT, path_lines, _INDENT, format_value(expected), _INDENT, format_value(actual))

    if custom_message:
        message += "\n\nAdditional Info:\n%s%s" % (_INDENT, custom_message)
    return message


def format_value(value: 'Any') -> str:
    """Types are shown by their full name, None as 'null', everything else by a length-limited repr()"""
    if value is None:
        return 'null'
    if isinstance(value, type):
        return full_type_name(value)
    return _limit_str(value)


def _limit_str(a: 'Any', limit: int = _MAX_STR_LEN) -> str:
    a_str = repr(a)
    return a_str if len(a_str) < limit else (a_str[:limit] + '...')
