# -*- coding: utf-8 -*-
"""
Patch operations and merge conflict records.

A patch is an ordered list of operations; later operations may address
nodes created by earlier ones. Operations are immutable once emitted.
"""
from dataclasses import dataclass, field
from typing import Optional

from .paths import Path, format_name, format_selector, quote_literal
from .tree import Node, QName, same_structure


@dataclass(frozen=True)
class PatchOperation:
    """Base class. ``path`` addresses the target node in the working tree."""

    path: Path

    kind = None

    def format(self, prefixes=None):
        return '%s %s' % (self.kind, self.path.format(prefixes))

    def __str__(self):
        return self.format()


@dataclass(frozen=True)
class Insert(PatchOperation):
    """
    Insert ``content`` as child number ``position`` of the node at ``path``;
    ``position=None`` appends.
    """

    position: Optional[int] = None
    content: Optional[Node] = field(default=None, compare=False)

    kind = 'insert'

    def format(self, prefixes=None):
        name = format_name(self.content.qname, prefixes) if self.content is not None else '?'
        where = 'end' if self.position is None else str(self.position)
        return 'insert <%s> into %s at %s' % (name, self.path.format(prefixes), where)


@dataclass(frozen=True)
class Delete(PatchOperation):
    """Remove the subtree at ``path``."""

    kind = 'delete'


@dataclass(frozen=True)
class UpdateAttribute(PatchOperation):
    """Set attribute ``name`` to ``value``; ``value=None`` removes it."""

    name: QName = None
    value: Optional[str] = None

    kind = 'update-attribute'

    @property
    def is_removal(self):
        return self.value is None

    def format(self, prefixes=None):
        selector = format_selector(self.path, ('attribute', self.name), prefixes)
        if self.value is None:
            return 'remove-attribute %s' % selector
        return 'update-attribute %s = %s' % (selector, quote_literal(self.value))


@dataclass(frozen=True)
class UpdateText(PatchOperation):
    """Replace the text content; ``text=None`` clears it."""

    text: Optional[str] = None

    kind = 'update-text'

    def format(self, prefixes=None):
        selector = format_selector(self.path, ('text',), prefixes)
        if self.text is None:
            return 'remove-text %s' % selector
        return 'update-text %s = %s' % (selector, quote_literal(self.text))


class ConflictReason(object):
    """Reason codes for :class:`ConflictRecord`."""

    MISSING_TARGET = 'missing-target'
    UNRESOLVED_PATH = 'unresolved-path'
    AMBIGUOUS_PATH = 'ambiguous-path'
    MISSING_ATTRIBUTE = 'missing-attribute'
    ROOT_EXISTS = 'root-exists'


@dataclass(frozen=True)
class ConflictRecord:
    """An operation that could not be applied, and why."""

    operation: PatchOperation
    reason: str
    detail: str = ''

    def __str__(self):
        rv = '%s: %s' % (self.reason, self.operation)
        if self.detail:
            rv += ' (%s)' % self.detail
        return rv


def operations_equal(a, b):
    """
    Compare two operation sequences, including Insert content structure.
    """
    a = list(a)
    b = list(b)
    if len(a) != len(b):
        return False
    for x, y in zip(a, b):
        if type(x) is not type(y) or x != y:
            return False
        if isinstance(x, Insert) and not same_structure(x.content, y.content):
            return False
    return True
