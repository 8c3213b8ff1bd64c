# -*- coding: utf-8 -*-
"""
In-memory tree model for protocol description documents.

A document is an ordered, attributed tree of :class:`Node` objects wrapped by
a :class:`Tree`. A parent owns its ``children`` list; a child only keeps a
weak reference back to its parent, so trees never form reference cycles.
"""
import weakref
from collections import namedtuple

from .utils import split_clark, longzip


class QName(namedtuple('QName', ['namespace', 'localname'])):
    """
    Qualified name. Renders in Clark notation:

    >>> str(QName('urn:x', 'field')), str(QName(None, 'field'))
    ('{urn:x}field', 'field')
    >>> QName.from_clark('{urn:x}field').localname
    'field'
    """
    __slots__ = ()

    @classmethod
    def from_clark(cls, name):
        if isinstance(name, cls):
            return name
        return cls(*split_clark(name))

    @property
    def clark(self):
        if self.namespace:
            return '{%s}%s' % (self.namespace, self.localname)
        return self.localname

    def __str__(self):
        return self.clark


def as_qname(name):
    """Accept a QName, a Clark string or a (namespace, localname) pair."""
    if isinstance(name, QName):
        return name
    if isinstance(name, tuple):
        return QName(*name)
    return QName.from_clark(name)


class Node(object):
    """One element of a document."""

    __slots__ = ('qname', 'attributes', 'text', 'children', 'namespaces',
                 '_parent', '__weakref__')

    def __init__(self, qname, attributes=None, text=None, children=None,
                 namespaces=None):
        self.qname = as_qname(qname)
        self.attributes = [(as_qname(k), v) for k, v in (attributes or ())]
        self.text = text
        self.children = []
        self.namespaces = dict(namespaces or {})
        self._parent = None
        for child in children or ():
            self.append(child)

    def __repr__(self):
        return '<Node %s %r>' % (self.qname, dict((str(k), v) for k, v in self.attributes))

    @property
    def parent(self):
        """Parent node (or the owning :class:`Tree` for a root), if attached."""
        ref = self._parent
        return ref() if ref is not None else None

    @property
    def index(self):
        """Position among the parent's children, or ``None`` when detached."""
        parent = self.parent
        if parent is None:
            return None
        for i, child in enumerate(parent.children):
            if child is self:
                return i
        return None

    # -- attributes ---------------------------------------------------------

    def get_attribute(self, name, default=None):
        name = as_qname(name)
        for k, v in self.attributes:
            if k == name:
                return v
        return default

    def has_attribute(self, name):
        name = as_qname(name)
        return any(k == name for k, _v in self.attributes)

    def set_attribute(self, name, value):
        """Overwrite in place, or append when the attribute is new."""
        name = as_qname(name)
        for i, (k, _v) in enumerate(self.attributes):
            if k == name:
                self.attributes[i] = (name, value)
                return
        self.attributes.append((name, value))

    def remove_attribute(self, name):
        """Remove an attribute; return ``False`` when it was not there."""
        name = as_qname(name)
        for i, (k, _v) in enumerate(self.attributes):
            if k == name:
                del self.attributes[i]
                return True
        return False

    # -- children -----------------------------------------------------------

    def append(self, node):
        return self.insert_child(len(self.children), node)

    def insert_child(self, index, node):
        """Attach a detached node at ``index``, clamped to the child count."""
        if node.parent is not None:
            raise ValueError('node is already attached: %r' % node)
        index = max(0, min(index, len(self.children)))
        self.children.insert(index, node)
        node._parent = weakref.ref(self)
        return node

    def remove_child(self, node):
        for i, child in enumerate(self.children):
            if child is node:
                del self.children[i]
                node._parent = None
                return node
        raise ValueError('%r is not a child of %r' % (node, self))

    def detach(self):
        parent = self.parent
        if parent is not None:
            parent.remove_child(self)
        return self

    def iter(self):
        """Depth-first iteration in document order, starting with self."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_ancestors(self):
        node = self.parent
        while isinstance(node, Node):
            yield node
            node = node.parent

    def _shallow_copy(self):
        return Node(self.qname, self.attributes, self.text, namespaces=self.namespaces)

    def copy(self):
        """Deep, detached copy of this subtree."""
        clone = self._shallow_copy()
        stack = [(self, clone)]
        while stack:
            source, target = stack.pop()
            for child in source.children:
                stack.append((child, target.append(child._shallow_copy())))
        return clone


class Tree(object):
    """
    A parsed document: at most one root :class:`Node` plus document info.

    The tree doubles as the virtual document node, so the document level can
    be addressed by paths and edited like any other parent.
    """

    def __init__(self, root=None, docinfo=None):
        self._root = None
        self.docinfo = dict(docinfo or {})
        if root is not None:
            self.insert_child(0, root)

    def __repr__(self):
        return '<Tree root=%r>' % (self._root,)

    def __eq__(self, other):
        if not isinstance(other, Tree):
            return NotImplemented
        return same_structure(self.root, other.root)

    def __ne__(self, other):
        rv = self.__eq__(other)
        return rv if rv is NotImplemented else not rv

    __hash__ = None

    @property
    def root(self):
        return self._root

    @property
    def children(self):
        return [self._root] if self._root is not None else []

    @property
    def parent(self):
        return None

    def insert_child(self, index, node):
        if self._root is not None:
            raise ValueError('document already has a root element')
        if node.parent is not None:
            raise ValueError('node is already attached: %r' % node)
        self._root = node
        node._parent = weakref.ref(self)
        return node

    def remove_child(self, node):
        if node is not self._root or node is None:
            raise ValueError('%r is not the document root' % node)
        self._root = None
        node._parent = None
        return node

    def iter(self):
        if self._root is None:
            return iter(())
        return self._root.iter()

    def copy(self):
        return Tree(self._root.copy() if self._root is not None else None,
                    self.docinfo)


def _attribute_map(node):
    return dict(node.attributes)


def same_structure(a, b):
    """
    Structural equality of two subtrees: qnames, attribute sets, text and
    children in order. Attribute order is not significant.
    """
    if a is None or b is None:
        return a is b
    stack = [(a, b)]
    while stack:
        x, y = stack.pop()
        if x.qname != y.qname or x.text != y.text:
            return False
        if _attribute_map(x) != _attribute_map(y):
            return False
        if len(x.children) != len(y.children):
            return False
        stack.extend(longzip(x.children, y.children))
    return True
