# -*- coding: utf-8 -*-
"""
Serialization of trees back to XML.
"""
from lxml import etree

from .errors import DocumentIOError, OrchDiffError
from .parser import open_stream


def _fill(element, node):
    for name, value in node.attributes:
        element.set(name.clark, value)
    if node.text is not None:
        element.text = node.text


def node_to_element(node, parent=None):
    """Convert a :class:`~orchdiff.tree.Node` subtree into an lxml element."""
    nsmap = dict(node.namespaces) or None
    if parent is None:
        root = etree.Element(node.qname.clark, nsmap=nsmap)
    else:
        root = etree.SubElement(parent, node.qname.clark, nsmap=nsmap)
    _fill(root, node)
    stack = [(node, root)]
    while stack:
        node, element = stack.pop()
        for child in node.children:
            sub = etree.SubElement(element, child.qname.clark,
                                   nsmap=dict(child.namespaces) or None)
            _fill(sub, child)
            stack.append((child, sub))
    return root


def _root_element(tree):
    if tree.root is None:
        raise OrchDiffError('cannot serialize a document without a root element')
    return node_to_element(tree.root)


def tree_to_string(tree, pretty_print=True):
    """Render a tree as an XML string (no declaration)."""
    return etree.tostring(_root_element(tree), encoding='unicode',
                          pretty_print=pretty_print)


def write_tree(tree, target, pretty_print=True, encoding='utf-8'):
    """Write a tree to a path or binary file object, with an XML declaration."""
    document = etree.ElementTree(_root_element(tree))
    with open_stream(target, 'wb') as stream:
        try:
            document.write(stream, pretty_print=pretty_print,
                           xml_declaration=True, encoding=encoding)
        except OSError as exc:
            raise DocumentIOError('cannot write document: %s' % exc) from exc
