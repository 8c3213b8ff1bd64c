# -*- coding: utf-8 -*-
"""
Funciones de parsing para orchdiff.

Documents are read with lxml (XML) or html5lib (HTML fragments) and turned
into :class:`~orchdiff.tree.Tree` objects.
"""
import logging
import os
from contextlib import contextmanager

import html5lib
from lxml import etree

from .config import DiffConfig, string_types
from .errors import DocumentIOError, ParseError
from .tree import Node, QName, Tree
from .utils import normalize_text

logger = logging.getLogger(__name__)


def _xml_parser(encoding=None):
    return etree.XMLParser(
        remove_blank_text=True,
        remove_comments=True,
        remove_pis=True,
        resolve_entities=False,
        no_network=True,
        encoding=encoding,
    )


def _source_name(source):
    if isinstance(source, string_types + (bytes,)) or hasattr(source, '__fspath__'):
        return os.fsdecode(source)
    return getattr(source, 'name', None)


@contextmanager
def open_stream(source, mode='rb'):
    """
    Yield a file object for ``source``. Paths are opened (and closed on every
    exit path); file objects are passed through and stay the caller's.
    """
    if hasattr(source, 'read') or hasattr(source, 'write'):
        yield source
        return
    try:
        stream = open(source, mode)
    except OSError as exc:
        raise DocumentIOError('cannot open %s: %s' % (_source_name(source), exc)) from exc
    with stream:
        yield stream


def syntax_error(exc, source=None):
    line, column = getattr(exc, 'position', (None, None))
    message = getattr(exc, 'msg', None) or str(exc)
    return ParseError(message, line=line or None, column=column or None, source=source)


def build_tree(source, config=None):
    """
    Parse an XML document from a path or a binary file object.

    Raises :class:`ParseError` on malformed input and
    :class:`DocumentIOError` when the stream cannot be read.
    """
    name = _source_name(source)
    with open_stream(source) as stream:
        try:
            document = etree.parse(stream, _xml_parser())
        except etree.XMLSyntaxError as exc:
            raise syntax_error(exc, name) from exc
        except OSError as exc:
            raise DocumentIOError('cannot read %s: %s' % (name or 'stream', exc)) from exc
    tree = tree_from_element(document.getroot(), config, docinfo=document.docinfo)
    logger.debug('parsed %s', name or 'stream')
    return tree


def parse_xml(text, config=None):
    """
    Parse an XML document held in memory (``str`` or ``bytes``).

    >>> parse_xml('<fields><field id="1"/></fields>').root.children
    [<Node field {'id': '1'}>]
    """
    try:
        if isinstance(text, bytes):
            root = etree.fromstring(text, _xml_parser())
        else:
            root = etree.fromstring(text.encode('utf-8'), _xml_parser('utf-8'))
    except etree.XMLSyntaxError as exc:
        raise syntax_error(exc) from exc
    return tree_from_element(root, config, docinfo=root.getroottree().docinfo)


def parse_html(html, wrapper_element='div', config=None):
    """Parse an HTML fragment into a tree rooted at ``wrapper_element``."""
    builder = html5lib.getTreeBuilder('etree')
    parser = html5lib.HTMLParser(tree=builder, namespaceHTMLElements=False)
    fragment = parser.parseFragment(html)
    fragment.tag = wrapper_element
    for err in parser.errors:
        logger.debug('html5lib: %s', err)
    return tree_from_element(fragment, config)


def tree_from_element(element, config=None, docinfo=None):
    """Build a :class:`Tree` from an lxml or ElementTree element."""
    config = config or DiffConfig()
    info = {}
    if docinfo is not None:
        info['encoding'] = getattr(docinfo, 'encoding', None)
        info['xml_version'] = getattr(docinfo, 'xml_version', None)
    return Tree(node_from_element(element, config), info)


def _element_nsmap(element):
    return dict(getattr(element, 'nsmap', None) or {})


def _node_for(element, config, inherited_nsmap):
    nsmap = _element_nsmap(element)
    declared = dict((p, uri) for p, uri in nsmap.items()
                    if inherited_nsmap.get(p) != uri)
    # Mixed content is folded: element text plus the tails of its children.
    segments = [element.text or '']
    segments.extend(child.tail or '' for child in element)
    return Node(QName.from_clark(element.tag),
                [(QName.from_clark(k), v) for k, v in element.attrib.items()],
                normalize_text(''.join(segments), config),
                namespaces=declared)


def node_from_element(element, config, inherited_nsmap=None):
    """Convert one element (and its subtree) into a detached :class:`Node`."""
    root = _node_for(element, config, inherited_nsmap or {})
    stack = [(element, root)]
    while stack:
        element, node = stack.pop()
        nsmap = _element_nsmap(element)
        for child in element:
            if isinstance(child.tag, string_types):
                stack.append((child, node.append(_node_for(child, config, nsmap))))
    return root
