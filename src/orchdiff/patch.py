# -*- coding: utf-8 -*-
"""
Patch documents.

The format follows RFC 5261 (XML patch operations), the format the Orchestra
repository tools exchange::

    <diff xmlns:fixr="http://fixprotocol.io/2016/fixrepository">
      <replace sel="/fixr:repository/fixr:fields/fixr:field[@id='1']/@name">X2</replace>
      <remove sel="/fixr:repository/fixr:fields/fixr:field[@id='2']"/>
      <add sel="/fixr:repository/fixr:fields" pos="1"><fixr:field id="3" name="Z"/></add>
    </diff>

``pos`` on ``add`` is the child index of the new element (RFC 5261's
``prepend`` is read as 0; no ``pos`` appends). ``@name`` and ``text()``
selectors address attributes and text content.
"""
import io
from contextlib import ExitStack

from lxml import etree

from .config import (DiffConfig, PATCH_ADD, PATCH_REMOVE, PATCH_REPLACE,
                     string_types)
from .errors import DocumentIOError, PatchFormatError, SelectorError
from .operations import Delete, Insert, UpdateAttribute, UpdateText
from .parser import syntax_error, node_from_element, open_stream
from .paths import XML_NAMESPACE, collect_prefixes, format_selector, parse_selector
from .serializer import node_to_element
from .sinks import PatchSink
from .utils import localname


def _declared_nsmap(prefixes):
    return dict((prefix, uri) for uri, prefix in sorted(prefixes.items(), key=lambda x: x[1])
                if uri != XML_NAMESPACE)


def _content_nsmap(node, prefixes):
    rv = {}
    for n in node.iter():
        uris = [n.qname.namespace] + [name.namespace for name, _v in n.attributes]
        for uri in uris:
            if uri and uri != XML_NAMESPACE and uri in prefixes:
                rv[prefixes[uri]] = uri
    return rv


def operation_to_element(operation, prefixes=None):
    """Render one operation as an RFC 5261 element."""
    prefixes = prefixes or {}
    if isinstance(operation, Insert):
        element = etree.Element(PATCH_ADD, nsmap=_content_nsmap(operation.content, prefixes) or None)
        element.set('sel', format_selector(operation.path, None, prefixes))
        if operation.position is not None:
            element.set('pos', str(operation.position))
        node_to_element(operation.content, element)
        return element
    if isinstance(operation, Delete):
        element = etree.Element(PATCH_REMOVE)
        element.set('sel', format_selector(operation.path, None, prefixes))
        return element
    if isinstance(operation, UpdateAttribute):
        target, value = ('attribute', operation.name), operation.value
    elif isinstance(operation, UpdateText):
        target, value = ('text',), operation.text
    else:
        raise TypeError('not a patch operation: %r' % (operation,))
    element = etree.Element(PATCH_REMOVE if value is None else PATCH_REPLACE)
    element.set('sel', format_selector(operation.path, target, prefixes))
    if value is not None:
        element.text = value
    return element


class XmlPatchWriter(PatchSink):
    """
    Streams a patch document to a path or binary file object while the
    differ runs. One operation per line when ``pretty_print`` is set.
    """

    def __init__(self, target, pretty_print=True, config=None):
        self.target = target
        self.config = config or DiffConfig()
        self.pretty_print = pretty_print
        self.prefixes = {}
        self._stack = None
        self._xf = None
        self.count = 0

    def open(self, namespaces=None):
        self.prefixes = dict(namespaces or {})
        self._stack = ExitStack()
        try:
            stream = self._stack.enter_context(open_stream(self.target, 'wb'))
            self._xf = self._stack.enter_context(etree.xmlfile(stream, encoding='utf-8'))
            self._xf.write_declaration()
            self._stack.enter_context(self._xf.element(
                getattr(self.config, 'patch_root_tag', 'diff'),
                nsmap=_declared_nsmap(self.prefixes) or None))
        except OSError as exc:
            self._stack.close()
            raise DocumentIOError('cannot write patch: %s' % exc) from exc

    def emit(self, operation):
        if self._xf is None:
            raise RuntimeError('XmlPatchWriter.emit() before open()')
        if self.pretty_print:
            self._xf.write('\n  ')
        self._xf.write(operation_to_element(operation, self.prefixes))
        self.count += 1

    def close(self):
        if self._stack is None:
            return
        if self.pretty_print and self.count:
            self._xf.write('\n')
        try:
            self._stack.close()
        except OSError as exc:
            raise DocumentIOError('cannot write patch: %s' % exc) from exc
        finally:
            self._stack = None
            self._xf = None


def operation_prefixes(operations, config=None):
    """Prefix map covering every name used by ``operations``."""
    nodes = []
    qnames = []
    for op in operations:
        for step in op.path:
            qnames.append(step.qname)
            qnames.append(step.attribute)
        if isinstance(op, Insert) and op.content is not None:
            nodes.extend(op.content.iter())
        elif isinstance(op, UpdateAttribute):
            qnames.append(op.name)
    return collect_prefixes(nodes, qnames, config)


def write_patch(operations, target, namespaces=None, config=None, pretty_print=True):
    """Write ``operations`` as a patch document to a path or binary stream."""
    operations = list(operations)
    if namespaces is None:
        namespaces = operation_prefixes(operations, config)
    writer = XmlPatchWriter(target, pretty_print=pretty_print, config=config)
    writer.open(namespaces)
    for op in operations:
        writer.emit(op)
    writer.close()


def render_patch(operations, namespaces=None, config=None, pretty_print=True):
    """Render ``operations`` as a patch document string."""
    buf = io.BytesIO()
    write_patch(operations, buf, namespaces, config, pretty_print)
    return buf.getvalue().decode('utf-8')


# -- reading --------------------------------------------------------------------

def _patch_parser():
    # Whitespace is kept: attribute values set by <replace> may be blank.
    return etree.XMLParser(remove_comments=True, remove_pis=True,
                           resolve_entities=False, no_network=True)


def read_patch(source, config=None):
    """Read a patch document from a path or binary file object."""
    name = source if isinstance(source, string_types) else getattr(source, 'name', None)
    with open_stream(source) as stream:
        try:
            document = etree.parse(stream, _patch_parser())
        except etree.XMLSyntaxError as exc:
            raise syntax_error(exc, name) from exc
        except OSError as exc:
            raise DocumentIOError('cannot read patch: %s' % exc) from exc
    return operations_from_element(document.getroot(), config)


def parse_patch(text, config=None):
    """Read a patch document held in memory."""
    if isinstance(text, string_types):
        text = text.encode('utf-8')
    try:
        root = etree.fromstring(text, _patch_parser())
    except etree.XMLSyntaxError as exc:
        raise syntax_error(exc) from exc
    return operations_from_element(root, config)


def _insert_position(element):
    pos = element.get('pos')
    if pos is None:
        return None
    if pos == 'prepend':
        return 0
    if pos.isdigit():
        return int(pos)
    raise PatchFormatError('unsupported pos %r' % pos, line=element.sourceline)


def operations_from_element(root, config=None):
    """Decode the children of a ``<diff>`` element into operations."""
    config = config or DiffConfig()
    root_tag = getattr(config, 'patch_root_tag', 'diff')
    if localname(root.tag) != root_tag:
        raise PatchFormatError('expected <%s> root, found <%s>' % (root_tag, localname(root.tag)),
                               line=root.sourceline)
    operations = []
    for element in root:
        if not isinstance(element.tag, string_types):
            continue
        tag = localname(element.tag)
        line = element.sourceline
        sel = element.get('sel')
        if sel is None:
            raise PatchFormatError('<%s> without sel' % tag, line=line)
        try:
            path, target = parse_selector(sel, element.nsmap)
        except SelectorError as exc:
            raise PatchFormatError(str(exc), line=line) from exc

        if tag == PATCH_ADD:
            type_ = element.get('type')
            if type_ is not None:
                if not type_.startswith('@') or target is not None:
                    raise PatchFormatError('unsupported add type %r' % type_, line=line)
                try:
                    _p, attr = parse_selector('/' + type_, element.nsmap)
                except SelectorError as exc:
                    raise PatchFormatError(str(exc), line=line) from exc
                operations.append(UpdateAttribute(path, attr[1], element.text or ''))
                continue
            if target is not None:
                raise PatchFormatError('add must select an element', line=line)
            position = _insert_position(element)
            contents = [child for child in element if isinstance(child.tag, string_types)]
            if not contents:
                raise PatchFormatError('<add> without element content', line=line)
            for offset, child in enumerate(contents):
                node = node_from_element(child, config, element.nsmap)
                operations.append(Insert(
                    path, None if position is None else position + offset, node))
        elif tag == PATCH_REMOVE:
            if target is None:
                operations.append(Delete(path))
            elif target[0] == 'attribute':
                operations.append(UpdateAttribute(path, target[1], None))
            else:
                operations.append(UpdateText(path, None))
        elif tag == PATCH_REPLACE:
            if target is None:
                raise PatchFormatError('element replace is not supported', line=line)
            if target[0] == 'attribute':
                operations.append(UpdateAttribute(path, target[1], element.text or ''))
            else:
                operations.append(UpdateText(path, element.text or None))
        else:
            raise PatchFormatError('unknown patch operation <%s>' % tag, line=line)
    return operations
