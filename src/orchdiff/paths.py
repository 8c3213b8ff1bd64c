# -*- coding: utf-8 -*-
"""
Paths and selectors.

A path addresses one node from the document node, as a sequence of steps.
Its text form is a small XPath 1.0 subset::

    /fixr:repository/fixr:fields/fixr:field[@id='1']
    /fixRepository/fix[@version='FIX.4.2']/fields
    //fields/field[2]/@name
    /a/b/text()

Supported per step: a name (``prefix:local``, ``local``, Clark notation
``{uri}local`` or ``*``), an optional ``[@attr='value']`` or ``[@attr]``
predicate and an optional ``[n]`` position counted among the candidates
that passed the attribute predicate. ``//`` selects descendants. A trailing
``/@name`` or ``/text()`` addresses an attribute or the text content. Quotes
inside literals are escaped by doubling them, as in XPath 2.0.
"""
import re
from collections import namedtuple

from .config import DiffConfig, TEXT_SELECTOR
from .errors import SelectorError
from .matcher import node_key
from .tree import Node, QName

CHILD = 'child'
DESCENDANT = 'descendant'

XML_NAMESPACE = 'http://www.w3.org/XML/1998/namespace'

_token_re = re.compile(r"""
    (?P<dslash>//)
  | (?P<slash>/)
  | (?P<lbr>\[)
  | (?P<rbr>\])
  | (?P<at>@)
  | (?P<eq>=)
  | (?P<text>text\(\))
  | (?P<num>\d+)
  | (?P<str>'(?:[^']|'')*'|"(?:[^"]|"")*")
  | (?P<name>\*|\{[^}]*\}[^\W\d][\w.\-]*|[^\W\d][\w.\-]*(?::[^\W\d][\w.\-]*)?)
  | (?P<ws>\s+)
""", re.X | re.U)


class Step(namedtuple('Step', ['axis', 'qname', 'attribute', 'value', 'position'])):
    """
    One location step. ``qname`` is ``None`` for the ``*`` wildcard;
    ``attribute`` with ``value=None`` tests for presence only.
    """
    __slots__ = ()

    def __new__(cls, axis, qname, attribute=None, value=None, position=None):
        return super().__new__(cls, axis, qname, attribute, value, position)

    def format(self, prefixes=None):
        rv = (axis_separator(self.axis) + format_name(self.qname, prefixes))
        if self.attribute is not None:
            attr = format_name(self.attribute, prefixes)
            if self.value is None:
                rv += '[@%s]' % attr
            else:
                rv += '[@%s=%s]' % (attr, quote_literal(self.value))
        if self.position is not None:
            rv += '[%d]' % self.position
        return rv

    def __str__(self):
        return self.format()


class Path(tuple):
    """Sequence of :class:`Step` objects, starting at the document node."""
    __slots__ = ()

    def __new__(cls, steps=()):
        return super().__new__(cls, steps)

    def __add__(self, other):
        return Path(tuple(self) + tuple(other))

    def child(self, step):
        return Path(tuple(self) + (step,))

    @property
    def parent(self):
        return Path(self[:-1])

    def format(self, prefixes=None):
        if not self:
            return '/'
        return ''.join(step.format(prefixes) for step in self)

    def __str__(self):
        return self.format()

    def __repr__(self):
        return 'Path(%r)' % self.format()

    def startswith(self, other):
        return tuple(self[:len(other)]) == tuple(other)


def axis_separator(axis):
    return '//' if axis == DESCENDANT else '/'


def quote_literal(value):
    """
    >>> print(quote_literal("it's"))
    "it's"
    >>> print(quote_literal('say "it\\'s"'))
    'say "it''s"'
    """
    if "'" not in value:
        return "'%s'" % value
    if '"' not in value:
        return '"%s"' % value
    return "'%s'" % value.replace("'", "''")


def _unquote(token):
    quote = token[0]
    return token[1:-1].replace(quote * 2, quote)


def format_name(qname, prefixes=None):
    """Render a name with the prefix mapped to its namespace (uri -> prefix)."""
    if qname is None:
        return '*'
    if not qname.namespace:
        return qname.localname
    if qname.namespace == XML_NAMESPACE:
        return 'xml:%s' % qname.localname
    if prefixes and qname.namespace in prefixes:
        return '%s:%s' % (prefixes[qname.namespace], qname.localname)
    return qname.clark


def _parse_name(token, namespaces, expression, attribute=False):
    if token == '*':
        return None
    if token.startswith('{'):
        return QName.from_clark(token)
    if ':' in token:
        prefix, local = token.split(':', 1)
        if prefix == 'xml':
            return QName(XML_NAMESPACE, local)
        uri = (namespaces or {}).get(prefix)
        if uri is None:
            raise SelectorError('undeclared namespace prefix %r' % prefix, expression)
        return QName(uri, local)
    # Unprefixed element names take the default namespace, when one is given.
    default = None if attribute else (namespaces or {}).get(None)
    return QName(default, token)


def _tokenize(expression):
    pos = 0
    tokens = []
    while pos < len(expression):
        match = _token_re.match(expression, pos)
        if match is None:
            raise SelectorError('unexpected character at offset %d' % pos, expression)
        pos = match.end()
        if match.lastgroup != 'ws':
            tokens.append((match.lastgroup, match.group()))
    return tokens


def parse_selector(expression, namespaces=None):
    """
    Parse a path expression. Returns ``(path, target)`` where ``target`` is
    ``None`` for an element, ``('attribute', qname)`` or ``('text',)``.

    ``namespaces`` maps prefixes to URIs; a ``None`` key is the default
    namespace for unprefixed element names.
    """
    tokens = _tokenize(expression)
    if not tokens or tokens[0][0] not in ('slash', 'dslash'):
        raise SelectorError('path must be absolute', expression)
    if tokens == [('slash', '/')]:
        return Path(), None

    steps = []
    target = None
    i = 0
    n = len(tokens)

    def expect(kind):
        if i >= n or tokens[i][0] != kind:
            raise SelectorError('expected %s' % kind, expression)
        return tokens[i][1]

    while i < n:
        if target is not None:
            raise SelectorError('attribute or text() must be the last step', expression)
        kind, value = tokens[i]
        if kind not in ('slash', 'dslash'):
            raise SelectorError('expected "/" before %r' % value, expression)
        axis = DESCENDANT if kind == 'dslash' else CHILD
        i += 1
        if i >= n:
            raise SelectorError('path ends with a separator', expression)
        kind, value = tokens[i]
        if kind == 'at':
            i += 1
            name = _parse_name(expect('name'), namespaces, expression, attribute=True)
            if name is None or axis != CHILD:
                raise SelectorError('unsupported attribute step', expression)
            target = ('attribute', name)
            i += 1
            continue
        if kind == 'text':
            if axis != CHILD:
                raise SelectorError('unsupported text() step', expression)
            target = ('text',)
            i += 1
            continue
        qname = _parse_name(expect('name'), namespaces, expression)
        i += 1
        attribute = attr_value = position = None
        while i < n and tokens[i][0] == 'lbr':
            i += 1
            if i < n and tokens[i][0] == 'num':
                if position is not None:
                    raise SelectorError('more than one position predicate', expression)
                position = int(tokens[i][1])
                if position < 1:
                    raise SelectorError('positions start at 1', expression)
                i += 1
            else:
                expect('at')
                if attribute is not None or position is not None:
                    raise SelectorError('unsupported predicate combination', expression)
                i += 1
                attribute = _parse_name(expect('name'), namespaces, expression, attribute=True)
                i += 1
                if i < n and tokens[i][0] == 'eq':
                    i += 1
                    attr_value = _unquote(expect('str'))
                    i += 1
            expect('rbr')
            i += 1
        steps.append(Step(axis, qname, attribute, attr_value, position))
    return Path(steps), target


def parse_path(expression, namespaces=None):
    """Parse an expression that must address an element."""
    path, target = parse_selector(expression, namespaces)
    if target is not None:
        raise SelectorError('selector must address an element', expression)
    return path


def format_selector(path, target=None, prefixes=None):
    """Inverse of :func:`parse_selector`."""
    rv = path.format(prefixes) if path else ''
    if target is None:
        return rv or '/'
    if target[0] == 'attribute':
        return '%s/@%s' % (rv, format_name(target[1], prefixes))
    return '%s/%s' % (rv, TEXT_SELECTOR)


# -- resolution ---------------------------------------------------------------

def _children_matching(parent, step):
    candidates = [c for c in parent.children
                  if step.qname is None or c.qname == step.qname]
    if step.attribute is not None:
        if step.value is None:
            candidates = [c for c in candidates if c.has_attribute(step.attribute)]
        else:
            candidates = [c for c in candidates
                          if c.get_attribute(step.attribute) == step.value]
    if step.position is not None:
        candidates = candidates[step.position - 1:step.position]
    return candidates


def _descendants_or_self(nodes):
    seen = set()
    rv = []
    for node in nodes:
        stack = [node]
        while stack:
            current = stack.pop()
            if id(current) in seen:
                continue
            seen.add(id(current))
            rv.append(current)
            stack.extend(reversed(current.children))
    return rv


def evaluate(context, path):
    """
    Evaluate ``path`` from ``context`` (a Tree or Node). Returns
    ``(nodes, depth)``; ``depth`` is the index of the first step that matched
    nothing, or ``None``.
    """
    nodes = [context]
    for depth, step in enumerate(path):
        parents = _descendants_or_self(nodes) if step.axis == DESCENDANT else nodes
        nodes = [c for p in parents for c in _children_matching(p, step)]
        if not nodes:
            return [], depth
    return nodes, None


def locate(tree, path, expression=None):
    """
    Resolve ``path`` to exactly one node (the tree itself for the empty path).
    Raises :class:`SelectorError` otherwise.
    """
    nodes, depth = evaluate(tree, path)
    if len(nodes) == 1:
        return nodes[0]
    expression = expression or path.format()
    if not nodes:
        raise SelectorError('no node matches', expression, matches=0, depth=depth)
    raise SelectorError('%d nodes match' % len(nodes), expression, matches=len(nodes))


def select_subtree(tree, expression, namespaces=None):
    """
    Resolve a selector expression to exactly one element of ``tree``.

    Prefixes come from ``namespaces``, or from the root element's
    declarations when it is omitted.
    """
    if namespaces is None and tree.root is not None:
        namespaces = tree.root.namespaces
    path = parse_path(expression, namespaces)
    node = locate(tree, path, expression)
    if not isinstance(node, Node):
        raise SelectorError('selector must address an element', expression)
    return node


# -- canonical paths ----------------------------------------------------------

def sibling_buckets(node, config):
    """
    Buckets a node is counted in when resolving steps among its siblings:
    its qname, plus one bucket per identifying attribute it carries.
    """
    rv = [(node.qname,)]
    for attr in config.key_attributes_for(node.qname.localname):
        value = node.get_attribute(attr)
        if value is not None:
            rv.append((node.qname, QName(None, attr), value))
    return rv


def step_bucket(node, config):
    qname, attribute, value = node_key(node, config)
    if attribute is None:
        return (qname,)
    return (qname, attribute, value)


def make_step(bucket, ordinal, total):
    """Build a child step from a bucket, adding ``[n]`` only when needed."""
    position = ordinal if total > 1 else None
    if len(bucket) == 1:
        return Step(CHILD, bucket[0], position=position)
    return Step(CHILD, bucket[0], bucket[1], bucket[2], position)


def canonical_step(node, siblings, config=None):
    """The step that addresses ``node`` uniquely within ``siblings``."""
    config = config or DiffConfig()
    bucket = step_bucket(node, config)
    same = [s for s in siblings if bucket in sibling_buckets(s, config)]
    ordinal = 1
    for i, s in enumerate(same):
        if s is node:
            ordinal = i + 1
            break
    return make_step(bucket, ordinal, len(same))


def path_of(node, config=None):
    """Canonical path of a node attached to a tree."""
    steps = []
    while isinstance(node, Node):
        parent = node.parent
        siblings = parent.children if parent is not None else [node]
        steps.append(canonical_step(node, siblings, config))
        node = parent
    steps.reverse()
    return Path(steps)


# -- prefixes -----------------------------------------------------------------

def collect_prefixes(nodes=(), qnames=(), config=None):
    """
    Map namespace URIs to prefixes for rendering paths. Prefixes declared in
    ``nodes`` are reused (first declaration wins); namespaces that are only
    used as default or not declared at all get generated ones.
    """
    config = config or DiffConfig()
    prefixes = {}
    taken = set(['xml'])
    used = []
    for node in nodes:
        for prefix, uri in node.namespaces.items():
            if prefix and uri and uri not in prefixes and prefix not in taken:
                prefixes[uri] = prefix
                taken.add(prefix)
            used.append(uri)
        used.append(node.qname.namespace)
        used.extend(name.namespace for name, _v in node.attributes)
    used.extend(q.namespace for q in qnames if q is not None)

    stem = getattr(config, 'generated_prefix', 'ns')
    counter = 0
    for uri in used:
        if not uri or uri in prefixes or uri == XML_NAMESPACE:
            continue
        while '%s%d' % (stem, counter) in taken:
            counter += 1
        prefix = '%s%d' % (stem, counter)
        prefixes[uri] = prefix
        taken.add(prefix)
    return prefixes
