# -*- coding: utf-8 -*-
"""
Node matching between two versions of a sibling list.

Children are correlated by :func:`node_key`. Walking the target children in
order, each one takes the earliest still-unmatched source child with an equal
key. When no identifying attribute is present the key is the qualified name
alone, so repeated elements fall back to positional correspondence among the
remaining candidates. This is a heuristic, not a minimal tree-edit distance.

Patches have no Move operation, so only an order-preserving subset of the
greedy pairs can be kept: the longest increasing run of source indices. The
other pairs become a deletion plus an insertion.
"""
from collections import defaultdict, deque

from .config import DiffConfig
from .tree import QName
from .utils import longest_increasing_subsequence


def node_key(node, config=None):
    """
    Correlation key ``(qname, attribute, value)``; ``attribute`` is the first
    identifying attribute the node carries, or ``None``.

    >>> from orchdiff.tree import Node
    >>> node_key(Node('field', [('id', '7'), ('name', 'Price')]))
    (QName(namespace=None, localname='field'), QName(namespace=None, localname='id'), '7')
    >>> node_key(Node('group'))[1:]
    (None, None)
    """
    config = config or DiffConfig()
    for attr in config.key_attributes_for(node.qname.localname):
        value = node.get_attribute(attr)
        if value is not None:
            return (node.qname, QName(None, attr), value)
    return (node.qname, None, None)


def greedy_matches(source_children, target_children, config=None):
    """
    For each target child, the index of the earliest still-unmatched source
    child with an equal key (or ``None``).
    """
    candidates = defaultdict(deque)
    for i, node in enumerate(source_children):
        candidates[node_key(node, config)].append(i)
    rv = []
    for node in target_children:
        queue = candidates.get(node_key(node, config))
        rv.append(queue.popleft() if queue else None)
    return rv


def match_children(source_children, target_children, config=None, delete_first=None):
    """
    Align two sibling lists. Returns ``(source_index, target_index)`` pairs in
    document order; ``None`` on one side marks a deletion (no target) or an
    insertion (no source). ``delete_first`` overrides the config option.

    >>> from orchdiff.tree import Node
    >>> a = [Node('f', [('id', '1')]), Node('f', [('id', '2')])]
    >>> b = [Node('f', [('id', '1')]), Node('f', [('id', '3')])]
    >>> match_children(a, b)
    [(0, 0), (1, None), (None, 1)]
    """
    config = config or DiffConfig()
    greedy = greedy_matches(source_children, target_children, config)
    kept = set(longest_increasing_subsequence([s for s in greedy if s is not None]))
    if delete_first is None:
        delete_first = getattr(config, 'delete_first', True)

    pairs = []
    next_source = 0
    pending_targets = []

    def flush_gap(until):
        deletions = [(i, None) for i in range(next_source, until)]
        insertions = [(None, j) for j in pending_targets]
        if delete_first:
            pairs.extend(deletions)
            pairs.extend(insertions)
        else:
            pairs.extend(insertions)
            pairs.extend(deletions)
        del pending_targets[:]

    for j, s in enumerate(greedy):
        if s is None or s not in kept:
            pending_targets.append(j)
            continue
        flush_gap(s)
        pairs.append((s, j))
        next_source = s + 1
    flush_gap(len(source_children))
    return pairs
