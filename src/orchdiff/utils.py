# -*- coding: utf-8 -*-
"""
Funciones utilitarias para orchdiff.
"""
from bisect import bisect_left

from .config import text_type


def split_clark(name):
    """
    Split a Clark-notation name ('{ns}local' or 'local') into (ns, local).
    Always coerce to text; lxml can hand us QName objects or bytes-like values.
    """
    s = text_type(name)
    if s.startswith('{'):
        ns, local = s[1:].split('}', 1)
        return ns or None, local
    return None, s


def localname(name):
    """Nombre local de un nombre en notación Clark."""
    return split_clark(name)[1]


def normalize_text(text, config):
    """
    Normalize text content the way the tree model stores it.
    Whitespace-only text counts as absent when ``config.strip_text`` is set.
    """
    if text is None:
        return None
    if getattr(config, 'strip_text', True):
        text = text.strip()
    return text or None


def longzip(a, b):
    """Like `zip` but yields `None` for missing items."""
    aiter = iter(a)
    biter = iter(b)
    try:
        for item1 in aiter:
            yield item1, next(biter)
    except StopIteration:
        for item1 in aiter:
            yield item1, None
    else:
        for item2 in biter:
            yield None, item2


def longest_increasing_subsequence(values):
    """
    Return the longest strictly increasing subsequence of distinct integers,
    in order.

    Among subsequences of equal length the one ending earliest is kept, so
    the result only depends on the input.

    >>> longest_increasing_subsequence([3, 0, 1, 2])
    [0, 1, 2]
    >>> longest_increasing_subsequence([])
    []
    """
    if not values:
        return []
    # tails[k]: index into values of the smallest tail of a run of length k+1
    tails = []
    tail_values = []
    previous = [None] * len(values)
    for i, v in enumerate(values):
        k = bisect_left(tail_values, v)
        if k > 0:
            previous[i] = tails[k - 1]
        if k == len(tails):
            tails.append(i)
            tail_values.append(v)
        else:
            tails[k] = i
            tail_values[k] = v
    sequence = []
    i = tails[-1]
    while i is not None:
        sequence.append(values[i])
        i = previous[i]
    sequence.reverse()
    return sequence
