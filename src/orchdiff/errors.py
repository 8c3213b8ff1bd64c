# -*- coding: utf-8 -*-
"""
Exception classes for orchdiff.

Parse and I/O errors abort the call that raised them. Selector errors abort
only a scoped diff. Merge conflicts are normally collected on the
:class:`~orchdiff.merger.MergeResult`; :class:`MergeConflict` is raised only
when the caller asks for it.
"""


class OrchDiffError(Exception):
    """Base exception for all orchdiff errors."""


class ParseError(OrchDiffError):
    """A document or patch could not be parsed (malformed input)."""

    def __init__(self, message, line=None, column=None, source=None):
        self.message = message
        self.line = line
        self.column = column
        self.source = source

        location = ''
        if source:
            location = '%s:' % source
        if line is not None:
            location += '%d:' % line
            if column is not None:
                location += '%d:' % column
        if location:
            location = location.rstrip(':') + ' '
        super().__init__(location + message)


class PatchFormatError(ParseError):
    """Well-formed XML that is not a valid patch document."""


class DocumentIOError(OrchDiffError, IOError):
    """Reading or writing a document stream failed."""


class SelectorError(OrchDiffError):
    """
    A path expression is malformed, or did not resolve to exactly one node.

    ``matches`` is the number of nodes the expression resolved to and
    ``depth`` the index of the first step that matched nothing (``None``
    when every step matched something).
    """

    def __init__(self, message, expression=None, matches=0, depth=None):
        self.expression = expression
        self.matches = matches
        self.depth = depth
        if expression is not None:
            message = '%s: %s' % (message, expression)
        super().__init__(message)


class MergeConflict(OrchDiffError):
    """
    Raised when a merge with conflicts is not acceptable to the caller.

    Carries every conflict found so far and the partially merged tree.
    """

    def __init__(self, conflicts, tree=None):
        self.conflicts = list(conflicts)
        self.tree = tree
        if len(self.conflicts) == 1:
            message = 'merge conflict: %s' % self.conflicts[0]
        else:
            message = '%d merge conflicts, first: %s' % (
                len(self.conflicts), self.conflicts[0] if self.conflicts else '-')
        super().__init__(message)
