# -*- coding: utf-8 -*-
"""
Applying patches to a baseline tree.

Merging is best effort: an operation that cannot be applied is recorded as
a :class:`~orchdiff.operations.ConflictRecord` and the merge carries on with
the next one. The baseline is never modified; operations work on a copy.
"""
from .config import DiffConfig
from .differ import diff_trees
from .errors import MergeConflict, SelectorError
from .operations import (ConflictReason, ConflictRecord, Delete, Insert,
                         UpdateAttribute, UpdateText)
from .parser import build_tree
from .patch import read_patch
from .paths import locate
from .serializer import write_tree
from .sinks import NullEventSink
from .tree import Tree


class MergeResult(object):
    """Merged tree plus the conflicts met on the way."""

    def __init__(self, tree, conflicts=None):
        self.tree = tree
        self.conflicts = list(conflicts or ())

    def __repr__(self):
        return '<MergeResult conflicts=%d>' % len(self.conflicts)

    @property
    def ok(self):
        return not self.conflicts

    def unwrap(self):
        """The merged tree; raises :class:`MergeConflict` if anything failed."""
        if self.conflicts:
            raise MergeConflict(self.conflicts, self.tree)
        return self.tree


class _Conflict(Exception):
    """Internal: one operation could not be applied."""

    def __init__(self, reason, detail=''):
        Exception.__init__(self, reason, detail)
        self.reason = reason
        self.detail = detail


class TreeMerger(object):
    """Applies patch operations in order to a copy of a baseline tree."""

    def __init__(self, config=None, events=None):
        self.config = config or DiffConfig()
        self.events = events or NullEventSink()

    def merge(self, baseline, operations):
        tree = baseline.copy()
        conflicts = []
        applied = 0
        self.events.event('merge.started')
        for op in operations:
            try:
                self._apply(tree, op)
            except _Conflict as exc:
                record = ConflictRecord(op, exc.reason, exc.detail)
                conflicts.append(record)
                self.events.event('merge.conflict', reason=exc.reason,
                                  operation=str(op), detail=exc.detail)
                if getattr(self.config, 'fail_on_conflict', False):
                    raise MergeConflict(conflicts, tree)
            else:
                applied += 1
        self.events.event('merge.finished', applied=applied, conflicts=len(conflicts))
        return MergeResult(tree, conflicts)

    def _resolve(self, tree, path):
        try:
            return locate(tree, path)
        except SelectorError as exc:
            if exc.matches > 1:
                raise _Conflict(ConflictReason.AMBIGUOUS_PATH, str(exc))
            if exc.depth is not None and exc.depth == len(path) - 1:
                raise _Conflict(ConflictReason.MISSING_TARGET, str(exc))
            raise _Conflict(ConflictReason.UNRESOLVED_PATH, str(exc))

    def _apply(self, tree, op):
        target = self._resolve(tree, op.path)
        if isinstance(op, Insert):
            self._insert(target, op)
        elif isinstance(op, Delete):
            if isinstance(target, Tree):
                raise _Conflict(ConflictReason.UNRESOLVED_PATH,
                                'cannot delete the document node')
            target.detach()
        elif isinstance(op, UpdateAttribute):
            if isinstance(target, Tree):
                raise _Conflict(ConflictReason.UNRESOLVED_PATH,
                                'the document node has no attributes')
            if op.value is None:
                if not target.remove_attribute(op.name):
                    raise _Conflict(ConflictReason.MISSING_ATTRIBUTE, str(op.name))
            else:
                target.set_attribute(op.name, op.value)
        elif isinstance(op, UpdateText):
            if isinstance(target, Tree):
                raise _Conflict(ConflictReason.UNRESOLVED_PATH,
                                'the document node has no text')
            target.text = op.text
        else:
            raise TypeError('not a patch operation: %r' % (op,))

    def _insert(self, parent, op):
        if isinstance(parent, Tree) and parent.root is not None:
            raise _Conflict(ConflictReason.ROOT_EXISTS)
        count = len(parent.children)
        position = count if op.position is None else op.position
        if position > count:
            self.events.event('merge.warning', operation=str(op),
                              detail='position %d clamped to %d' % (position, count))
            position = count
        parent.insert_child(position, op.content.copy())


def merge_tree(baseline, operations, config=None, events=None):
    """Apply ``operations`` to a copy of ``baseline``; returns a MergeResult."""
    return TreeMerger(config, events).merge(baseline, operations)


def merge_documents(baseline, patch, output=None, config=None, events=None):
    """
    Apply a patch document to a baseline document (paths or binary streams).
    The merged document is written to ``output`` when given, conflicts or not.
    A merge that leaves no root element writes nothing and reports a
    ``merge.warning`` event instead.
    """
    config = config or DiffConfig()
    events = events or NullEventSink()
    tree = build_tree(baseline, config)
    operations = read_patch(patch, config)
    result = merge_tree(tree, operations, config, events)
    if output is None:
        return result
    if result.tree.root is None:
        events.event('merge.warning', detail='merged document has no root element; output not written')
    else:
        write_tree(result.tree, output, getattr(config, 'pretty_print', True))
    return result


def three_way_merge(base, ours, theirs, config=None, events=None):
    """
    Replay the changes from ``base`` to ``theirs`` on top of ``ours``.
    Changes of theirs that touch nodes ours removed or re-keyed come back as
    conflicts; where both sides changed the same value, theirs wins.
    """
    operations = diff_trees(base, theirs, config, events)
    return merge_tree(ours, operations, config, events)
