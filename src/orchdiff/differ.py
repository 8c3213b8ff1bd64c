# -*- coding: utf-8 -*-
"""
Structural diff of two document trees.

The differ walks matched node pairs depth first and emits patch operations
in target document order. Every path addresses the working tree as it
stands when that operation is applied, so replaying the patch in order
against the source tree rebuilds the target tree.
"""
from collections import Counter
from contextlib import contextmanager

from .config import DiffConfig
from .operations import Delete, Insert, UpdateAttribute, UpdateText
from .matcher import match_children
from .parser import build_tree, parse_xml
from .paths import (Path, collect_prefixes, make_step, path_of, select_subtree,
                    sibling_buckets, step_bucket)
from .patch import XmlPatchWriter, render_patch
from .sinks import ListPatchSink, NullEventSink


class _SiblingCounts(object):
    """
    Bucket counts for one side of the working sibling list (the children
    already in place, or the source children still waiting).
    """

    def __init__(self, config, nodes=()):
        self.config = config
        self.counts = Counter()
        for node in nodes:
            self.add(node)

    def add(self, node):
        self.counts.update(sibling_buckets(node, self.config))

    def discard(self, node):
        self.counts.subtract(sibling_buckets(node, self.config))

    def __getitem__(self, bucket):
        return self.counts[bucket]


class TreeDiffer(object):
    """
    Computes the patch between two trees.

    Operations go to a :class:`~orchdiff.sinks.PatchSink` as they are found
    and are also returned. Progress goes to the ``events`` sink.
    """

    def __init__(self, config=None, events=None):
        self.config = config or DiffConfig()
        self.events = events or NullEventSink()
        self._sink = None
        self._operations = None

    @contextmanager
    def _session(self, sink, namespaces):
        sink = sink if sink is not None else ListPatchSink()
        self._sink = sink
        self._operations = []
        sink.open(namespaces)
        try:
            yield
        finally:
            self._sink = None
            sink.close()

    def _emit(self, operation):
        self._operations.append(operation)
        self._sink.emit(operation)

    def diff(self, source, target, sink=None):
        """Patch turning ``source`` into ``target`` (both :class:`Tree`)."""
        namespaces = collect_prefixes(list(source.iter()) + list(target.iter()),
                                      config=self.config)
        self.events.event('diff.started', scoped=False)
        with self._session(sink, namespaces):
            # Only one root fits under the document node: a replaced root is
            # always removed before its successor goes in.
            self._walk(self._children_steps(Path(), source.children, target.children,
                                            delete_first=True))
            operations = self._operations
        self.events.event('diff.finished', operations=len(operations), **self._summary_of(operations))
        return operations

    def diff_scoped(self, source, source_selector, target, target_selector,
                    namespaces=None, sink=None):
        """
        Patch limited to one selected subtree on each side. The two selected
        nodes are compared as a pair whatever their keys; every emitted path
        lies under the selected source node.
        """
        source_node = select_subtree(source, source_selector, namespaces)
        target_node = select_subtree(target, target_selector, namespaces)
        path = path_of(source_node, self.config)
        prefixes = collect_prefixes(list(source_node.iter()) + list(target_node.iter()) +
                                    list(source_node.iter_ancestors()),
                                    [step.qname for step in path], self.config)
        self.events.event('diff.started', scoped=True, source=source_selector,
                          target=target_selector)
        with self._session(sink, prefixes):
            # Attribute updates on the scope root go last: they could change
            # the step every later path starts with.
            self._walk(self._pair_steps(path, source_node, target_node,
                                        attributes_last=True))
            operations = self._operations
        self.events.event('diff.finished', operations=len(operations), **self._summary_of(operations))
        return operations

    @staticmethod
    def _summary_of(operations):
        kinds = Counter(op.kind for op in operations)
        return dict((k.replace('-', '_'), kinds[k]) for k in sorted(kinds))

    def _walk(self, steps):
        """
        Run ``steps`` (a generator of matched child pairs) depth first with an
        explicit stack, so deep documents do not exhaust the interpreter stack.
        """
        stack = [steps]
        while stack:
            for path, old, new in stack[-1]:
                stack.append(self._pair_steps(path, old, new))
                break
            else:
                stack.pop()

    def _pair_steps(self, path, source, target, attributes_last=False):
        if not attributes_last:
            self._diff_attributes(path, source, target)
            self._diff_text(path, source, target)
        yield from self._children_steps(path, source.children, target.children)
        if attributes_last:
            self._diff_attributes(path, source, target)
            self._diff_text(path, source, target)

    def _ignored(self, name):
        ignored = getattr(self.config, 'ignore_attributes', ())
        return bool(ignored) and (name.clark in ignored or name.localname in ignored)

    def _diff_attributes(self, path, source, target):
        old = dict(source.attributes)
        new = dict(target.attributes)
        for name, value in target.attributes:
            if self._ignored(name):
                continue
            if old.get(name) != value:
                self._emit(UpdateAttribute(path, name, value))
        for name, _value in source.attributes:
            if name not in new and not self._ignored(name):
                self._emit(UpdateAttribute(path, name, None))

    def _diff_text(self, path, source, target):
        if source.text != target.text:
            self._emit(UpdateText(path, target.text))

    def _working_step(self, node, placed, waiting):
        """
        Step for ``node``, the first waiting source child, given the children
        already in place before it.
        """
        bucket = step_bucket(node, self.config)
        return make_step(bucket, placed[bucket] + 1, placed[bucket] + waiting[bucket])

    def _children_steps(self, path, source_children, target_children, delete_first=None):
        """
        Emit the edits of one sibling list; yields each matched pair, with its
        path, for the caller to descend into before the next sibling.
        """
        alignment = match_children(source_children, target_children, self.config,
                                   delete_first)
        placed = _SiblingCounts(self.config)
        waiting = _SiblingCounts(self.config, source_children)
        position = 0
        for si, ti in alignment:
            if ti is None:
                node = source_children[si]
                self._emit(Delete(path.child(self._working_step(node, placed, waiting))))
                waiting.discard(node)
            elif si is None:
                node = target_children[ti]
                self._emit(Insert(path, position, node.copy()))
                placed.add(node)
                position += 1
            else:
                old, new = source_children[si], target_children[ti]
                step = self._working_step(old, placed, waiting)
                yield path.child(step), old, new
                waiting.discard(old)
                placed.add(new)
                position += 1


def diff_trees(source, target, config=None, events=None):
    """Patch operations turning tree ``source`` into tree ``target``."""
    return TreeDiffer(config, events).diff(source, target)


def diff_documents(source, target, output=None, source_selector=None,
                   target_selector=None, namespaces=None, config=None, events=None):
    """
    Diff two XML documents given as paths or binary streams. When ``output``
    is given the patch document is written to it as it is computed. Returns
    the operations.
    """
    config = config or DiffConfig()
    source_tree = build_tree(source, config)
    target_tree = build_tree(target, config)
    sink = None
    if output is not None:
        sink = XmlPatchWriter(output, getattr(config, 'pretty_print', True), config)
    differ = TreeDiffer(config, events)
    if source_selector is not None or target_selector is not None:
        return differ.diff_scoped(source_tree, source_selector or target_selector,
                                  target_tree, target_selector or source_selector,
                                  namespaces, sink)
    return differ.diff(source_tree, target_tree, sink)


def render_xml_patch(old, new, config=None):
    """Diff two XML strings and render the patch document."""
    operations = diff_trees(parse_xml(old, config), parse_xml(new, config), config)
    return render_patch(operations, config=config)
