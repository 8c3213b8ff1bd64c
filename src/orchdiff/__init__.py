# -*- coding: utf-8 -*-
"""
    orchdiff
    ~~~~~~~~

    Structural diff and merge of XML protocol description documents.  A diff
    is an ordered list of edit operations; merging replays it against a
    baseline.  Examples:

    >>> from orchdiff import parse_xml, diff_trees, merge_tree

    >>> a = parse_xml('<fields><field id="1" name="X"/><field id="2" name="Y"/></fields>')
    >>> b = parse_xml('<fields><field id="1" name="X2"/><field id="3" name="Z"/></fields>')
    >>> ops = diff_trees(a, b)
    >>> for op in ops:
    ...     print(op)
    update-attribute /fields/field[@id='1']/@name = 'X2'
    delete /fields/field[@id='2']
    insert <field> into /fields at 1

    >>> merge_tree(a, ops).unwrap() == b
    True
    >>> diff_trees(b, b)
    []

    Operations that no longer apply are reported, not dropped:

    >>> c = parse_xml('<fields><field id="9"/></fields>')
    >>> result = merge_tree(c, ops)
    >>> result.ok, [conflict.reason for conflict in result.conflicts]
    (False, ['missing-target', 'missing-target'])
"""
# API pública
from .config import DiffConfig
from .errors import (OrchDiffError, ParseError, PatchFormatError,
                     DocumentIOError, SelectorError, MergeConflict)
from .tree import QName, Node, Tree, same_structure
from .parser import build_tree, parse_xml, parse_html, tree_from_element
from .serializer import write_tree, tree_to_string
from .paths import Path, parse_path, select_subtree, path_of
from .matcher import node_key, match_children
from .operations import (PatchOperation, Insert, Delete, UpdateAttribute,
                         UpdateText, ConflictReason, ConflictRecord)
from .sinks import (PatchSink, ListPatchSink, EventSink, NullEventSink,
                    LoggingEventSink, RecordingEventSink)
from .patch import XmlPatchWriter, write_patch, read_patch, parse_patch, render_patch
from .differ import TreeDiffer, diff_trees, diff_documents, render_xml_patch
from .merger import (TreeMerger, MergeResult, merge_tree, merge_documents,
                     three_way_merge)

__all__ = [
    'DiffConfig',
    'OrchDiffError', 'ParseError', 'PatchFormatError', 'DocumentIOError',
    'SelectorError', 'MergeConflict',
    'QName', 'Node', 'Tree', 'same_structure',
    'build_tree', 'parse_xml', 'parse_html', 'tree_from_element',
    'write_tree', 'tree_to_string',
    'Path', 'parse_path', 'select_subtree', 'path_of',
    'node_key', 'match_children',
    'PatchOperation', 'Insert', 'Delete', 'UpdateAttribute', 'UpdateText',
    'ConflictReason', 'ConflictRecord',
    'PatchSink', 'ListPatchSink', 'EventSink', 'NullEventSink',
    'LoggingEventSink', 'RecordingEventSink',
    'XmlPatchWriter', 'write_patch', 'read_patch', 'parse_patch', 'render_patch',
    'TreeDiffer', 'diff_trees', 'diff_documents', 'render_xml_patch',
    'TreeMerger', 'MergeResult', 'merge_tree', 'merge_documents',
    'three_way_merge',
]
