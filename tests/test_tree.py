from __future__ import annotations

import io
import logging

import pytest
from lxml import etree

from orchdiff import (DiffConfig, DocumentIOError, LoggingEventSink, Node, OrchDiffError,
                      ParseError, QName, Tree, build_tree, diff_trees, merge_tree,
                      parse_html, parse_xml, same_structure, tree_from_element,
                      tree_to_string, write_tree)
from orchdiff.operations import Insert
from orchdiff.paths import Path, Step, CHILD


def _children_names(node) -> list[str]:
    return [str(child.qname) for child in node.children]


def test_build_tree_from_stream_and_path(tmp_path):
    data = b'<?xml version="1.0" encoding="UTF-8"?>\n<a>\n  <b id="1">x</b>\n</a>\n'
    from_stream = build_tree(io.BytesIO(data))
    f = tmp_path / "doc.xml"
    f.write_bytes(data)
    assert build_tree(f) == from_stream
    assert build_tree(str(f)) == from_stream
    assert from_stream.root.children[0].text == "x"
    assert from_stream.root.text is None


def test_malformed_document_raises_parse_error():
    with pytest.raises(ParseError) as excinfo:
        build_tree(io.BytesIO(b"<a>\n<b></a>"))
    assert excinfo.value.line == 2
    assert isinstance(excinfo.value.__cause__, etree.XMLSyntaxError)
    with pytest.raises(ParseError):
        parse_xml("<a><b></a>")


def test_missing_file_raises_document_io_error(tmp_path):
    with pytest.raises(DocumentIOError) as excinfo:
        build_tree(tmp_path / "nope.xml")
    assert isinstance(excinfo.value, IOError)
    assert "nope.xml" in str(excinfo.value)


def test_mixed_content_is_folded_into_text():
    tree = parse_xml("<a>one <b>two</b> three</a>")
    assert tree.root.text == "one  three"
    assert tree.root.children[0].text == "two"


def test_text_stripping_can_be_disabled():
    cfg = DiffConfig(strip_text=False)
    assert parse_xml("<a> x </a>", cfg).root.text == " x "
    assert parse_xml("<a> x </a>").root.text == "x"
    assert parse_xml("<a>   </a>").root.text is None


def test_comments_and_processing_instructions_are_dropped():
    tree = parse_xml("<a><!-- note --><?pi x?><b/></a>")
    assert _children_names(tree.root) == ["b"]


def test_parse_html_fragment():
    tree = parse_html('<p id="x">Hi <b>there</b></p><p>again</p>')
    assert str(tree.root.qname) == "div"
    assert _children_names(tree.root) == ["p", "p"]
    first = tree.root.children[0]
    assert first.get_attribute("id") == "x"
    assert first.text == "Hi"
    assert first.children[0].text == "there"


def test_html_fragments_diff_like_xml():
    a = parse_html("<ul><li id='a'>one</li><li id='b'>two</li></ul>")
    b = parse_html("<ul><li id='b'>two!</li></ul>")
    ops = diff_trees(a, b)
    assert [str(op) for op in ops] == [
        "delete /div/ul/li[@id='a']",
        "update-text /div/ul/li[@id='b']/text() = 'two!'",
    ]
    assert merge_tree(a, ops).unwrap() == b


def test_tree_from_stdlib_element():
    import xml.etree.ElementTree as ET
    tree = tree_from_element(ET.fromstring('<a xmlns="urn:a"><b k="v"/></a>'))
    assert tree.root.qname == QName("urn:a", "a")
    assert tree.root.children[0].get_attribute("k") == "v"


def test_serializer_keeps_prefixes():
    text = '<f:a xmlns:f="urn:f"><f:b f:x="1"/><f:c>t</f:c></f:a>'
    assert tree_to_string(parse_xml(text), pretty_print=False) == text


def test_write_tree_round_trip(tmp_path):
    tree = parse_xml('<f:a xmlns:f="urn:f"><f:b id="1">x</f:b></f:a>')
    out = tmp_path / "out.xml"
    write_tree(tree, out)
    assert out.read_bytes().startswith(b"<?xml")
    assert build_tree(out) == tree


def test_write_empty_tree_fails():
    with pytest.raises(OrchDiffError):
        write_tree(Tree(), io.BytesIO())


def test_node_editing():
    parent = Node("r")
    a = parent.append(Node("a"))
    c = parent.append(Node("c"))
    b = parent.insert_child(1, Node("b"))
    z = parent.insert_child(99, Node("z"))
    assert _children_names(parent) == ["a", "b", "c", "z"]
    assert b.parent is parent and b.index == 1
    assert z.index == 3
    with pytest.raises(ValueError):
        parent.append(a)
    c.detach()
    assert c.parent is None
    assert _children_names(parent) == ["a", "b", "z"]


def test_node_attributes():
    node = Node("field", [("id", "1")])
    node.set_attribute("name", "X")
    node.set_attribute("id", "2")
    assert [(str(k), v) for k, v in node.attributes] == [("id", "2"), ("name", "X")]
    assert node.remove_attribute("name")
    assert not node.remove_attribute("name")
    assert node.get_attribute("{urn:x}id") is None


def test_copy_is_deep_and_detached():
    tree = parse_xml("<r><a id='1'><b/></a></r>")
    a = tree.root.children[0]
    clone = a.copy()
    assert clone.parent is None
    assert same_structure(clone, a)
    clone.children[0].set_attribute("x", "1")
    assert not same_structure(clone, a)


def test_attribute_order_is_not_significant():
    assert parse_xml("<a x='1' y='2'/>") == parse_xml("<a y='2' x='1'/>")
    assert parse_xml("<a x='1'/>") != parse_xml("<a x='2'/>")


def test_tree_holds_one_root():
    tree = parse_xml("<a/>")
    with pytest.raises(ValueError):
        tree.insert_child(0, Node("b"))
    result = merge_tree(tree, [Insert(Path(), 0, Node("b"))])
    assert [c.reason for c in result.conflicts] == ["root-exists"]


def test_merge_clamps_insert_position(caplog):
    tree = parse_xml("<r><a/></r>")
    op = Insert(Path([Step(CHILD, QName(None, "r"))]), 5, Node("b"))
    with caplog.at_level(logging.WARNING, logger="orchdiff"):
        result = merge_tree(tree, [op], events=LoggingEventSink())
    assert result.ok
    assert _children_names(result.tree.root) == ["a", "b"]
    assert "merge.warning" in caplog.text


def test_conflicts_are_logged_at_warning(caplog):
    tree = parse_xml("<r/>")
    op = Insert(Path([Step(CHILD, QName(None, "missing"))]), 0, Node("b"))
    with caplog.at_level(logging.WARNING, logger="orchdiff"):
        result = merge_tree(tree, [op], events=LoggingEventSink())
    assert [c.reason for c in result.conflicts] == ["missing-target"]
    assert any(r.levelno == logging.WARNING and "merge.conflict" in r.getMessage()
               for r in caplog.records)
