from __future__ import annotations

import io

import pytest
from lxml import etree

from orchdiff import (Delete, Insert, ParseError, PatchFormatError, QName, RecordingEventSink,
                      UpdateAttribute,
                      UpdateText, diff_documents, diff_trees, merge_documents, merge_tree,
                      parse_patch, parse_xml, read_patch, render_patch, render_xml_patch,
                      tree_to_string, write_patch)
from orchdiff.operations import operations_equal
from orchdiff.parser import build_tree

OLD = '<fields><field id="1" name="X"/><field id="2" name="Y"/></fields>'
NEW = '<fields><field id="1" name="X2"/><field id="3" name="Z"/></fields>'

NS_OLD = ('<f:repo xmlns:f="urn:f"><f:fields><f:field id="1" name="X"/></f:fields>'
          '<f:codeSets/></f:repo>')
NS_NEW = ('<f:repo xmlns:f="urn:f"><f:fields><f:field id="1" name="X"><f:doc>d</f:doc></f:field>'
          '<f:field id="2" name="Y"/></f:fields></f:repo>')


def _patch_root(text: str):
    return etree.fromstring(text.encode("utf-8"))


def test_patch_document_layout():
    text = render_xml_patch(OLD, NEW)
    root = _patch_root(text)
    assert root.tag == "diff"
    assert [(el.tag, el.get("sel"), el.get("pos")) for el in root] == [
        ("replace", "/fields/field[@id='1']/@name", None),
        ("remove", "/fields/field[@id='2']", None),
        ("add", "/fields", "1"),
    ]
    assert root[0].text == "X2"
    assert root[2][0].tag == "field"
    assert root[2][0].get("id") == "3"


def test_patch_text_round_trip():
    a, b = parse_xml(OLD), parse_xml(NEW)
    ops = diff_trees(a, b)
    parsed = parse_patch(render_patch(ops))
    assert operations_equal(ops, parsed)
    assert merge_tree(a, parsed).unwrap() == b


def test_patch_round_trip_keeps_namespaces():
    a, b = parse_xml(NS_OLD), parse_xml(NS_NEW)
    ops = diff_trees(a, b)
    text = render_patch(ops, {"urn:f": "f"})
    root = _patch_root(text)
    assert root.nsmap == {"f": "urn:f"}
    assert all(el.get("sel").startswith("/f:repo") for el in root)
    assert merge_tree(a, parse_patch(text)).unwrap() == b


def test_default_namespace_gets_generated_prefix():
    old = '<repo xmlns="urn:d"><a id="1"/></repo>'
    new = '<repo xmlns="urn:d"><a id="1" v="2"/></repo>'
    text = render_xml_patch(old, new)
    root = _patch_root(text)
    assert root.nsmap == {"ns0": "urn:d"}
    assert root[0].get("sel") == "/ns0:repo/ns0:a[@id='1']/@v"
    a = parse_xml(old)
    assert merge_tree(a, parse_patch(text)).unwrap() == parse_xml(new)


def test_read_rfc5261_variants():
    ops = parse_patch("""\
<diff xmlns:f="urn:f">
  <add sel="/f:doc" pos="prepend"><f:item id="0"/></add>
  <add sel="/f:doc"><f:item id="9"/><f:item id="10"/></add>
  <add sel="/f:doc/f:item[@id='1']" type="@color">red</add>
  <replace sel="/f:doc/f:item[@id='1']/text()">hello</replace>
  <remove sel="/f:doc/f:item[@id='1']/@old"/>
  <remove sel="/f:doc/f:item[@id='1']/text()"/>
  <remove sel="/f:doc/f:item[@id='2']"/>
</diff>
""")
    assert [type(op) for op in ops] == [Insert, Insert, Insert, UpdateAttribute,
                                        UpdateText, UpdateAttribute, UpdateText, Delete]
    assert [op.position for op in ops[:3]] == [0, None, None]
    assert ops[0].content.qname == QName("urn:f", "item")
    assert [op.content.get_attribute("id") for op in ops[1:3]] == ["9", "10"]
    assert (ops[3].name, ops[3].value) == (QName(None, "color"), "red")
    assert ops[4].text == "hello"
    assert ops[5].is_removal
    assert ops[6].text is None

    base = parse_xml('<f:doc xmlns:f="urn:f"><f:item id="1" old="y">bye</f:item><f:item id="2"/></f:doc>')
    merged = merge_tree(base, ops).unwrap()
    assert tree_to_string(merged, pretty_print=False) == (
        '<f:doc xmlns:f="urn:f"><f:item id="0"/><f:item id="1" color="red"/>'
        '<f:item id="9"/><f:item id="10"/></f:doc>')


@pytest.mark.parametrize("text", [
    "<diff><move sel='/a'/></diff>",
    "<diff><remove/></diff>",
    "<diff><replace sel='/a'>x</replace></diff>",
    "<diff><add sel='/a'/></diff>",
    "<diff><add sel='/a/@b'><x/></add></diff>",
    "<diff><add sel='/a' pos='after'><x/></add></diff>",
    "<diff><remove sel='/p:a'/></diff>",
    "<patch/>",
])
def test_invalid_patch_documents(text):
    with pytest.raises(PatchFormatError):
        parse_patch(text)


def test_malformed_patch_is_a_parse_error():
    with pytest.raises(ParseError) as excinfo:
        parse_patch("<diff>\n<add sel='/a'>\n</diff>")
    assert excinfo.value.line is not None
    assert not isinstance(excinfo.value, PatchFormatError)


def test_write_patch_to_stream_and_read_back():
    ops = diff_trees(parse_xml(OLD), parse_xml(NEW))
    buf = io.BytesIO()
    write_patch(ops, buf, pretty_print=False)
    assert buf.getvalue().startswith(b"<?xml")
    buf.seek(0)
    assert operations_equal(read_patch(buf), ops)


def test_values_with_quotes_survive():
    a = parse_xml("<r><a id=\"it's\" note='x'/></r>")
    b = parse_xml("<r><a id=\"it's\" note='say &quot;hi&quot; it&apos;s'/></r>")
    ops = parse_patch(render_patch(diff_trees(a, b)))
    assert merge_tree(a, ops).unwrap() == b


def test_documents_through_files(tmp_path):
    old, new = tmp_path / "old.xml", tmp_path / "new.xml"
    old.write_text(NS_OLD, encoding="utf-8")
    new.write_text(NS_NEW, encoding="utf-8")
    patch, merged = tmp_path / "patch.xml", tmp_path / "merged.xml"

    ops = diff_documents(str(old), str(new), output=str(patch))
    assert ops
    assert read_patch(str(patch)) == ops

    result = merge_documents(old, patch, output=merged)
    assert result.ok
    assert build_tree(merged) == build_tree(new)


def test_scoped_document_diff(tmp_path):
    old = tmp_path / "old.xml"
    new = tmp_path / "new.xml"
    old.write_text(NS_OLD, encoding="utf-8")
    new.write_text(NS_NEW, encoding="utf-8")
    ops = diff_documents(old, new, source_selector="/f:repo/f:fields")
    assert ops
    assert all(str(op.path).startswith("/{urn:f}repo/{urn:f}fields") for op in ops)
    assert not any(isinstance(op, Delete) and "codeSets" in str(op) for op in ops)


def test_non_ascii_element_names_round_trip():
    a = parse_xml("<r><élément id='1'/><b/></r>")
    b = parse_xml("<r><b/></r>")
    ops = diff_trees(a, b)
    text = render_patch(ops)
    assert _patch_root(text)[0].get("sel") == "/r/élément[@id='1']"
    assert merge_tree(a, parse_patch(text)).unwrap() == b


def test_merge_without_root_writes_nothing():
    events = RecordingEventSink()
    out = io.BytesIO()
    result = merge_documents(io.BytesIO(b"<a/>"), io.BytesIO(b"<diff><remove sel='/a'/></diff>"),
                             output=out, events=events)
    assert result.ok
    assert result.tree.root is None
    assert out.getvalue() == b""
    assert "merge.warning" in events.names()
