import io

import yaml

from sonoplugins.reports import SonobuoyResultsItem, to_plain, write_sonobuoy_report


class _Gen:
    def __init__(self, item):
        self.item = item

    def generate_sonobuoy_item(self):
        return self.item


def test_to_dict_omits_empty_fields():
    assert SonobuoyResultsItem(name="CNI").to_dict() == {"name": "CNI"}


def test_to_dict_nested():
    child = SonobuoyResultsItem(name="child", status="complete")
    parent = SonobuoyResultsItem(
        name="parent",
        status="complete",
        metadata={"kind": "Pod"},
        details={"error": ValueError("boom")},
        items=[child],
    )
    assert parent.to_dict() == {
        "name": "parent",
        "status": "complete",
        "meta": {"kind": "Pod"},
        "details": {"error": "boom"},
        "items": [{"name": "child", "status": "complete"}],
    }


def test_to_plain_converts_nested_items():
    item = SonobuoyResultsItem(name="x")
    assert to_plain({"a": [item, (1, 2)]}) == {"a": [{"name": "x"}, [1, 2]]}


def test_write_report_round_trip():
    item = SonobuoyResultsItem(
        name="Cluster Inventory",
        status="complete",
        details={"numNodes": 3, "isHA": True},
    )
    stream = io.StringIO()
    write_sonobuoy_report(stream, _Gen(item))
    assert yaml.safe_load(stream.getvalue()) == item.to_dict()


def test_write_report_key_order():
    item = SonobuoyResultsItem(name="n", status="s")
    stream = io.StringIO()
    write_sonobuoy_report(stream, _Gen(item))
    assert stream.getvalue() == "name: n\nstatus: s\n"