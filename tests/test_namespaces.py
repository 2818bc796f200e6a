import pytest

from sonoplugins.kube import KubeError
from sonoplugins.namespaces import (
    Namespace,
    Namespaces,
    get_namespaces,
    parse_limit_range,
    parse_quota,
)


class FakeClient:
    def __init__(self, objects=None, failing=()):
        self.objects = objects or {}
        self.failing = set(failing)

    def list(self, resource, namespace=None, label_selector=None):
        if resource in self.failing or (resource, namespace) in self.failing:
            raise KubeError(f"cannot list {resource}")
        return list(self.objects.get((resource, namespace), []))


def _meta(name):
    return {"metadata": {"name": name}}


def test_parse_quota_combines_hard_and_used():
    quota = {"status": {"hard": {"cpu": "2", "pods": "10"}, "used": {"cpu": "1"}}}
    assert parse_quota(quota) == {
        "cpu": {"limit": "2", "used": "1"},
        "pods": {"limit": "10"},
    }


def test_parse_quota_used_only():
    quota = {"status": {"used": {"memory": "1Gi"}}}
    assert parse_quota(quota) == {"memory": {"used": "1Gi"}}


def test_parse_quota_empty():
    assert parse_quota({}) == {}


def test_parse_limit_range_leaves_out_empty_lists():
    entry = {"type": "Container", "default": {"cpu": "500m"}, "min": {}}
    result = parse_limit_range(entry)
    assert result == {"type": "Container", "default": {"cpu": "500m"}}


def test_parse_limit_range_all_keys():
    entry = {
        "type": "Pod",
        "default": {"cpu": "1"},
        "defaultRequest": {"cpu": "1"},
        "min": {"cpu": "1"},
        "max": {"cpu": "1"},
        "maxLimitRequestRatio": {"cpu": "1"},
    }
    result = parse_limit_range(entry)
    assert set(result) == {
        "type",
        "default",
        "defaultRequest",
        "min",
        "max",
        "maxLimitRequestRatio",
    }


def test_namespace_item_with_quotas_and_limits():
    quota = {"metadata": {"name": "q1"}, "status": {"hard": {"cpu": "4"}}}
    limit = {
        "metadata": {"name": "l1"},
        "spec": {"limits": [{"type": "Container", "max": {"cpu": "2"}}]},
    }
    ns = Namespace(
        obj={"metadata": {"name": "team"}, "status": {"phase": "Active"}},
        quotas=[quota],
        limits=[limit],
    )
    item = ns.generate_sonobuoy_item()
    assert item.name == "team"
    assert item.status == "Active"
    assert item.details["resourceQuotas"] == {"q1": {"cpu": {"limit": "4"}}}
    assert item.details["limitRanges"] == {"l1": [{"type": "Container", "max": {"cpu": "2"}}]}


def test_namespace_item_without_extras_has_no_details():
    ns = Namespace(obj={"metadata": {"name": "plain"}, "status": {"phase": "Active"}})
    assert ns.generate_sonobuoy_item().to_dict() == {"name": "plain", "status": "Active"}


def test_namespaces_item_lists_every_namespace():
    namespaces = Namespaces([Namespace(obj=_meta("a")), Namespace(obj=_meta("b"))])
    item = namespaces.generate_sonobuoy_item()
    assert item.name == "Namespaces"
    assert item.status == "complete"
    assert [child.name for child in item.items] == ["a", "b"]


def test_get_namespaces_attaches_limits_and_quotas():
    limit = {"metadata": {"name": "l"}, "spec": {"limits": []}}
    quota = {"metadata": {"name": "q"}}
    client = FakeClient(
        {
            ("namespaces", None): [_meta("default"), _meta("other")],
            ("limitranges", "default"): [limit],
            ("resourcequotas", "other"): [quota],
        }
    )
    namespaces = get_namespaces(client)
    assert isinstance(namespaces, Namespaces)
    assert [ns.name for ns in namespaces] == ["default", "other"]
    assert namespaces[0].limits == [limit]
    assert namespaces[0].quotas == []
    assert namespaces[1].quotas == [quota]


def test_get_namespaces_survives_limit_range_error(capsys):
    client = FakeClient(
        {("namespaces", None): [_meta("default")]},
        failing=[("limitranges", "default")],
    )
    namespaces = get_namespaces(client)
    assert len(namespaces) == 1
    assert namespaces[0].limits == []
    assert "could not fetch limit ranges for" in capsys.readouterr().out


def test_get_namespaces_list_error_gives_empty(capsys):
    client = FakeClient(failing=["namespaces"])
    assert get_namespaces(client) == []
    assert "could not fetch namespaces" in capsys.readouterr().out


@pytest.mark.parametrize("phase", ["Active", "Terminating"])
def test_namespace_status_is_phase(phase):
    ns = Namespace(obj={"metadata": {"name": "x"}, "status": {"phase": phase}})
    assert ns.generate_sonobuoy_item().status == phase