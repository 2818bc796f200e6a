import yaml

from sonoplugins.pod import Pod, container_item


def _container(name, **extra):
    return {"name": name, "image": f"{name}:1", **extra}


def test_container_item_running():
    running = {"startedAt": "2020-01-01T00:00:00Z"}
    statuses = [
        {"name": "app", "state": {"running": running}, "imageID": "sha", "ready": True, "restartCount": 2}
    ]
    item = container_item(_container("app", command=["run"]), statuses, False)
    assert item.name == "app"
    assert item.status == "Running"
    assert item.metadata == {"kind": "Container"}
    assert item.details["state"] == {"running": running}
    assert item.details["imageID"] == "sha"
    assert item.details["ready"] is True
    assert item.details["restartCount"] == 2
    assert item.details["command"] == ["run"]
    assert item.details["image"] == "app:1"


def test_running_takes_priority_over_waiting():
    statuses = [{"name": "app", "state": {"waiting": {"reason": "x"}, "running": {}}}]
    item = container_item(_container("app"), statuses, False)
    assert item.status == "Running"


def test_terminated_and_waiting_states():
    terminated = {"exitCode": 1}
    item = container_item(_container("a"), [{"name": "a", "state": {"terminated": terminated}}])
    assert item.status == "Terminated"
    assert item.details["state"] == {"terminated": terminated}
    waiting = container_item(_container("a"), [{"name": "a", "state": {"waiting": {}}}])
    assert waiting.status == "Waiting"


def test_init_container_flag():
    item = container_item(_container("init"), [], True)
    assert item.metadata["init"] == "true"


def test_container_without_matching_status():
    item = container_item(_container("app"), [{"name": "other", "imageID": "sha"}], False)
    assert item.status == ""
    assert "state" not in item.details
    assert "imageID" not in item.details
    assert item.details["command"] is None


def _pod(labels=None):
    metadata = {"name": "web-1", "uid": "u-1"}
    if labels:
        metadata["labels"] = labels
    return Pod(
        {
            "metadata": metadata,
            "spec": {
                "nodeName": "node-a",
                "initContainers": [_container("init-db")],
                "containers": [_container("app")],
                "volumes": [{"name": "data", "emptyDir": {}}],
            },
            "status": {"phase": "Running", "podIP": "10.0.0.5"},
        }
    )


def test_pod_item():
    item = _pod().generate_sonobuoy_item()
    assert item.name == "web-1"
    assert item.status == "Running"
    assert item.metadata == {"kind": "Pod", "uid": "u-1"}
    assert item.details["node"] == "node-a"
    assert item.details["podIP"] == "10.0.0.5"
    assert item.details["volumes"] == [{"name": "data", "emptyDir": {}}]
    assert [child.name for child in item.items] == ["init-db", "app"]
    assert item.items[0].metadata.get("init") == "true"
    assert "init" not in item.items[1].metadata
    assert "labels" not in item.details


def test_pod_labels_and_yaml_round_trip():
    labels = {"app": "web"}
    item = _pod(labels).generate_sonobuoy_item()
    assert item.details["labels"] == labels
    loaded = yaml.safe_load(yaml.safe_dump(item.to_dict()))
    assert loaded["meta"] == {"kind": "Pod", "uid": "u-1"}
    assert loaded["details"]["labels"] == labels
    assert [child["name"] for child in loaded["items"]] == ["init-db", "app"]