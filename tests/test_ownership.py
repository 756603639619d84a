from ddr.docker_ops import ObservedInstance
from ddr.ownership import group_by_owner, owner_of, removal_order


def _inst(i, owner=None, state="running", label="owner"):
    labels = {label: owner} if owner is not None else {"com.example.team": "infra"}
    return ObservedInstance(id=f"id{i}", name=f"web-{i}", labels=labels, state=state)


def test_groups_by_owner_and_separates_unmanaged():
    instances = [_inst(1, "a"), _inst(2, "b"), _inst(3, "a"), _inst(4)]

    by_owner, unmanaged = group_by_owner(instances, "owner")

    assert {k: [i.id for i in v] for k, v in by_owner.items()} == {"a": ["id1", "id3"], "b": ["id2"]}
    assert [i.id for i in unmanaged] == ["id4"]


def test_empty_owner_label_counts_as_unmanaged():
    inst = _inst(1, "")
    assert owner_of(inst, "owner") is None
    by_owner, unmanaged = group_by_owner([inst], "owner")
    assert by_owner == {}
    assert unmanaged == [inst]


def test_custom_label_key():
    inst = _inst(1, "a", label="ddr.owner")
    assert owner_of(inst, "owner") is None
    assert owner_of(inst, "ddr.owner") == "a"


def test_removal_order_prefers_stopped_instances():
    instances = [_inst(1, "a"), _inst(2, "a", state="exited"), _inst(3, "a"), _inst(4, "a", state="created")]
    assert [i.id for i in removal_order(instances)] == ["id2", "id4", "id1", "id3"]
