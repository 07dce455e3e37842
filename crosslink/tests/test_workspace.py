import petl as etl
import pytest

from crosslink import CrossLinkUserError, Dataset, DetectionConfig, Workspace
from crosslink.models.dataset import RelationshipType


def _customers():
    return Dataset.from_rows(
        "customers.csv",
        [{"id": 1, "name": "Ann"}, {"id": 2, "name": "Ben"}, {"id": 3, "name": "Cy"}],
        id="customers",
    )


def _orders():
    return Dataset.from_rows(
        "orders.csv",
        [
            {"order_id": 10, "customer_id": 1, "amount": 5},
            {"order_id": 11, "customer_id": 1, "amount": 7},
            {"order_id": 12, "customer_id": 2, "amount": 9},
            {"order_id": 13, "customer_id": 3, "amount": 5},
        ],
        id="orders",
    )


def _write_csvs(tmp_path):
    c = tmp_path / "customers.csv"
    c.write_text("id,name\n1,Ann\n2,Ben\n3,Cy\n", encoding="utf-8")
    o = tmp_path / "orders.csv"
    o.write_text(
        "order_id,customer_id,amount\n10,1,5\n11,1,7\n12,2,9\n13,3,5\n",
        encoding="utf-8",
    )
    return c, o


def test_adding_datasets_detects_relationships():
    ws = Workspace()
    ws.add(_customers())
    assert ws.relationships == []

    stored = ws.add(_orders())

    assert stored.id == "orders"
    assert [ds.id for ds in ws.datasets] == ["customers", "orders"]
    (rel,) = ws.relationships
    assert (rel.source_file, rel.source_column) == ("customers", "id")
    assert (rel.target_file, rel.target_column) == ("orders", "customer_id")
    assert rel.type == RelationshipType.ONE_TO_MANY


def test_removing_a_dataset_drops_its_relationships():
    ws = Workspace()
    ws.add(_customers())
    ws.add(_orders())

    removed = ws.remove("orders")

    assert removed.id == "orders"
    assert [ds.id for ds in ws.datasets] == ["customers"]
    assert ws.relationships == []
    assert ws.get("customers").relationships == []


def test_add_rejects_duplicate_ids_and_non_datasets():
    ws = Workspace()
    ws.add(_customers())

    with pytest.raises(CrossLinkUserError) as ex:
        ws.add(_customers())
    assert getattr(ex.value, "code", None) == "E_WORKSPACE_DUPLICATE_ID"

    with pytest.raises(CrossLinkUserError) as ex:
        ws.add({"id": "x"})  # type: ignore[arg-type]
    assert getattr(ex.value, "code", None) == "E_WORKSPACE_ADD"


def test_unknown_id_lists_known_ids():
    ws = Workspace()
    ws.add(_customers())

    with pytest.raises(CrossLinkUserError) as ex:
        ws.remove("nope")
    assert getattr(ex.value, "code", None) == "E_WORKSPACE_UNKNOWN_ID"
    assert "customers" in str(ex.value)


def test_summary_counts_by_type():
    ws = Workspace()
    assert ws.summary()["average_confidence"] == 0.0

    ws.add(_customers())
    ws.add(_orders())

    assert ws.summary() == {
        "datasets": 2,
        "total": 1,
        "by_type": {"one-to-one": 0, "one-to-many": 1, "many-to-many": 0},
        "average_confidence": 1.0,
    }


def test_custom_config_is_used_for_detection():
    ws = Workspace(config=DetectionConfig(accept_confidence=0.99, min_confidence=0.99))
    ws.add(_customers())
    ws.add(Dataset.from_rows("partial.csv", [{"cid": 1}, {"cid": 9}], id="partial"))

    assert ws.relationships == []


def test_load_csv_join_and_export(tmp_path):
    c, o = _write_csvs(tmp_path)
    ws = Workspace()

    customers = ws.load_csv(c)
    ws.load_csv(o, name="orders")

    assert customers.name == "customers.csv"
    assert ws.datasets[1].name == "orders"
    assert len(ws.relationships) == 1

    joined = ws.joined_rows()
    assert len(joined) == 4
    assert joined[0] == {"id": 1, "name": "Ann", "order_id": 10, "customer_id": 1, "amount": 5}

    out = tmp_path / "joined.csv"
    assert ws.export(out) == 4
    table = list(etl.fromcsv(str(out)))
    assert table[0] == ("id", "name", "order_id", "customer_id", "amount")
    assert len(table) == 5

    assert [kind for kind, _ in ws.checkpoints] == ["add", "add", "export"]
    assert ws.checkpoints[-1][1] == {"uri": str(out), "rows": 4}


def test_checkpoints_track_changes():
    ws = Workspace()
    ws.add(_customers())
    ws.add(_orders())
    ws.remove("customers")

    kinds = [kind for kind, _ in ws.checkpoints]
    assert kinds == ["add", "add", "remove"]
    assert ws.checkpoints[1][1] == {"dataset": "orders", "name": "orders.csv", "datasets": 2, "relationships": 1}
    assert ws.checkpoints[2][1]["relationships"] == 0


def test_to_ir_describes_the_workspace():
    ws = Workspace(chaining="single_pass")
    ws.add(_customers())
    ws.add(_orders())

    ir = ws.to_ir()

    assert ir["crosslink"] == 0
    assert ir["chaining"] == "single_pass"
    assert ir["detection"]["sample_size"] == 1000
    assert [d["id"] for d in ir["datasets"]] == ["customers", "orders"]
    assert ir["datasets"][0]["row_count"] == 3
    assert ir["datasets"][0]["relationships"][0]["type"] == "one-to-many"
    assert "rows" not in ir["datasets"][0]


def test_checkpoints_keep_only_the_newest():
    ws = Workspace(max_checkpoints=3)
    ws.add(_customers())
    ws.add(_orders())
    ws.remove("orders")
    ws.add(_orders())

    assert [kind for kind, _ in ws.checkpoints] == ["add", "remove", "add"]
    assert ws.checkpoints[0][1]["dataset"] == "orders"
