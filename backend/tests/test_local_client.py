import json

import pytest

from clients.local import DEMO_PRODUCTS, LocalDataClient, to_int
from conftest import FIXED_NOW, fixed_clock
from utils.errors import ValidationError

FIXED_MS = int(FIXED_NOW.timestamp() * 1000)


def test_first_run_seeds_demo_products(local_client):
    data = local_client.read_all()

    assert data["products"] == DEMO_PRODUCTS
    assert data["transactions"] == []
    assert data["dailyOutbound"] == []


def test_existing_document_is_not_reseeded(kv_store):
    first = LocalDataClient(kv_store, clock=fixed_clock)
    first.write_all({"products": [], "transactions": [], "dailyOutbound": []})

    second = LocalDataClient(kv_store, clock=fixed_clock)

    assert second.read_all()["products"] == []


def test_document_lives_under_one_key(local_client, kv_store):
    raw = kv_store.get_item("inventory_data")
    assert set(json.loads(raw)) == {"products", "transactions", "dailyOutbound"}


@pytest.mark.parametrize("raw", ["{not json", "[1, 2, 3]", '"text"'])
def test_corrupt_document_reads_as_empty(local_client, kv_store, raw):
    kv_store.set_item(local_client.key, raw)

    assert local_client.read_all() == {"products": [], "transactions": [], "dailyOutbound": []}


def test_missing_collections_default_to_empty(local_client):
    local_client.write_all({"products": [{"id": 1}], "transactions": "oops"})

    data = local_client.read_all()

    assert data["products"] == [{"id": 1}]
    assert data["transactions"] == []
    assert data["dailyOutbound"] == []


def test_add_product_assigns_id_and_coerces_numbers(local_client):
    record = local_client.add_product({"barcode": "9990001112", "name": "Tape", "stock": "12", "min_stock": ""})

    assert record["id"] == FIXED_MS
    assert record["stock"] == 12
    assert record["min_stock"] == 5
    assert local_client.read_all()["products"][-1] == record


def test_add_product_ids_stay_unique_within_one_millisecond(local_client):
    first = local_client.add_product({"barcode": "A", "name": "a"})
    second = local_client.add_product({"barcode": "B", "name": "b"})

    assert second["id"] == first["id"] + 1
    assert second["stock"] == 0


@pytest.mark.parametrize("value, expected", [(None, 7), ("", 7), ("3", 3), (4.9, 4), ("2.5", 2), ("abc", 7)])
def test_to_int(value, expected):
    assert to_int(value, 7) == expected


def test_update_stock(local_client):
    assert local_client.update_stock(2, 12) is True
    assert [p["stock"] for p in local_client.read_all()["products"]] == [50, 12, 3]


def test_update_stock_unknown_product_is_noop(local_client):
    before = local_client.read_all()

    assert local_client.update_stock(404, 1) is False
    assert local_client.read_all() == before


def test_append_transaction_prepends_with_defaults(local_client):
    local_client.append_transaction({"product_id": 1, "product_name": "A", "type": "IN", "quantity": 2, "date": "2026-10-01"})
    latest = local_client.append_transaction({"product_id": 2, "product_name": "B", "type": "OUT", "quantity": 1})

    transactions = local_client.read_all()["transactions"]
    assert transactions[0] == latest
    assert transactions[1]["date"] == "2026-10-01"
    assert latest["date"] == "2026-10-18"
    assert latest["time"] == "09:30:00"
    assert latest["id"] != transactions[1]["id"]


def test_replace_staging(local_client):
    entries = [{"product_id": 1, "product_name": "A", "barcode": "1234567890", "quantity": 2}]
    local_client.replace_staging(entries)
    assert local_client.read_all()["dailyOutbound"] == entries

    local_client.replace_staging([])
    assert local_client.read_all()["dailyOutbound"] == []


def test_export_snapshot(local_client):
    filename, content = local_client.export_snapshot()

    assert filename == "inventory-backup-2026-10-18.json"
    assert json.loads(content) == local_client.read_all()


def test_export_then_import_restores_document(local_client):
    local_client.add_product({"barcode": "5550001", "name": "Glue", "stock": 4})
    local_client.append_transaction({"product_id": 1, "product_name": "Sample Product A", "type": "OUT", "quantity": 2})
    local_client.replace_staging([{"product_id": 2, "product_name": "Sample Product B", "barcode": "2345678901", "quantity": 1}])
    original = local_client.read_all()
    _, content = local_client.export_snapshot()

    local_client.clear_all(confirmed=True)
    assert local_client.read_all() != original

    local_client.import_snapshot(content)
    assert local_client.read_all() == original


@pytest.mark.parametrize("text", ["not json", "[]", '{"products": {}}'])
def test_import_rejects_malformed_backup(local_client, text):
    before = local_client.read_all()

    with pytest.raises(ValidationError):
        local_client.import_snapshot(text)
    assert local_client.read_all() == before


def test_clear_all_requires_confirmation(local_client):
    local_client.append_transaction({"product_id": 1, "product_name": "A", "type": "IN", "quantity": 1})
    before = local_client.read_all()

    assert local_client.clear_all() is False
    assert local_client.read_all() == before


def test_clear_all_reseeds(local_client):
    local_client.add_product({"barcode": "X1", "name": "Extra"})
    local_client.append_transaction({"product_id": 1, "product_name": "A", "type": "IN", "quantity": 1})

    assert local_client.clear_all(confirmed=True) is True

    data = local_client.read_all()
    assert data["products"] == DEMO_PRODUCTS
    assert data["transactions"] == []


@pytest.mark.parametrize("record", [
    {"id": 1, "name": "no barcode"},
    {"id": 1, "barcode": "1", "name": "A", "stock": None},
    {"id": "one", "barcode": "1", "name": "A"},
    "just a string",
])
def test_import_rejects_products_that_do_not_load(local_client, record):
    before = local_client.read_all()
    backup = json.dumps({"products": [record], "transactions": [], "dailyOutbound": []})

    with pytest.raises(ValidationError, match=r"products\[0\]"):
        local_client.import_snapshot(backup)
    assert local_client.read_all() == before


def test_import_rejects_bad_transaction_and_staging_records(local_client):
    good_product = {"id": 1, "barcode": "1", "name": "A"}
    bad_transaction = {"product_id": 1, "product_name": "A", "type": "MOVE", "quantity": 1, "date": "2026-10-18", "time": "09:30:00"}
    bad_entry = {"product_id": 1, "product_name": "A", "barcode": "1"}

    with pytest.raises(ValidationError, match=r"transactions\[0\]"):
        local_client.import_snapshot(json.dumps({"products": [good_product], "transactions": [bad_transaction]}))
    with pytest.raises(ValidationError, match=r"dailyOutbound\[0\]"):
        local_client.import_snapshot(json.dumps({"products": [good_product], "dailyOutbound": [bad_entry]}))
    assert len(local_client.read_all()["products"]) == len(DEMO_PRODUCTS)


def test_non_object_records_are_dropped_on_read(local_client, kv_store):
    kv_store.set_item(local_client.key, json.dumps({"products": [1, "x", None, DEMO_PRODUCTS[0]]}))

    assert local_client.read_all()["products"] == [DEMO_PRODUCTS[0]]
