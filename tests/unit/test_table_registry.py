import pytest

from sla_tracker.core.errors import SchemaMismatchError
from sla_tracker.models.order_table import build_order_table, order_table_name, parse_order_table_name
from sla_tracker.services.column_mapping import PAYMENT_FIELDS, resolve_columns
from sla_tracker.services.table_registry import TableRegistry, parse_source_tables
from sla_tracker.services.tat_config_store import TatConfigIndex
from tests.factories import make_vs_my_config


def test_order_table_name_roundtrip():
    assert order_table_name("VS", "my") == "orders_vs_my"
    assert parse_order_table_name("orders_vs_my") == ("vs", "MY")
    assert parse_order_table_name("orders_vs_mys") is None
    assert parse_order_table_name("sla_daily_summary") is None


@pytest.mark.parametrize("brand, country", [("vs; drop table x", "MY"), ("vs", "MYS"), ("", "MY")])
def test_order_table_name_rejects_unsafe_parts(brand, country):
    with pytest.raises(ValueError):
        order_table_name(brand, country)


def test_build_order_table_reuses_metadata():
    t1 = build_order_table("orders_vs_my")
    t2 = build_order_table("orders_vs_my", t1.metadata)
    assert t1 is t2
    assert t1.c.order_no.primary_key
    with pytest.raises(ValueError):
        build_order_table("orders; --")


def test_registry_from_names_and_select():
    reg = TableRegistry.from_names(
        ["orders_vs_my", "orders_vs_sg", "orders_bbw_sg", "tat_config", "sla_daily_summary"]
    )
    assert len(reg) == 3
    assert reg.get("VS", "my").name == "orders_vs_my"
    assert ("vs", "sg") in reg
    assert [t.name for t in reg.select(country="SG")] == ["orders_bbw_sg", "orders_vs_sg"]
    assert [t.name for t in reg.select(brand="victoria's secret", country="my")] == ["orders_vs_my"]
    assert reg.select(brand="unknown") == []


def test_registry_register_creates_entry_once():
    reg = TableRegistry()
    a = reg.register("Rituals", "th")
    b = reg.register("rituals", "TH")
    assert a is b
    assert a.name == "orders_rituals_th"
    assert a.country_code == "TH"


def test_parse_source_tables_maps_brand_parts():
    names = [
        "victoriasecret_my_orders",
        "victoriasecret_my_payments",
        "bbw_sg_orders",
        "bbw_sg_shipments",
        "audit_log",
        "orders_vs_my",
    ]
    got = {s.name: s for s in parse_source_tables(names)}
    assert set(got) == {"victoriasecret_my_orders", "bbw_sg_orders"}

    vs = got["victoriasecret_my_orders"]
    assert (vs.brand_code, vs.country_code, vs.target_name) == ("vs", "MY", "orders_vs_my")
    assert vs.payments_name == "victoriasecret_my_payments"
    assert vs.shipments_name is None
    assert got["bbw_sg_orders"].shipments_name == "bbw_sg_shipments"


def test_resolve_columns_uses_aliases_case_insensitively():
    m = resolve_columns(["Order_Number", "ORDER_CREATED_DATE_TIME", "status", "extra"], table="x_my_orders")
    assert m["order_no"] == "Order_Number"
    assert m["placed_time"] == "ORDER_CREATED_DATE_TIME"
    assert m["order_status"] == "status"
    assert "extra" not in m.values()


def test_resolve_columns_missing_order_no():
    with pytest.raises(SchemaMismatchError) as ei:
        resolve_columns(["ref_code", "placed_time"], table="rituals_th_orders")
    assert ei.value.table == "rituals_th_orders"
    assert ei.value.missing == "order_no"
    assert ei.value.available == ["placed_time", "ref_code"]


def test_resolve_columns_side_table_fields():
    m = resolve_columns(["order_no", "card_type", "transaction_id", "note"], fields=PAYMENT_FIELDS)
    assert m == {"order_no": "order_no", "card_type": "card_type", "transactionid": "transaction_id"}


def test_tat_config_index_normalizes_case():
    idx = TatConfigIndex([make_vs_my_config(brand_code="VS", country_code="my")])
    assert idx.row_for("vs", "MY") is not None
    assert idx.row_for("Vs", "my") is not None
    assert idx.row_for("VICTORIA'S SECRET", "my") is not None
    assert idx.row_for("vs", "SG") is None
    assert idx.policy_for("bbw", "SG") is None

    policy = idx.policy_for("vs", "my")
    assert policy.processed_minutes == 120
    assert policy.pending_shipped_minutes == 2880
