"""
Tests for the catalog record source and the price maintenance service.

``execute_sql`` is patched at the service module level so that no Databricks
connection is needed.
"""

from __future__ import annotations

import json
import os
import re
import sys
from unittest.mock import patch

import pytest

# Ensure the app package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "app"))

from pricematrix.models import PriceSnapshot, PriceUpdateRequest, VisibilitySetting  # noqa: E402
from pricematrix.services import catalog, pricing  # noqa: E402
from pricematrix.utils import databricks_client  # noqa: E402


# ---------------------------------------------------------------------------
# Mock data helpers
# ---------------------------------------------------------------------------
def _mock_record_row(product_id: str, brand: str, **overrides) -> dict:
    row = {
        "product_id": product_id,
        "car_make": "Honda",
        "car_model": "City",
        "product_variant": "Standard",
        "position": "Front",
        "category": "Absorber",
        "part_number": None,
        "brand_name": brand,
        "price_distributor": "80.0",
        "price_agent": None,
        "price_workshop": None,
        "price_retail": "120.0",
        "price_online": None,
    }
    row.update(overrides)
    return row


class _SettingsTable:
    """In-memory ``app_settings`` that applies the columns each MERGE branch sets."""

    def __init__(self, rows: list[dict]):
        self.rows = {r["setting_key"]: dict(r) for r in rows}

    def execute(self, query: str, **kwargs) -> list[dict]:
        sql = " ".join(query.split())
        params = kwargs.get("parameters") or {}
        if sql.startswith("MERGE INTO"):
            values = {**params, "display_order": int(params["display_order"])}
            key = params["setting_key"]
            if key in self.rows:
                matched = sql.split("WHEN MATCHED THEN UPDATE SET")[1].split("WHEN NOT MATCHED")[0]
                for column in re.findall(r"t\.(\w+) = s\.\w+", matched):
                    self.rows[key][column] = values[column]
            else:
                columns = re.search(r"INSERT \(([^)]*)\)", sql).group(1)
                self.rows[key] = {c.strip(): values[c.strip()] for c in columns.split(",")}
            return []
        return sorted(self.rows.values(), key=lambda r: r["display_order"])


# ===========================================================================
# Records
# ===========================================================================
class TestLoadRecords:

    def test_converts_rows(self):
        rows = [_mock_record_row("1", "KYB", part_number="KYB-334")]
        with patch.object(catalog, "execute_sql", return_value=rows) as mock_sql:
            records = catalog.load_records()

        assert isinstance(records, tuple)
        record = records[0]
        assert record.product_id == "1"
        assert record.make == "Honda"
        assert record.brand_name == "KYB"
        assert record.part_number == "KYB-334"
        assert record.price == PriceSnapshot(distributor=80.0, retail=120.0)
        assert mock_sql.call_args.kwargs["cache_key"] == "catalog:records"

    def test_query_orders_by_make_model_position(self):
        with patch.object(catalog, "execute_sql", return_value=[]) as mock_sql:
            catalog.load_records()
        query = " ".join(mock_sql.call_args.args[0].split())
        assert "ORDER BY p.car_make ASC, p.car_model ASC, p.position ASC" in query

    def test_keeps_first_price_per_product(self):
        rows = [
            _mock_record_row("1", "KYB", price_retail="150.0"),
            _mock_record_row("1", "KYB", price_retail="120.0"),
            _mock_record_row("2", "Monroe"),
        ]
        with patch.object(catalog, "execute_sql", return_value=rows):
            records = catalog.load_records()

        assert [r.product_id for r in records] == ["1", "2"]
        assert records[0].price.retail == 150.0

    def test_product_without_price(self):
        row = _mock_record_row(
            "3", "Tokico", price_distributor=None, price_retail=None,
        )
        with patch.object(catalog, "execute_sql", return_value=[row]):
            records = catalog.load_records()
        assert records[0].price is None

    def test_missing_brand_is_loaded_as_none(self):
        with patch.object(catalog, "execute_sql", return_value=[_mock_record_row("4", None)]):
            records = catalog.load_records()
        assert records[0].brand_name is None


# ===========================================================================
# Visibility
# ===========================================================================
class TestVisibility:

    def test_load_parses_booleans(self):
        rows = [
            {"setting_key": "show_retail", "is_visible": "true"},
            {"setting_key": "show_agent", "is_visible": "false"},
            {"setting_key": "show_online", "is_visible": True},
        ]
        with patch.object(catalog, "execute_sql", return_value=rows):
            settings = catalog.load_visibility()
        assert [(s.setting_key, s.is_visible) for s in settings] == [
            ("show_retail", True),
            ("show_agent", False),
            ("show_online", True),
        ]

    def test_save_rejects_unknown_keys(self):
        with patch.object(catalog, "execute_sql") as mock_sql:
            with pytest.raises(ValueError, match="show_wholesale"):
                catalog.save_visibility(
                    [VisibilitySetting(setting_key="show_wholesale", is_visible=True)]
                )
        mock_sql.assert_not_called()

    def test_save_merges_and_invalidates(self):
        settings = [
            VisibilitySetting(setting_key="show_retail", is_visible=True),
            VisibilitySetting(setting_key="show_agent", is_visible=False),
        ]
        stored = [{"setting_key": "show_retail", "is_visible": "true"}]
        with patch.object(catalog, "execute_sql", return_value=stored) as mock_sql, \
             patch.object(catalog, "invalidate_cache") as mock_invalidate:
            result = catalog.save_visibility(settings)

        merges = [c for c in mock_sql.call_args_list if "MERGE INTO" in c.args[0]]
        assert len(merges) == 2
        assert merges[1].kwargs["parameters"] == {
            "setting_key": "show_agent",
            "is_visible": "false",
            "display_order": 1,
        }
        mock_invalidate.assert_called_once_with("catalog:")
        assert result[0].setting_key == "show_retail"

    def test_save_reorders_existing_keys(self):
        table = _SettingsTable(
            [
                {"setting_key": "show_retail", "is_visible": "true", "display_order": 3},
                {"setting_key": "show_online", "is_visible": "true", "display_order": 4},
            ]
        )
        settings = [
            VisibilitySetting(setting_key="show_online", is_visible=True),
            VisibilitySetting(setting_key="show_retail", is_visible=False),
        ]
        with patch.object(catalog, "execute_sql", side_effect=table.execute):
            result = catalog.save_visibility(settings)

        assert table.rows["show_online"]["display_order"] == 0
        assert table.rows["show_retail"]["display_order"] == 1
        assert [(s.setting_key, s.is_visible) for s in result] == [
            ("show_online", True),
            ("show_retail", False),
        ]

    def test_save_inserts_new_key_with_position(self):
        table = _SettingsTable(
            [{"setting_key": "show_retail", "is_visible": "true", "display_order": 0}]
        )
        settings = [
            VisibilitySetting(setting_key="show_agent", is_visible=True),
            VisibilitySetting(setting_key="show_retail", is_visible=True),
        ]
        with patch.object(catalog, "execute_sql", side_effect=table.execute):
            result = catalog.save_visibility(settings)

        assert [s.setting_key for s in result] == ["show_agent", "show_retail"]


# ===========================================================================
# Prices
# ===========================================================================
def _pricing_side_effect(query: str, **kwargs) -> list[dict]:
    q = query.lower()
    if "select id from" in q:
        return [] if kwargs["parameters"]["product_id"] == "missing" else [{"id": "1"}]
    if "select price_" in q:
        return [{"price_distributor": "80.0", "price_retail": "120.0"}]
    return []


class TestUpdatePrices:

    def test_unknown_product(self):
        with patch.object(pricing, "execute_sql", side_effect=_pricing_side_effect):
            with pytest.raises(ValueError, match="not found"):
                pricing.update_prices("missing", PriceUpdateRequest(retail=100))

    def test_upserts_logs_and_invalidates(self):
        request = PriceUpdateRequest(distributor=85, retail=130)
        with patch.object(pricing, "execute_sql", side_effect=_pricing_side_effect) as mock_sql, \
             patch.object(pricing, "invalidate_cache") as mock_invalidate:
            snapshot = pricing.update_prices("1", request, changed_by="admin@suspensionprice.my")

        assert snapshot.value("retail") == 130
        assert snapshot.value("agent") is None

        statements = [c.args[0] for c in mock_sql.call_args_list]
        assert any("MERGE INTO" in s for s in statements)
        history = next(c for c in mock_sql.call_args_list if "INSERT INTO" in c.args[0])
        params = history.kwargs["parameters"]
        assert params["changed_by"] == "admin@suspensionprice.my"
        assert json.loads(params["old_prices"]) == {"distributor": 80.0, "retail": 120.0}
        assert json.loads(params["new_prices"])["retail"] == 130.0
        mock_invalidate.assert_called_once_with("catalog:")


class TestPriceHistory:

    def test_diff_ignores_zero_and_missing(self):
        changes = pricing.diff_prices(
            {"retail": 120.0, "agent": 0.0},
            {"retail": 130.0, "online": 0.0},
        )
        assert [(c.tier, c.old, c.new) for c in changes] == [("retail", 120.0, 130.0)]

    def test_entries_include_product_details(self):
        rows = [
            {
                "product_id": "1",
                "changed_by": "admin@suspensionprice.my",
                "changed_at": "2024-03-09T10:00:00Z",
                "old_prices": '{"retail": 120.0}',
                "new_prices": '{"retail": 130.0, "distributor": 85.0}',
                "car_make": "Honda",
                "car_model": "City",
                "product_variant": "Standard",
                "position": "Front",
                "brand_name": "KYB",
            }
        ]
        with patch.object(pricing, "execute_sql", return_value=rows) as mock_sql:
            entries = pricing.get_price_history(limit=10)

        assert "LIMIT 10" in mock_sql.call_args.args[0]
        entry = entries[0]
        assert entry.brand_name == "KYB"
        assert [(c.tier, c.old, c.new) for c in entry.changes] == [
            ("distributor", 0.0, 85.0),
            ("retail", 120.0, 130.0),
        ]

    def test_empty_snapshots(self):
        rows = [{"product_id": "2", "old_prices": None, "new_prices": "{}"}]
        with patch.object(pricing, "execute_sql", return_value=rows):
            entries = pricing.get_price_history()
        assert entries[0].changes == []


# ===========================================================================
# Warehouse client
# ===========================================================================
class TestWorkspaceClient:

    @pytest.fixture(autouse=True)
    def _reset_client(self):
        databricks_client._client = None
        yield
        databricks_client._client = None

    def test_token_auth_passes_credentials_through_config(self):
        with patch.object(databricks_client, "DATABRICKS_TOKEN", "dapi-test"), \
             patch.object(databricks_client, "DATABRICKS_HOST", "https://example.cloud.databricks.com"), \
             patch.object(databricks_client, "Config") as mock_config, \
             patch.object(databricks_client, "WorkspaceClient") as mock_client:
            client = databricks_client.get_workspace_client()

        mock_config.assert_called_once_with(
            host="https://example.cloud.databricks.com",
            token="dapi-test",
            http_timeout_seconds=databricks_client.HTTP_TIMEOUT,
        )
        mock_client.assert_called_once_with(config=mock_config.return_value)
        assert client is mock_client.return_value

    def test_app_auth_uses_timeout_only(self):
        with patch.object(databricks_client, "DATABRICKS_TOKEN", ""), \
             patch.object(databricks_client, "Config") as mock_config, \
             patch.object(databricks_client, "WorkspaceClient") as mock_client:
            first = databricks_client.get_workspace_client()
            second = databricks_client.get_workspace_client()

        mock_config.assert_called_once_with(
            http_timeout_seconds=databricks_client.HTTP_TIMEOUT,
        )
        mock_client.assert_called_once_with(config=mock_config.return_value)
        assert first is second
