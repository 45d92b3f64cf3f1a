"""
Unit tests for MasterSkuChecker.

Run: pytest tests/unit/test_master_sku_checker.py -v
"""

import httpx
import pytest

from services.master_sku_checker import MasterSkuChecker, chunk_keys, collect_master_skus

from tests.conftest import store_error
from tests.factories import MappingFactory


@pytest.fixture
def checker(mock_supabase):
    mock_supabase.set_table_data("products", [
        {"sku": "SKU-1"}, {"sku": "SKU-2"}, {"sku": "SKU-3"}
    ])
    return MasterSkuChecker(db=mock_supabase, products_table="products")


class TestCollectMasterSkus:

    def test_distinct_in_first_seen_order(self):
        records = MappingFactory.records(6, master_skus=["SKU-2", "SKU-1", "SKU-2"])

        assert collect_master_skus(records) == ["SKU-2", "SKU-1"]


class TestCheck:
    """Tests for MasterSkuChecker.check()"""

    def test_all_present_passes(self, checker, mock_supabase):
        records = MappingFactory.records(10, master_skus=["SKU-1", "SKU-2", "SKU-3"])

        check = checker.check(records)

        assert check.checked
        assert check.passed
        assert check.errors == []
        # One query for all keys
        assert len(mock_supabase.calls_for("products", "select")) == 1

    def test_one_missing_key_out_of_five(self, checker):
        records = MappingFactory.records(
            5, master_skus=["SKU-1", "SKU-2", "SKU-3", "SKU-4", "SKU-1"]
        )
        records.append(MappingFactory.record(channel_sku="AMZ-X", master_sku="SKU-9"))

        check = checker.check(records)

        assert not check.passed
        assert check.missing == ["SKU-4", "SKU-9"]

    def test_error_names_missing_key(self, checker):
        records = [
            MappingFactory.record(channel_sku=f"AMZ-{i}", master_sku=sku)
            for i, sku in enumerate(["SKU-1", "SKU-2", "SKU-3", "SKU-1", "GHOST"])
        ]

        check = checker.check(records)

        assert check.errors == ['Master SKU "GHOST" not found in products table']

    def test_skip_makes_no_query(self, checker, mock_supabase):
        check = checker.check([MappingFactory.record(master_sku="GHOST")], skip=True)

        assert check.passed
        assert not check.checked
        assert mock_supabase.calls == []

    def test_no_records_makes_no_query(self, checker, mock_supabase):
        check = checker.check([])

        assert check.passed
        assert mock_supabase.calls == []

    @pytest.mark.parametrize("code", ["42P01", "PGRST205"])
    def test_missing_products_table_skips_check(self, checker, mock_supabase, code):
        mock_supabase.fail_on("products", "select", store_error(code, "relation missing"))

        check = checker.check([MappingFactory.record(master_sku="GHOST")])

        assert check.passed
        assert not check.checked

    def test_connection_failure_skips_check(self, checker, mock_supabase):
        """Should proceed unchecked when the lookup fails without a store error code."""
        mock_supabase.fail_on("products", "select", httpx.ConnectError("connection reset"))

        check = checker.check([MappingFactory.record(master_sku="GHOST")])

        assert check.passed
        assert not check.checked
        assert check.errors == []

    def test_other_lookup_failure_fails_closed(self, checker, mock_supabase):
        mock_supabase.fail_on("products", "select", store_error("57014", "statement timeout"))

        check = checker.check([MappingFactory.record()])

        assert not check.passed
        assert check.lookup_error == "statement timeout"
        assert check.errors == ["Database error: statement timeout"]


class TestChunkedLookup:
    """Lookups over more keys than one response can hold."""

    @pytest.fixture
    def capped_store(self, mock_supabase):
        mock_supabase.set_table_data("products", [{"sku": f"P-{i}"} for i in range(2500)])
        mock_supabase.max_rows = 1000
        return mock_supabase

    def test_chunk_keys(self):
        chunks = list(chunk_keys([f"P-{i}" for i in range(1200)], 500))

        assert [len(c) for c in chunks] == [500, 500, 200]

    def test_2500_existing_keys_pass_under_row_cap(self, capped_store):
        # Arrange
        checker = MasterSkuChecker(db=capped_store, products_table="products", chunk_size=1000)
        records = MappingFactory.records(2500, master_skus=[f"P-{i}" for i in range(2500)])

        # Act
        check = checker.check(records)

        # Assert
        assert check.checked
        assert check.passed
        assert len(capped_store.calls_for("products", "select")) == 3

    def test_missing_key_in_last_chunk_is_reported(self, capped_store):
        checker = MasterSkuChecker(db=capped_store, products_table="products", chunk_size=500)
        keys = [f"P-{i}" for i in range(1200)] + ["GHOST"]
        records = MappingFactory.records(len(keys), master_skus=keys)

        check = checker.check(records)

        assert check.missing == ["GHOST"]
        assert len(capped_store.calls_for("products", "select")) == 3
