"""
Shared test fixtures.

Two test doubles:
    MockSupabaseClient  chainable PostgREST-style queries over in-memory rows,
                        for the services that talk to Supabase directly
    InMemoryCatalog     catalog with real all-or-nothing apply semantics,
                        for matcher/import tests
"""

import os
import re
import sys
import copy
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings require these before any app module is imported
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator

from models.catalog import (
    ApplySummary,
    CatalogOperation,
    CatalogProduct,
    CatalogVariant,
    OperationType,
    Vendor,
)
from exceptions import ExecutionTransactionError
from utils.text_utils import match_key

# ===================
# MOCK SUPABASE CLIENT
# ===================

_LIKE_ESCAPE = re.compile(r"\\(.)")


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = [] if data is None else data
        if count is not None:
            self.count = count
        else:
            self.count = len(self.data) if isinstance(self.data, list) else 1


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods and simple filtering."""

    def __init__(self, table: "MockSupabaseTable", action: str = "select", payload=None, on_conflict=None):
        self._table = table
        self._action = action
        self._payload = payload
        self._on_conflict = on_conflict
        self._filters = []
        self._order = None
        self._limit = None
        self._is_single = False

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def ilike(self, column, pattern):
        # Only escaped literals are used by the services, so this is a
        # case-insensitive equals
        target = _LIKE_ESCAPE.sub(r"\1", pattern).casefold()
        self._filters.append(
            lambda row: isinstance(row.get(column), str) and row[column].casefold() == target
        )
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    def _matching(self) -> list:
        return [row for row in self._table.rows if all(f(row) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        if self._table.error is not None:
            raise self._table.error

        if self._action == "upsert":
            data = [self._table.upsert(record, self._on_conflict) for record in self._payload]
        elif self._action == "insert":
            data = [self._table.insert(record) for record in self._payload]
        elif self._action == "delete":
            data = self._matching()
            self._table.rows = [row for row in self._table.rows if row not in data]
        else:
            data = [dict(row) for row in self._matching()]
            if self._order:
                column, desc = self._order
                data.sort(key=lambda row: (row.get(column) is None, row.get(column)), reverse=desc)
            if self._limit is not None:
                data = data[:self._limit]

        if self._is_single:
            return MockSupabaseResponse(data=data[0] if data else None, count=1 if data else 0)
        return MockSupabaseResponse(data=data)


class MockSupabaseTable:
    """Mock Supabase table holding its rows in memory."""

    def __init__(self, rows: list = None):
        self.rows = [dict(row) for row in rows or []]
        self.error = None
        self._next_id = max((row["id"] for row in self.rows if isinstance(row.get("id"), int)), default=0) + 1

    def _stamp(self, record: dict) -> dict:
        record = dict(record)
        if "id" not in record:
            record["id"] = self._next_id
            self._next_id += 1
        record.setdefault("created_at", datetime.utcnow().isoformat() + "Z")
        return record

    def insert(self, record: dict) -> dict:
        record = self._stamp(record)
        self.rows.append(record)
        return dict(record)

    def upsert(self, record: dict, on_conflict: str = None) -> dict:
        key = on_conflict or "id"
        for index, row in enumerate(self.rows):
            if row.get(key) == record.get(key):
                merged = {**row, **record}
                self.rows[index] = merged
                return dict(merged)
        return self.insert(record)

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self)

    def insert_query(self, data):
        records = data if isinstance(data, list) else [data]
        return MockSupabaseQuery(self, action="insert", payload=records)

    def upsert_query(self, data, on_conflict=None):
        records = data if isinstance(data, list) else [data]
        return MockSupabaseQuery(self, action="upsert", payload=records, on_conflict=on_conflict)

    def delete(self):
        return MockSupabaseQuery(self, action="delete")


class _TableHandle:
    """What client.table(name) returns; mirrors the supabase-py request builder."""

    def __init__(self, table: MockSupabaseTable):
        self._table = table

    def select(self, *args, **kwargs):
        return self._table.select(*args, **kwargs)

    def insert(self, data):
        return self._table.insert_query(data)

    def upsert(self, data, on_conflict=None, **kwargs):
        return self._table.upsert_query(data, on_conflict=on_conflict)

    def delete(self):
        return self._table.delete()


class MockRpcCall:
    """Pending rpc() call; runs on execute()."""

    def __init__(self, client: "MockSupabaseClient", name: str, params: dict):
        self._client = client
        self._name = name
        self._params = params

    def execute(self) -> MockSupabaseResponse:
        self._client.rpc_calls.append((self._name, self._params))
        error = self._client._rpc_errors.get(self._name)
        if error is not None:
            raise error
        return MockSupabaseResponse(data=self._client._rpc_results.get(self._name, {}))


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, MockSupabaseTable] = {}
        self._rpc_results: dict = {}
        self._rpc_errors: dict = {}
        self.rpc_calls: list = []

    def set_table_data(self, table_name: str, data: list):
        """Configure rows for a table."""
        self._tables[table_name] = MockSupabaseTable(data)

    def set_table_error(self, table_name: str, error: Exception):
        """Make every query on a table raise."""
        self._get(table_name).error = error

    def set_rpc_result(self, name: str, data):
        self._rpc_results[name] = data

    def set_rpc_error(self, name: str, error: Exception):
        self._rpc_errors[name] = error

    def rows(self, table_name: str) -> list:
        """Current rows of a table (for assertions)."""
        return self._get(table_name).rows

    def _get(self, name: str) -> MockSupabaseTable:
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable()
        return self._tables[name]

    def table(self, name: str) -> _TableHandle:
        return _TableHandle(self._get(name))

    def rpc(self, name: str, params: dict = None) -> MockRpcCall:
        return MockRpcCall(self, name, params or {})


# ===================
# IN-MEMORY CATALOG
# ===================

class InMemoryCatalog:
    """
    Catalog double with transactional apply.

    apply_operations works on a copy and swaps it in only when every
    operation succeeded. Variant SKUs are unique, as a stand-in for a
    database constraint that can fail mid-batch.
    """

    def __init__(self, products: list = None, variants: list = None):
        self.products = [dict(p) for p in products or []]
        self.variants = [dict(v) for v in variants or []]
        self.applied_batches: list[list[CatalogOperation]] = []
        self.read_count = 0
        self._ids = 0

    def _new_id(self, prefix: str) -> str:
        self._ids += 1
        return f"{prefix}-new-{self._ids:04d}"

    # Reads

    def find_products_by_name(self, name):
        self.read_count += 1
        key = match_key(name)
        found = [
            CatalogProduct(**p) for p in self.products
            if match_key(p["name"]) == key and not p.get("is_discontinued")
        ]
        return sorted(found, key=lambda p: p.id)

    def find_variants(self, product_id, variant_name):
        self.read_count += 1
        key = match_key(variant_name)
        found = [
            CatalogVariant(**v) for v in self.variants
            if v["product_id"] == product_id and match_key(v.get("name")) == key
        ]
        return sorted(found, key=lambda v: v.id)

    def find_variants_by_sku(self, sku):
        self.read_count += 1
        active = {p["id"] for p in self.products if not p.get("is_discontinued")}
        found = [
            CatalogVariant(**v) for v in self.variants
            if (v.get("sku") or "").strip() == sku.strip() and v["product_id"] in active
        ]
        return sorted(found, key=lambda v: v.id)

    def list_variants(self, product_id):
        self.read_count += 1
        found = [CatalogVariant(**v) for v in self.variants if v["product_id"] == product_id]
        return sorted(found, key=lambda v: v.id)

    # Write

    def apply_operations(self, operations):
        products = copy.deepcopy(self.products)
        variants = copy.deepcopy(self.variants)
        summary = ApplySummary()

        try:
            for op in operations:
                if op.op == OperationType.UPDATE_VARIANT:
                    self._update(variants, op)
                    summary.updates += 1
                elif op.op == OperationType.CREATE_VARIANT:
                    if self._create(products, variants, op):
                        summary.products_created += 1
                    summary.created += 1
                else:
                    raise ValueError(f"unknown operation {op.op}")
        except Exception as e:
            raise ExecutionTransactionError(str(e), details={"operations": len(operations)}) from e

        self.products, self.variants = products, variants
        self.applied_batches.append(list(operations))
        return summary

    def _update(self, variants: list, op: CatalogOperation) -> None:
        row = next((v for v in variants if v["id"] == op.variant_id), None)
        if row is None:
            raise ValueError(f"variant {op.variant_id} not found")
        for column in ("unit_cost", "retail_price", "size", "carton_size"):
            value = getattr(op, column)
            if value is not None:
                row[column] = value
        if op.has_sample:
            row["has_sample"] = True

    def _create(self, products: list, variants: list, op: CatalogOperation) -> bool:
        """Returns True when a product line was created."""
        if op.sku and any((v.get("sku") or "") == op.sku for v in variants):
            raise ValueError(f"duplicate key value violates unique constraint: sku={op.sku}")

        product_id = op.product_id
        created_product = False
        if product_id is None:
            existing = sorted(
                (p for p in products
                 if match_key(p["name"]) == match_key(op.product_name) and not p.get("is_discontinued")),
                key=lambda p: p["id"]
            )
            if existing:
                product_id = existing[0]["id"]
            else:
                product_id = self._new_id("p")
                products.append({
                    "id": product_id,
                    "name": op.product_name,
                    "manufacturer_id": op.manufacturer_id,
                    "product_type": op.product_type,
                    "is_discontinued": False,
                })
                created_product = True

        variants.append({
            "id": self._new_id("v"),
            "product_id": product_id,
            "name": op.variant_name,
            "sku": op.sku,
            "size": op.size,
            "unit_cost": op.unit_cost if op.unit_cost is not None else 0.0,
            "retail_price": op.retail_price if op.retail_price is not None else 0.0,
            "carton_size": op.carton_size,
            "is_master": bool(op.is_master),
            "has_sample": bool(op.has_sample),
        })
        return created_product

    def product_named(self, name: str) -> list:
        return [p for p in self.products if match_key(p["name"]) == match_key(name)]

    def variants_of(self, product_id: str) -> list:
        return [v for v in self.variants if v["product_id"] == product_id]


class InMemoryVendors:
    """Vendor directory double."""

    def __init__(self, vendors: list = None):
        self.vendors = [Vendor(**v) for v in vendors or []]

    def get_by_id(self, vendor_id):
        return next((v for v in self.vendors if v.id == vendor_id), None)

    def find_by_name(self, name):
        key = match_key(name)
        found = sorted((v for v in self.vendors if match_key(v.name) == key), key=lambda v: v.id)
        return found[0] if found else None

    def default_product_type(self, manufacturer_id):
        vendor = self.get_by_id(manufacturer_id)
        return vendor.default_product_type if vendor else None


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "p-0001", "name": "Oak Plank", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock and reset service singletons.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("import_profiles", [...])
            # Now any service created here gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase), \
            patch("services.catalog_service.get_supabase_client", return_value=mock_supabase), \
            patch("services.vendor_service.get_supabase_client", return_value=mock_supabase), \
            patch("services.import_profile_service.get_supabase_client", return_value=mock_supabase), \
            patch("services.catalog_service._catalog_service", None), \
            patch("services.vendor_service._vendor_service", None), \
            patch("services.import_profile_service._import_profile_service", None), \
            patch("services.catalog_matcher_service._catalog_matcher_service", None), \
            patch("services.import_service._import_service", None):
        yield mock_supabase


@pytest.fixture
def catalog() -> InMemoryCatalog:
    """Empty in-memory catalog; tests add products/variants as needed."""
    return InMemoryCatalog()


@pytest.fixture
def vendors() -> InMemoryVendors:
    return InMemoryVendors([
        {"id": 7, "name": "Shaw", "default_product_type": "Hardwood"},
        {"id": 9, "name": "Mohawk", "default_product_type": None},
    ])


@pytest.fixture
def import_service(catalog, vendors):
    """ImportService wired to the in-memory catalog and vendors."""
    from services.import_service import ImportService
    return ImportService(catalog=catalog, vendors=vendors)


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db, import_service):
    """
    FastAPI test client with mocked database and in-memory catalog.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("import_profiles", [...])
            response = test_client_with_mock_db.get("/api/import/profiles")
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("routes.imports.get_import_service", return_value=import_service):
        yield TestClient(app)
