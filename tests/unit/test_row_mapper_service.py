"""
Unit tests for the row mapper.

Run: pytest tests/unit/test_row_mapper_service.py -v
"""

import pytest

from models.import_profile import FieldKey
from services.row_mapper_service import (
    validate_mapping,
    map_row,
    map_rows,
    column_count,
    column_label,
    describe_columns,
)
from exceptions import MappingValidationError


MAPPING = {
    FieldKey.PRODUCT_NAME: 0,
    FieldKey.VARIANT_NAME: 1,
    FieldKey.UNIT_COST: 2,
    FieldKey.SKU: 3,
}


class TestValidateMapping:
    """Tests for validate_mapping()"""

    def test_complete_mapping_passes(self):
        validate_mapping(MAPPING)

    def test_missing_required_fields_listed_by_label(self):
        # Act
        with pytest.raises(MappingValidationError) as exc_info:
            validate_mapping({FieldKey.SKU: 0})

        # Assert
        assert exc_info.value.details["missing"] == ["Product Name (Line)", "Unit Cost"]
        assert exc_info.value.status_code == 422

    def test_column_zero_counts_as_mapped(self):
        validate_mapping({FieldKey.PRODUCT_NAME: 0, FieldKey.UNIT_COST: 1})


class TestMapRows:
    """Tests for map_rows() and map_row()"""

    def test_maps_and_normalizes(self):
        # Arrange
        rows = [["Oak Plank", "Natural", "$3.45", 10045]]

        # Act
        candidates = map_rows(rows, MAPPING)

        # Assert
        assert len(candidates) == 1
        c = candidates[0]
        assert c.original_row_index == 0
        assert c.product_name == "Oak Plank"
        assert c.variant_name == "Natural"
        assert c.unit_cost == 3.45
        assert c.sku == "10045"

    def test_drops_rows_without_product_name(self):
        # Arrange
        rows = [
            ["Oak Plank", "Natural", "3.45"],
            [None, "Stray", "1.00"],
            [],
            ["   ", "Blank", "2.00"],
            ["Maple", "Honey", "4.10"],
        ]

        # Act
        candidates = map_rows(rows, MAPPING)

        # Assert
        assert [c.product_name for c in candidates] == ["Oak Plank", "Maple"]
        assert [c.original_row_index for c in candidates] == [0, 4]

    def test_every_candidate_has_product_name(self):
        rows = [["A", None, "1"], [None, None, None], ["B", None, None], [""]]
        assert all(c.product_name for c in map_rows(rows, MAPPING))

    def test_short_rows_skip_missing_columns(self):
        # Act
        candidate = map_row(["Oak Plank"], 3, MAPPING)

        # Assert
        assert candidate.product_name == "Oak Plank"
        assert candidate.unit_cost is None
        assert candidate.sku is None

    def test_negative_column_is_skipped(self):
        mapping = {FieldKey.PRODUCT_NAME: 0, FieldKey.UNIT_COST: 1, FieldKey.SKU: -1}

        [candidate] = map_rows([["Oak Plank", "3.20", "SKU-LAST"]], mapping)

        assert candidate.unit_cost == 3.2
        assert candidate.sku is None

    def test_unparseable_cost_is_flagged(self):
        candidate = map_row(["Oak Plank", "Natural", "call"], 0, MAPPING)

        assert candidate.unit_cost is None
        assert FieldKey.UNIT_COST in candidate.invalid_fields

    def test_blank_cost_is_not_flagged(self):
        candidate = map_row(["Oak Plank", "Natural", ""], 0, MAPPING)

        assert candidate.unit_cost is None
        assert candidate.invalid_fields == ()

    def test_mapping_is_idempotent(self):
        """Same rows and mapping give identical candidates."""
        rows = [["Oak Plank", "Natural", "$3.45", "A1"], ["Maple", None, "4", None]]

        assert map_rows(rows, MAPPING) == map_rows(rows, MAPPING)

    def test_preserves_source_order(self):
        rows = [[name, None, "1"] for name in ["C", "A", "B"]]

        assert [c.product_name for c in map_rows(rows, MAPPING)] == ["C", "A", "B"]


class TestColumnHelpers:
    """Tests for column_count(), column_label() and describe_columns()"""

    def test_column_count_uses_widest_row(self):
        assert column_count([["a"], ["a", "b", "c"], []]) == 3
        assert column_count([]) == 0

    @pytest.mark.parametrize("index, label", [(0, "A"), (25, "Z"), (26, "AA"), (27, "AB"), (701, "ZZ"), (702, "AAA")])
    def test_column_label(self, index, label):
        assert column_label(index) == label

    def test_describe_columns_samples_first_non_empty_row(self):
        # Arrange
        rows = [[], ["Product Line Name Is Very Long Indeed", 3.0], ["x", "y", "z"]]

        # Act
        columns = describe_columns(rows)

        # Assert
        assert [c.label for c in columns] == ["A", "B", "C"]
        assert columns[0].sample == "Product Line Name Is"
        assert columns[1].sample == "3"
        assert columns[2].sample is None
