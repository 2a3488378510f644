"""
Test data factories.

Uses factory pattern to generate consistent test data. Catalog factories
return dicts shaped like database rows; candidate/result factories return
models.
"""

from typing import Optional

from models.import_preview import (
    AffectedVariant,
    MatchResult,
    MatchStatus,
    MatchType,
    NormalizedCandidate,
)


class ProductFactory:
    """
    Factory for product line rows.

    Ids are zero-padded so string order equals creation order.

    Usage:
        product = ProductFactory.create(name="Oak Plank")
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        id: Optional[str] = None,
        name: Optional[str] = None,
        manufacturer_id: Optional[int] = None,
        product_type: str = "Hardwood",
        is_discontinued: bool = False
    ) -> dict:
        counter = cls._next_counter()
        return {
            "id": id or f"p-{counter:04d}",
            "name": name or f"Test Line {counter}",
            "manufacturer_id": manufacturer_id,
            "product_type": product_type,
            "is_discontinued": is_discontinued,
        }


class VariantFactory:
    """
    Factory for product variant rows.

    Usage:
        variant = VariantFactory.create(product_id=product["id"], name="Natural", unit_cost=3.20)
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(
        cls,
        product_id: str,
        id: Optional[str] = None,
        name: Optional[str] = None,
        sku: Optional[str] = None,
        size: Optional[str] = None,
        unit_cost: Optional[float] = 1.00,
        retail_price: Optional[float] = 2.00,
        carton_size: Optional[float] = None,
        is_master: bool = False,
        has_sample: bool = False
    ) -> dict:
        counter = cls._next_counter()
        return {
            "id": id or f"v-{counter:04d}",
            "product_id": product_id,
            "name": name or f"Color {counter}",
            "sku": sku,
            "size": size,
            "unit_cost": unit_cost,
            "retail_price": retail_price,
            "carton_size": carton_size,
            "is_master": is_master,
            "has_sample": has_sample,
        }

    @classmethod
    def create_batch(cls, count: int, product_id: str, **overrides) -> list:
        return [cls.create(product_id=product_id, **overrides) for _ in range(count)]


class CandidateFactory:
    """
    Factory for NormalizedCandidate models.

    Usage:
        candidate = CandidateFactory.create(product_name="Oak Plank", unit_cost=3.45)
    """

    _counter = 0

    @classmethod
    def create(cls, **overrides) -> NormalizedCandidate:
        cls._counter += 1
        values = {
            "original_row_index": cls._counter,
            "product_name": f"Test Line {cls._counter}",
            "variant_name": None,
            "unit_cost": 1.00,
        }
        values.update(overrides)
        return NormalizedCandidate(**values)


class ResultFactory:
    """
    Factory for MatchResult models in review state.

    Usage:
        row = ResultFactory.new(product_name="Oak Plank")
        row = ResultFactory.update(variant_id="v-0001", old_cost=3.20, new_cost=3.45)
    """

    @classmethod
    def create(
        cls,
        status: MatchStatus = MatchStatus.NEW,
        candidate: Optional[NormalizedCandidate] = None,
        **fields
    ) -> MatchResult:
        candidate = candidate or CandidateFactory.create(
            **fields.pop("candidate_fields", {})
        )
        if status == MatchStatus.ERROR:
            fields.setdefault("message", "Missing required field: Unit Cost")
            fields.setdefault("is_skipped", True)
        return MatchResult(candidate=candidate, status=status, **fields)

    @classmethod
    def new(cls, product_name: str = "New Line", existing_product_id: Optional[str] = None, **candidate_fields) -> MatchResult:
        return cls.create(
            MatchStatus.NEW,
            candidate_fields={"product_name": product_name, **candidate_fields},
            existing_product_id=existing_product_id,
        )

    @classmethod
    def update(
        cls,
        variant_id: str = "v-0001",
        product_id: str = "p-0001",
        old_cost: float = 3.20,
        new_cost: float = 3.45,
        product_name: str = "Oak Plank",
        **candidate_fields
    ) -> MatchResult:
        return cls.create(
            MatchStatus.UPDATE,
            candidate_fields={"product_name": product_name, "unit_cost": new_cost, **candidate_fields},
            match_type=MatchType.VARIANT_NAME,
            existing_product_id=product_id,
            affected_variants=[AffectedVariant(
                variant_id=variant_id,
                old_cost=old_cost,
                new_cost=new_cost,
                changes=["Cost"],
            )],
        )

    @classmethod
    def error(cls, message: str = "Missing required field: Unit Cost", product_name: str = "Broken Line") -> MatchResult:
        return cls.create(
            MatchStatus.ERROR,
            candidate_fields={"product_name": product_name, "unit_cost": None},
            message=message,
        )
