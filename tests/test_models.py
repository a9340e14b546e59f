"""Tests for product data models: category parsing and record serialisation."""

from dataclasses import FrozenInstanceError

import pytest

from provenance.models.product import ProductCategory, ProductRecord, ProductUpdate


def _record(**overrides) -> ProductRecord:
    fields = dict(
        product_id="PROD001",
        producer="ST1PRODUCER",
        metadata_hash="h" * 64,
        description="Organic Coffee Beans",
        origin="Ethiopia",
        category=ProductCategory.FOOD,
        timestamp=7,
    )
    fields.update(overrides)
    return ProductRecord(**fields)


class TestProductCategory:
    @pytest.mark.parametrize("raw", ["food", "pharma", "luxury", "electronics"])
    def test_known_values_parse(self, raw: str) -> None:
        assert ProductCategory.parse(raw).value == raw

    def test_member_passes_through(self) -> None:
        assert ProductCategory.parse(ProductCategory.PHARMA) is ProductCategory.PHARMA

    @pytest.mark.parametrize("raw", ["FOOD", "toys", "", None, 3])
    def test_unknown_values_return_none(self, raw) -> None:
        assert ProductCategory.parse(raw) is None


class TestProductRecord:
    def test_new_record_is_active(self) -> None:
        assert _record().status is True

    def test_record_is_frozen(self) -> None:
        record = _record()
        with pytest.raises(FrozenInstanceError):
            record.origin = "Kenya"  # type: ignore[misc]

    def test_dict_stores_category_value(self) -> None:
        data = _record(category=ProductCategory.LUXURY).to_dict()
        assert data["category"] == "luxury"
        assert ProductRecord.from_dict(data).category is ProductCategory.LUXURY

    def test_from_dict_defaults_status(self) -> None:
        data = _record().to_dict()
        del data["status"]
        assert ProductRecord.from_dict(data).status is True

    def test_from_dict_rejects_unknown_category(self) -> None:
        data = _record().to_dict()
        data["category"] = "toys"
        with pytest.raises(ValueError):
            ProductRecord.from_dict(data)


class TestProductUpdate:
    def test_dict_carries_updater(self) -> None:
        update = ProductUpdate("a" * 10, "Roasted", "Kenya", 12, "ST1PRODUCER")
        restored = ProductUpdate.from_dict(update.to_dict())
        assert restored == update
        assert restored.updater == "ST1PRODUCER"
