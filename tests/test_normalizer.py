import pytest

from models import TriState
from normalizer import (
    IMAGE_NOT_AVAILABLE,
    NO_BARCODE_NAME,
    NO_CO2_SCORE,
    NO_ECOSCORE,
    NO_IMAGE_URL,
    NO_INFORMATION,
    NO_LABEL_TAG,
    NO_PRODUCT_NAME,
    NO_RESULT_NAME,
    PRODUCT_NAME,
    normalize,
    resolve,
)


def test_oat_milk_scenario():
    record = normalize("123", {"product_name_en": "Oat Milk", "labels_tags": ["en:vegan"]})

    assert record.product_name == "Oat Milk"
    assert record.is_vegan is TriState.YES
    # no "no palm oil" label means palm oil is assumed
    assert record.has_palm_oil is TriState.YES
    assert record.labels == ["en:vegan"]


def test_no_result_is_sentinel_filled_regardless_of_barcode():
    first = normalize("123", None)
    second = normalize("987654321", None)

    assert first.model_dump(exclude={"barcode"}) == second.model_dump(exclude={"barcode"})
    assert first.product_name == NO_RESULT_NAME
    assert first.eco_score == NO_INFORMATION
    assert first.co2_estimate == NO_INFORMATION
    assert first.image_url == IMAGE_NOT_AVAILABLE
    assert first.labels == NO_LABEL_TAG
    assert first.has_palm_oil is TriState.UNKNOWN
    assert first.is_vegan is TriState.UNKNOWN


@pytest.mark.parametrize("barcode", [None, "", "   "])
def test_missing_barcode_gets_its_own_name(barcode):
    record = normalize(barcode, None)

    assert record.product_name == NO_BARCODE_NAME
    assert record.barcode == ""
    assert record.eco_score == NO_INFORMATION


def test_empty_result_counts_as_no_result():
    assert normalize("123", {}) == normalize("123", None)


def test_present_result_with_missing_fields_uses_field_defaults():
    record = normalize("123", {"code": "123"})

    assert record.product_name == NO_PRODUCT_NAME
    assert record.eco_score == NO_ECOSCORE
    assert record.co2_estimate == NO_CO2_SCORE
    assert record.image_url == NO_IMAGE_URL
    assert record.labels == []
    assert record.has_palm_oil is TriState.YES
    assert record.is_vegan is TriState.NO


def test_name_follows_language_priority():
    product = {"product_name_ru": "Молоко", "product_name_de": "Milch", "product_name_fr": "Lait"}
    assert normalize("1", product).product_name == "Milch"

    product["product_name"] = "Milk"
    assert normalize("1", product).product_name == "Milk"


def test_blank_names_are_skipped():
    product = {"product_name": "", "product_name_en": "  ", "product_name_it": "Latte"}
    assert resolve(PRODUCT_NAME, product) == "Latte"


def test_full_product():
    record = normalize(
        "3017620422003",
        {
            "product_name": "Nutella",
            "ecoscore_grade": "e",
            "ecoscore_data": {"agribalyse": {"co2_total": 8.2}},
            "labels_tags": ["en:no-palm-oil", "en:organic"],
            "image_url": "https://images.example/nutella.jpg",
        },
    )

    assert record.eco_score == "e"
    assert record.co2_estimate == "8.2"
    assert record.image_url == "https://images.example/nutella.jpg"
    assert record.has_palm_oil is TriState.NO
    assert record.is_vegan is TriState.NO


def test_partial_nested_co2_does_not_raise():
    record = normalize("1", {"product_name": "X", "ecoscore_data": {"agribalyse": None}})
    assert record.co2_estimate == NO_CO2_SCORE

    record = normalize("1", {"product_name": "X", "ecoscore_data": "broken"})
    assert record.co2_estimate == NO_CO2_SCORE
