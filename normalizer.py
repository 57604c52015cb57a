"""
Turn a raw product lookup result into the record stored in the pantry.

Each field has an ordered list of extractors and two defaults: one used when
a lookup result exists but the field is missing, and one used when there is
no lookup result at all. The lookup itself happens elsewhere, so this module
is a pure function of (barcode, lookup_result).
"""

from typing import Any, Callable, List, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel

from models import TriState

NO_INFORMATION = "No information"
NO_PRODUCT_NAME = "No product name"
NO_RESULT_NAME = "No Product Name"
NO_BARCODE_NAME = "My product (outside external database)"
NO_ECOSCORE = "No ecoscore"
NO_CO2_SCORE = "No co2 score"
NO_IMAGE_URL = "No image url"
IMAGE_NOT_AVAILABLE = "Image is not available (outside external database)"
NO_LABEL_TAG = "No label tag (outside external database)"

NO_PALM_OIL_TAG = "en:no-palm-oil"
VEGAN_TAG = "en:vegan"

NAME_LANGUAGES = ("", "en", "de", "it", "pl", "fr", "lt", "ru")


class ProductRecord(BaseModel):
    barcode: str = ""
    product_name: str
    eco_score: str
    co2_estimate: str
    labels: Union[List[str], str]
    image_url: str
    has_palm_oil: TriState
    is_vegan: TriState


class FieldRule(NamedTuple):
    extractors: Tuple[Callable[[dict], Any], ...]
    field_missing: Any
    result_missing: Any


def _key(name):
    return lambda product: product.get(name)


def _path(*names):
    def extract(product):
        value = product
        for name in names:
            if not isinstance(value, dict):
                return None
            value = value.get(name)
        return value
    return extract


def _name_key(language):
    return _key(f"product_name_{language}" if language else "product_name")


PRODUCT_NAME = FieldRule(tuple(_name_key(lang) for lang in NAME_LANGUAGES), NO_PRODUCT_NAME, NO_RESULT_NAME)
ECO_SCORE = FieldRule((_key("ecoscore_grade"),), NO_ECOSCORE, NO_INFORMATION)
CO2_ESTIMATE = FieldRule((_path("ecoscore_data", "agribalyse", "co2_total"),), NO_CO2_SCORE, NO_INFORMATION)
IMAGE_URL = FieldRule((_key("image_url"),), NO_IMAGE_URL, IMAGE_NOT_AVAILABLE)


def _present(value):
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def resolve(rule: FieldRule, product: Optional[dict]):
    """Apply a FieldRule: first present extractor value, else the matching default."""
    if not product:
        return rule.result_missing
    for extract in rule.extractors:
        value = extract(product)
        if _present(value):
            return value
    return rule.field_missing


def _labels(product):
    if not product:
        return NO_LABEL_TAG
    tags = product.get("labels_tags")
    if not isinstance(tags, list):
        return []
    return [str(tag) for tag in tags]


def normalize(barcode: Optional[str], lookup_result: Optional[dict]) -> ProductRecord:
    product = lookup_result if isinstance(lookup_result, dict) and lookup_result else None
    barcode = (barcode or "").strip()

    labels = _labels(product)
    if product is None:
        has_palm_oil = TriState.UNKNOWN
        is_vegan = TriState.UNKNOWN
    else:
        # a missing "no palm oil" label counts as palm oil
        has_palm_oil = TriState.NO if NO_PALM_OIL_TAG in labels else TriState.YES
        is_vegan = TriState.YES if VEGAN_TAG in labels else TriState.NO

    if product is None and not barcode:
        product_name = NO_BARCODE_NAME
    else:
        product_name = str(resolve(PRODUCT_NAME, product))

    return ProductRecord(
        barcode=barcode,
        product_name=product_name,
        eco_score=str(resolve(ECO_SCORE, product)),
        co2_estimate=str(resolve(CO2_ESTIMATE, product)),
        labels=labels,
        image_url=str(resolve(IMAGE_URL, product)),
        has_palm_oil=has_palm_oil,
        is_vegan=is_vegan,
    )
