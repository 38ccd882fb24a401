"""Value normalizers for mapping Magento records to WoowUp's schema.

These helpers are pure: they never call the source API. The record
transformer composes them with the lookups that need the API.
"""

import re
from typing import Any, Dict, Iterable, List, Optional

DOCUMENT_SEPARATORS = re.compile(r"[.\- ()]")
DOCUMENT_PATTERN = re.compile(r"^\d{7,}$")

GENDERS = {"1": "M", "2": "F"}

# Checked in order, first match wins
PAYMENT_TYPES = ["mercadopago", "todopago", "credit", "debit"]
DEFAULT_PAYMENT_TYPE = "other"

PRODUCT_VISIBILITY_IN_CATALOG = 2
PRODUCT_VISIBILITY_IN_SEARCH = 3
PRODUCT_VISIBILITY_BOTH = 4
VISIBLE = {PRODUCT_VISIBILITY_IN_CATALOG, PRODUCT_VISIBILITY_IN_SEARCH, PRODUCT_VISIBILITY_BOTH}

PRODUCT_STATUS_ENABLED = 1


def title_case(value: Any) -> str:
    """
    Trim, lower-case and capitalize the first letter of every word.

    Only letters following whitespace are capitalized, so ``"o'NEIL"``
    becomes ``"O'neil"``.
    """
    if value is None:
        return ""
    text = str(value).strip().lower()
    return re.sub(r"(^|\s)(\S)", lambda m: m.group(1) + m.group(2).upper(), text)


def is_empty(value: Any) -> bool:
    """Emptiness as the destination API understands it."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() in ("", "0")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) == 0
    return False


def clean_empty(record: Dict[str, Any]) -> Dict[str, Any]:
    """Drop empty values, one level into nested dicts."""
    cleaned = {}
    for key, value in record.items():
        if isinstance(value, dict):
            value = {k: v for k, v in value.items() if not is_empty(v)}
        if not is_empty(value):
            cleaned[key] = value
    return cleaned


def valid_document(document: Any) -> Optional[str]:
    """
    Validate a national-id-like document.

    Separator punctuation (``. - space ( )``) is stripped and the rest must
    be at least seven digits.

    Returns:
        The stripped document, or None if it is not valid
    """
    if document is None:
        return None
    stripped = DOCUMENT_SEPARATORS.sub("", str(document)).strip()
    if stripped and DOCUMENT_PATTERN.match(stripped):
        return stripped
    return None


def map_gender(code: Any) -> Optional[str]:
    """Map Magento gender codes: "1" -> M, "2" -> F, anything else -> None."""
    if code is None:
        return None
    return GENDERS.get(str(code).strip())


def get_payment_type(method: Any) -> str:
    """Classify a raw payment method string."""
    text = str(method or "").lower()
    for payment_type in PAYMENT_TYPES:
        if payment_type in text:
            return payment_type
    return DEFAULT_PAYMENT_TYPE


def to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def build_order_payment(payment_info: Dict[str, Any]) -> Dict[str, Any]:
    """Map ``payment.additional_information`` to a WoowUp payment block."""
    payment: Dict[str, Any] = {}

    if payment_info.get("payment_type_id"):
        payment["type"] = get_payment_type(payment_info["payment_type_id"])

    if payment_info.get("payment_method"):
        payment["brand"] = title_case(payment_info["payment_method"])

    if payment_info.get("cardTruncated"):
        payment["first_digits"] = str(payment_info["cardTruncated"]).replace(" ", "")[:6]

    if payment_info.get("installments"):
        payment["installments"] = to_int(str(payment_info["installments"]).strip())

    if payment_info.get("total_amount"):
        payment["amount"] = to_float(payment_info["total_amount"])

    return payment


def build_prices(order: Dict[str, Any]) -> Dict[str, float]:
    """
    Order-level prices.

    The discount is a positive magnitude even when Magento stores it as a
    negative amount, and ``total = gross - discount``.
    """
    gross = to_float(order.get("base_subtotal"))
    discount = abs(to_float(order.get("base_discount_amount")))
    return {
        "gross": gross,
        "discount": discount,
        "tax": to_float(order.get("base_tax_amount")),
        "shipping": to_float(order.get("base_shipping_amount")),
        "total": gross - discount,
    }


def pick_media_url(media: Iterable[Dict[str, Any]], label: Optional[str] = None) -> Optional[str]:
    """
    Choose an image URL from a product's media gallery.

    The asset whose label matches ``label`` wins; otherwise the asset with the
    lowest position is used.
    """
    lowest = None
    for asset in media:
        if label and asset.get("label") == label:
            return asset.get("url")
        if lowest is None or to_int(asset.get("position"), 0) < to_int(lowest.get("position"), 0):
            lowest = asset
    return lowest.get("url") if lowest else None


def flatten_category_tree(tree: List[Dict[str, Any]], parent_path: Optional[List[Any]] = None) -> Dict[Any, Dict]:
    """
    Flatten a category tree into an id-keyed map.

    Every node carries ``path``: the ids of its ancestors, root first.

    Args:
        tree: Nodes with ``id``, ``name``, ``url_path``, ``image`` and ``children``
        parent_path: Ancestor ids of the nodes in ``tree``

    Returns:
        Mapping of category id to ``{id, name, url, image_url, path}``
    """
    parent_path = parent_path or []
    categories: Dict[Any, Dict] = {}

    for leaf in tree:
        categories[leaf["id"]] = {
            "id": leaf["id"],
            "name": title_case(leaf.get("name")),
            "url": leaf.get("url_path") or "",
            "image_url": leaf.get("image") or "",
            "path": list(parent_path),
        }

        if leaf.get("children"):
            categories.update(flatten_category_tree(leaf["children"], parent_path + [leaf["id"]]))

    return categories


class CategoryIndex:
    """Read-only category lookup built once per run."""

    def __init__(self, categories: Optional[Dict[Any, Dict]] = None):
        self._categories = {str(k): v for k, v in (categories or {}).items()}

    @classmethod
    def from_tree(cls, tree: List[Dict[str, Any]]) -> "CategoryIndex":
        return cls(flatten_category_tree(tree))

    def __len__(self) -> int:
        return len(self._categories)

    def __contains__(self, category_id: Any) -> bool:
        return str(category_id) in self._categories

    def get(self, category_id: Any) -> Optional[Dict]:
        return self._categories.get(str(category_id))

    def breadcrumb(self, category_ids: List[Any]) -> List[Dict]:
        """
        Ancestor-to-leaf breadcrumb for the last category of a product.

        Walking stops at the first ancestor missing from the index.
        """
        if not category_ids:
            return []

        leaf = self.get(category_ids[-1])
        if leaf is None:
            return []

        crumbs = [leaf]
        for parent_id in reversed(leaf["path"]):
            parent = self.get(parent_id)
            if parent is None:
                break
            crumbs.insert(0, parent)

        return [{k: v for k, v in node.items() if k != "path"} for node in crumbs]
