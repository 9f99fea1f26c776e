"""
Order and visit-report line financials, recomputed on every save.
"""

from typing import Any, Dict, List


def _num(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def compute_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    item_total = unitPrice * quantity
    discount   = item_total * discount%
    tax        = (item_total - discount) * taxRate%
    totalAmount = item_total - discount + tax
    """
    item_total = _num(item.get("unitPrice")) * _num(item.get("quantity"))
    discount = item_total * _num(item.get("discount")) / 100
    taxable = item_total - discount
    tax = taxable * _num(item.get("taxRate")) / 100
    computed = dict(item)
    computed["totalAmount"] = round(taxable + tax, 2)
    return computed


def compute_financials(items: List[Dict[str, Any]], shipping_charges: Any = 0) -> Dict[str, Any]:
    subtotal = 0.0
    total_discount = 0.0
    total_tax = 0.0
    for item in items:
        item_total = _num(item.get("unitPrice")) * _num(item.get("quantity"))
        discount = item_total * _num(item.get("discount")) / 100
        subtotal += item_total
        total_discount += discount
        total_tax += (item_total - discount) * _num(item.get("taxRate")) / 100

    shipping = _num(shipping_charges)
    return {
        "subtotal": round(subtotal, 2),
        "totalDiscount": round(total_discount, 2),
        "totalTax": round(total_tax, 2),
        "shippingCharges": round(shipping, 2),
        "grandTotal": round(subtotal - total_discount + total_tax + shipping, 2),
    }


def apply_order_totals(order: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `order` with item totals and `financial` recomputed."""
    doc = dict(order)
    items = [compute_item(i) for i in doc.get("items") or []]
    shipping = (doc.get("financial") or {}).get("shippingCharges", 0)
    doc["items"] = items
    doc["financial"] = compute_financials(items, shipping)
    return doc


def apply_visit_order_totals(orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Visit-report order lines: totalAmount = unitPrice * quantity."""
    lines = []
    for line in orders or []:
        computed = dict(line)
        computed["totalAmount"] = round(_num(line.get("unitPrice")) * _num(line.get("quantity")), 2)
        lines.append(computed)
    return lines
