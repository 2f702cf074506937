"""Serializers for exported product records.

Provides formatters for:
- CSV (marketplace product import sheet)
- YML/XML catalog
"""

import csv
import io
import re
import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from xml.sax.saxutils import escape, quoteattr

from prom_parser.config import settings
from prom_parser.ingest.base import Availability, Product

CSV_HEADERS = [
    "Product_Code",
    "Item_Name",
    "Search_Queries",
    "Description",
    "Item_Type",
    "Price",
    "Currency",
    "Unit",
    "Image_Links",
    "Availability",
    "Group_Name",
    "Manufacturer",
    "Discount",
    "Old_Price",
    "SKU",
    "Attributes",
]

ATTRIBUTE_SEPARATOR = "|"
IMAGE_SEPARATOR = ", "
SKU_PARAM_NAME = "Артикул"


def group_name(product: Product, default: Optional[str] = None) -> str:
    """Leaf category of a product, falling back to the default group."""
    if product.category_path:
        return product.category_path[-1]
    return (product.category_name or "").strip() or (default or settings.default_category_name)


def product_code(product: Product) -> str:
    """Identifier written to the import sheet."""
    if product.external_id:
        return product.external_id
    digits = re.sub(r"[^0-9]", "", product.id)[:10]
    return digits or str(int(time.time() * 1000))


def _number(value: Optional[float]):
    if value is None:
        return ""
    value = round(float(value), 2)
    return int(value) if value.is_integer() else value


def format_csv(products: Iterable[Product]) -> str:
    """
    Render products as a CSV import sheet.

    String cells are quoted (inner quotes doubled), numeric cells are not.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for product in products:
        attributes = ATTRIBUTE_SEPARATOR.join(f"{a.name}:{a.value}" for a in product.attributes)
        writer.writerow([
            product_code(product),
            product.title,
            "",
            product.description or "",
            "r",
            _number(product.price),
            product.currency,
            "pcs",
            IMAGE_SEPARATOR.join(product.all_images),
            "+" if product.availability is Availability.IN_STOCK else "-",
            group_name(product),
            "",
            _number(product.discount),
            _number(product.old_price),
            product.sku or "",
            attributes,
        ])

    return buffer.getvalue()


def build_category_ids(products: Iterable[Product]) -> Dict[str, int]:
    """Stable integer id per leaf category; the default group is always 1."""
    categories = {settings.default_category_name: 1}
    for product in products:
        name = group_name(product)
        if name not in categories:
            categories[name] = len(categories) + 1
    return categories


def cdata(text: str) -> str:
    """Wrap text in CDATA, splitting any terminator sequence inside it."""
    return "<![CDATA[" + (text or "").replace("]]>", "]]]]><![CDATA[>") + "]]>"


def offer_id(product: Product) -> str:
    return product.external_id or re.sub(r"[^a-zA-Z0-9]", "", product.id)


def _format_offer(product: Product, category_id: int) -> List[str]:
    available = "true" if product.availability is Availability.IN_STOCK else "false"
    lines = [
        f"    <offer id={quoteattr(offer_id(product))} available=\"{available}\">",
        f"      <name>{escape(product.title)}</name>",
        f"      <price>{_number(product.price)}</price>",
    ]
    if product.old_price is not None:
        lines.append(f"      <oldprice>{_number(product.old_price)}</oldprice>")
    lines.append(f"      <currencyId>{escape(product.currency)}</currencyId>")
    lines.append(f"      <categoryId>{category_id}</categoryId>")
    for image in product.all_images:
        lines.append(f"      <picture>{escape(image)}</picture>")
    lines.append(f"      <url>{escape(product.link)}</url>")
    lines.append(f"      <vendor>{escape(product.seller)}</vendor>")
    if product.sku:
        lines.append(f"      <vendorCode>{escape(product.sku)}</vendorCode>")
    lines.append(f"      <description>{cdata(product.description)}</description>")
    for attr in product.attributes:
        lines.append(f"      <param name={quoteattr(attr.name)}>{escape(attr.value)}</param>")
    if product.sku:
        lines.append(f"      <param name={quoteattr(SKU_PARAM_NAME)}>{escape(product.sku)}</param>")
    lines.append("      <param name=\"Condition\">New</param>")
    lines.append("    </offer>")
    return lines


def format_yml(products: Sequence[Product], generated_at: Optional[datetime] = None) -> str:
    """
    Render products as a YML catalog document.

    Args:
        products: Products to export
        generated_at: Catalog date (defaults to now)

    Returns:
        XML document text
    """
    generated_at = generated_at or datetime.now()
    categories = build_category_ids(products)
    currency = settings.currency

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f"<yml_catalog date=\"{generated_at.strftime('%Y-%m-%d %H:%M')}\">",
        "  <shop>",
        f"    <name>{escape(settings.export_shop_name)}</name>",
        f"    <company>{escape(settings.export_company_name)}</company>",
        f"    <url>{escape(settings.base_url)}</url>",
        "    <currencies>",
        f"      <currency id={quoteattr(currency)} rate=\"1\"/>",
        "    </currencies>",
        "    <categories>",
    ]
    for name, category_id in categories.items():
        lines.append(f"      <category id=\"{category_id}\">{escape(name)}</category>")
    lines.append("    </categories>")
    lines.append("    <offers>")
    for product in products:
        lines.extend(_format_offer(product, categories[group_name(product)]))
    lines.append("    </offers>")
    lines.append("  </shop>")
    lines.append("</yml_catalog>")
    return "\n".join(lines) + "\n"
