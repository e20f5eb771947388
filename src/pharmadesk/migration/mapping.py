"""Detection and application of source column mappings.

Source systems name their columns in many ways (``MRP``, ``Qty``,
``Exp Date``...). A mapping sends each source header to one canonical field
name used by the import processor.
"""

import re
from typing import Any, Dict, Iterable, List

_SEP = r"[\s_-]?"


def _patterns(*expressions: str) -> List["re.Pattern[str]"]:
    return [re.compile(f"^{expr.replace('{sep}', _SEP)}$", re.IGNORECASE) for expr in expressions]


# Checked in order; the first field whose pattern matches wins
FIELD_PATTERNS = {
    "name": _patterns(
        r"med(icine)?{sep}name", r"product{sep}name", r"drug{sep}name", r"item{sep}name",
        r"prod(uct)?{sep}(title|name)", r"title", r"med{sep}title", r"product_item",
        r"item{sep}descr(iption)?", r"drug{sep}descr(iption)?", r"med{sep}descr(iption)?",
        r"item{sep}p", r"p{sep}name",
    ),
    "generic_name": _patterns(
        r"generic", r"gen{sep}name", r"generic{sep}descr(iption)?", r"chemical{sep}name",
        r"molecule", r"mol{sep}name", r"mole?{sep}name", r"cmn", r"inn",
    ),
    "manufacturer": _patterns(
        r"mfg", r"manufacturer", r"company", r"maker", r"vendor", r"manuf", r"comp{sep}name",
        r"firm", r"producer", r"lab", r"laboratory", r"brand",
    ),
    "batch_number": _patterns(
        r"batch", r"lot{sep}no", r"batch{sep}number", r"lot{sep}number", r"lot{sep}id", r"ndc",
        r"batch{sep}id", r"lot", r"batch{sep}no", r"serial{sep}no", r"serial",
    ),
    "expiry_date": _patterns(
        r"exp", r"expir[ey]", r"expir(y|ation){sep}date", r"valid{sep}until", r"exp{sep}date",
        r"use{sep}by", r"good{sep}until", r"exp{sep}dt", r"perm", r"shelf{sep}life",
    ),
    "quantity": _patterns(
        r"qty", r"quant(ity)?", r"stock", r"avail(able)?{sep}units", r"count", r"units",
        r"stock{sep}level", r"avail(able)?{sep}count", r"inventory", r"inv{sep}count",
        r"stock{sep}qty", r"pcs", r"in{sep}stock", r"on{sep}hand",
    ),
    "unit_cost": _patterns(
        r"cost", r"buy{sep}price", r"purchase{sep}price", r"cost{sep}price", r"unit{sep}cost",
        r"acquisition{sep}cost", r"per{sep}unit{sep}cost", r"wholesale{sep}price", r"wsp",
        r"base{sep}price", r"cp",
    ),
    "selling_price": _patterns(
        r"mrp", r"sell{sep}price", r"retail{sep}price", r"price", r"sales{sep}price",
        r"unit{sep}price", r"msp", r"max{sep}retail{sep}price", r"sp", r"rp", r"rate",
    ),
    "hsn_code": _patterns(
        r"hsn{sep}code", r"gst{sep}code", r"tax{sep}code", r"tax{sep}class", r"tariff",
        r"tax{sep}category",
    ),
    "patient_name": _patterns(
        r"patient{sep}name", r"client{sep}name", r"customer{sep}name", r"cust{sep}name",
        r"pt{sep}name", r"person", r"full{sep}name", r"name",
    ),
    "phone_number": _patterns(
        r"phone", r"mobile", r"contact", r"phone{sep}number", r"mobile{sep}number", r"tel",
        r"telephone", r"contact{sep}number", r"cell", r"cell{sep}number", r"ph{sep}no",
        r"mob{sep}no",
    ),
    "prescription_number": _patterns(
        r"rx{sep}(no|number)", r"prescription{sep}(no|number)", r"script{sep}(no|number)",
        r"presc{sep}(no|number)", r"rx{sep}id", r"script{sep}id", r"order{sep}(no|number|id)",
    ),
    "doctor_name": _patterns(
        r"doctor", r"physician", r"prescribed{sep}by", r"dr{sep}name", r"prescriber", r"md",
        r"doctor{sep}name", r"practitioner", r"consultant",
    ),
    "date": _patterns(
        r"date", r"rx{sep}date", r"prescription{sep}date", r"prescribed{sep}(on|date)",
        r"issue{sep}date", r"order{sep}date", r"visit{sep}date", r"pres{sep}date",
        r"created{sep}(on|at|date)",
    ),
}  # fmt: skip

# Substring fallback for headers no pattern matched
FIELD_KEYWORDS = {
    "name": ["name", "title", "product", "medicine", "drug", "item"],
    "generic_name": ["generic", "molecule", "chemical"],
    "manufacturer": ["manufacturer", "company", "vendor", "maker", "producer", "lab"],
    "batch_number": ["batch", "lot", "serial", "ndc"],
    "expiry_date": ["expiry", "expire", "expiration", "valid until", "use by"],
    "quantity": ["quantity", "qty", "stock", "count", "units", "inventory"],
    "unit_cost": ["cost", "buy price", "purchase price"],
    "selling_price": ["selling", "price", "mrp", "retail", "sale"],
    "phone_number": ["phone", "mobile", "contact", "cell"],
    "prescription_number": ["rx", "prescription", "script"],
    "doctor_name": ["doctor", "physician", "dr", "prescriber"],
    "date": ["date", "issued", "created", "order date"],
    "patient_name": ["patient", "client", "customer", "person"],
}


def detect_field(header: str) -> str:
    """Return the canonical field for a header, or an empty string if none fits."""
    clean = header.strip()
    for field_name, patterns in FIELD_PATTERNS.items():
        if any(pattern.match(clean) for pattern in patterns):
            return field_name

    lower = clean.lower()
    for field_name, keywords in FIELD_KEYWORDS.items():
        if any(keyword in lower for keyword in keywords):
            return field_name
    return ""


def auto_detect_field_mappings(headers: Iterable[str]) -> Dict[str, str]:
    """Map each recognised source header to its canonical field name.

    Unrecognised headers are left out of the result.
    """
    mappings = {}
    for header in headers:
        field_name = detect_field(header)
        if field_name:
            mappings[header] = field_name
    return mappings


def apply_mappings(rows: Iterable[Dict[str, Any]], mappings: Dict[str, str]) -> List[Dict[str, Any]]:
    """Rename source columns to canonical fields, dropping unmapped columns.

    ``patient_name`` is folded into ``name``, which is the field the patient
    import reads.
    """
    mapped_rows = []
    for row in rows:
        mapped: Dict[str, Any] = {}
        for source_key, target_key in mappings.items():
            if source_key in row:
                mapped[target_key] = row[source_key]
        if "patient_name" in mapped and "name" not in mapped:
            mapped["name"] = mapped.pop("patient_name")
        mapped_rows.append(mapped)
    return mapped_rows
