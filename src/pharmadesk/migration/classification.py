"""Classification of medicines, patients and prescriptions."""

from collections import Counter
from typing import Any, Dict, Iterable, Optional

# Medicine categories based on Indian pharmacy standards
MEDICINE_CATEGORIES = {
    "Painkiller": [
        "paracetamol", "ibuprofen", "aspirin", "diclofenac", "aceclofenac", "nimesulide",
        "tramadol",
    ],
    "Antibiotic": [
        "amoxicillin", "azithromycin", "ciprofloxacin", "ofloxacin", "cefixime", "cillin",
        "penicillin", "doxycycline", "clindamycin",
    ],
    "Diabetic": [
        "metformin", "glimepiride", "sitagliptin", "insulin", "glipizide", "gliclazide",
        "linagliptin",
    ],
    "Antihypertensive": [
        "amlodipine", "telmisartan", "losartan", "enalapril", "ramipril", "olmesartan",
        "nebivolol",
    ],
    "Antihistamine": [
        "cetirizine", "fexofenadine", "loratadine", "chlorpheniramine", "levocetirizine",
        "desloratadine",
    ],
    "Cardiac": [
        "atorvastatin", "clopidogrel", "aspirin", "rosuvastatin", "enoxaparin", "nitroglycerin",
        "isosorbide",
    ],
    "Antacid": ["pantoprazole", "omeprazole", "ranitidine", "esomeprazole", "famotidine", "sucralfate"],
    "Steroid": [
        "prednisolone", "dexamethasone", "hydrocortisone", "methylprednisolone", "betamethasone",
    ],
    "Anti-inflammatory": [
        "diclofenac", "aceclofenac", "naproxen", "etoricoxib", "celecoxib", "meloxicam",
    ],
    "Respiratory": [
        "salbutamol", "montelukast", "theophylline", "ipratropium", "budesonide", "formoterol",
    ],
}  # fmt: skip

CONTROLLED_SUBSTANCES = [
    "schedule h1", "schedule x", "morphine", "codeine", "fentanyl", "buprenorphine",
    "alprazolam", "diazepam", "tramadol", "zolpidem", "methylphenidate",
]  # fmt: skip


def classify_medicine(generic_name: Optional[str] = None, name: Optional[str] = None) -> str:
    """Return the first category whose keyword appears in the generic or brand name."""
    search_text = (generic_name or name or "").lower()
    for category, keywords in MEDICINE_CATEGORIES.items():
        if any(keyword in search_text for keyword in keywords):
            return category
    return "Other"


def is_controlled_substance(schedule: Optional[str] = None, name: Optional[str] = None) -> bool:
    search_text = f"{schedule or ''} {name or ''}".lower()
    return any(substance in search_text for substance in CONTROLLED_SUBSTANCES)


def classify_patient(patient: Dict[str, Any]) -> str:
    """Classify a patient as Chronic, New, Regular or Occasional from their history."""
    visit_count = patient.get("visit_count") or 0
    if visit_count > 5 and patient.get("chronic_diseases"):
        return "Chronic"
    if patient.get("is_first_visit"):
        return "New"
    if (patient.get("recent_prescription_count") or 0) > 3:
        return "Regular"
    return "Occasional"


def classify_prescription(items: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Classify a prescription by its line items.

    A prescription is Controlled if any item is a controlled substance, and
    polytherapy if two or more items fall in the same medicine category.

    Returns:
        Dict with ``prescription_type`` and ``polytherapy``
    """
    items = list(items)
    controlled = any(
        is_controlled_substance(item.get("schedule"), item.get("name")) for item in items
    )
    categories = Counter(classify_medicine(item.get("name"), item.get("name")) for item in items)

    return {
        "prescription_type": "Controlled" if controlled else "Regular",
        "polytherapy": any(count > 1 for count in categories.values()),
    }
