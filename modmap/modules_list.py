from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from modmap.hierarchy import leaf_names
from modmap.records import Record

REPO_URL_TEMPLATE = "https://github.com/folio-org/{module}"

PRODUCT_OWNER_KEY = "product owner"
LEAD_KEY = "dev lead/contact"


def module_details(records: Iterable[Record]) -> Dict[str, Record]:
    """Index records by module name; a repeated module keeps its last record."""
    return {record["module"]: record for record in records if record.get("module")}


def compute_modules_list(tree: Any, records: Iterable[Record]) -> List[Dict[str, Any]]:
    details = module_details(records)
    out: List[Dict[str, Any]] = []
    for name in leaf_names(tree):
        info: Mapping[str, str] = details.get(name, {})
        out.append(
            {
                "module": name,
                "url": REPO_URL_TEMPLATE.format(module=name),
                "application": info.get("application") or "",
                "team": info.get("team") or "",
                "product_owner": info.get(PRODUCT_OWNER_KEY) or "-",
                "lead": info.get(LEAD_KEY) or "-",
            }
        )
    return out
