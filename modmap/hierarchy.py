"""Group flat inventory records into a team -> application -> module tree.

Nodes are plain dicts (``{"name": ..., "children": [...]}``) so they can be
handed to the API or a JS renderer unchanged. Leaves have no ``children``
key at all; downstream code tells leaves from groups by the key's absence.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping

from modmap.errors import EmptyDatasetError

logger = logging.getLogger(__name__)

Node = Dict[str, Any]

DEFAULT_ROOT_NAME = "FOLIO"


def _clean(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def is_leaf(node: Mapping[str, Any]) -> bool:
    return "children" not in node


def _group_teams(records: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    teams: Dict[str, Dict[str, Any]] = {}
    skipped = 0

    for record in records:
        team = _clean(record.get("team"))
        module = _clean(record.get("module"))
        if not team or not module:
            skipped += 1
            logger.debug("Skipping record without team/module: %r", dict(record))
            continue
        application = _clean(record.get("application"))

        entry = teams.get(team)
        if entry is None:
            entry = {"name": team, "applications": {}, "modules": []}
            teams[team] = entry

        if application:
            app = entry["applications"].get(application)
            if app is None:
                app = {"name": application, "children": []}
                entry["applications"][application] = app
            app["children"].append({"name": module})
        else:
            entry["modules"].append({"name": module})

    if skipped:
        logger.info("Skipped %d record(s) missing team or module", skipped)
    return list(teams.values())


def build_hierarchy(table: Iterable[Mapping[str, Any]], root_name: str = DEFAULT_ROOT_NAME) -> Node:
    """Build the nested tree for ``table``.

    The root is a synthetic ``root_name`` node over all teams, except when
    there is one team with exactly one child: then the root collapses to
    ``"<team> - <child>"`` and takes over that child's children. The check
    does not care whether the child is an application group or a lone
    module; a lone module collapses into a childless root.

    Raises:
        EmptyDatasetError: no record carries both a team and a module.
    """
    grouped = _group_teams(table)
    if not grouped:
        raise EmptyDatasetError("No records with both a team and a module")

    teams: List[Node] = []
    for entry in grouped:
        children: List[Node] = list(entry["applications"].values())
        children.extend(entry["modules"])
        teams.append({"name": entry["name"], "children": children})

    if len(teams) > 1 or len(teams[0]["children"]) != 1:
        return {"name": root_name, "children": teams}

    team = teams[0]
    first = team["children"][0]
    root: Node = {"name": f"{team['name']} - {first['name']}"}
    if not is_leaf(first):
        root["children"] = list(first["children"])
    return root


def iter_nodes(tree: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    """Pre-order walk over ``tree``."""
    stack = [tree]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.get("children", [])))


def leaf_names(tree: Any) -> List[str]:
    """Names of every leaf under ``tree`` (a node or a list of nodes), depth first."""
    names: List[str] = []

    def traverse(node: Any) -> None:
        if isinstance(node, list):
            for child in node:
                traverse(child)
        elif isinstance(node, Mapping):
            if "name" in node and "children" not in node:
                names.append(node["name"])
            elif "children" in node:
                traverse(node["children"])

    traverse(tree)
    return names
