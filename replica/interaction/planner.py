"""Interaction Planner — deduplicated, priority-ranked interaction targets.

Targets are nominated by three passes in fixed precedence:
1. a full tree visit (nodes with interactive-state evidence, or whose
   role / tag / component type is interactive),
2. the explicit selector list from state-capture evidence,
3. the command list from the external workflow generator.

Every nomination goes through ``TargetRegistry.add``: one target per
``nodeId || selector`` key; repeat nominations only fill missing fields and
union ``sources`` / ``availableStates``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..evidence.resolver import Resolver
from ..evidence.schemas import BuildOptions
from ..nodes.binder import (
    build_component_context,
    build_section_index,
    create_node_index,
    resolve_section_for_node,
)
from .actions import BATCH_RUNNER_SCRIPT, TOOL_EVALUATE, build_recommendation_actions

logger = logging.getLogger(__name__)

SOURCE_STATE_SUMMARY = "state-summary"
SOURCE_HEURISTIC = "heuristic"
SOURCE_STATE_SELECTOR = "state-selector"
SOURCE_MCP_COMMAND = "mcp-command"

INTERACTIVE_ROLES = {
    "button", "link", "menuitem", "tab", "checkbox", "radio", "switch",
    "combobox", "textbox", "option",
}
INTERACTIVE_TAGS = {"button", "a", "input", "select", "textarea"}
INTERACTIVE_COMPONENTS = {
    "button", "navItem", "input", "submitButton", "checkbox", "radio", "tab", "menu",
}

CTA_KEYWORDS = [
    "get started", "start", "submit", "login", "sign up", "signup", "buy", "download", "add",
    "next", "prev", "previous", "read more", "learn more", "explore", "action", "try", "create",
]
NAV_KEYWORDS = ["home", "about", "pricing", "docs", "guide", "blog", "contact"]

_BUTTON_TYPES = {"button", "submitButton"}
_NAV_TYPES = {"navItem", "tab", "menu"}
_PRIORITY_ROLES = {"button", "link", "menuitem", "tab", "combobox", "textbox"}
_SECTION_BONUS = {"hero": 18, "header": 8, "navigation": 6}

# Scalar fields filled from the node only when still missing
_NODE_FIELDS = ("tag", "semanticRole", "semanticName", "accessibleRole", "accessibleName")


# ---------------------------------------------------------------------------
# Priority
# ---------------------------------------------------------------------------


def priority_level(score: int) -> str:
    if score >= 70:
        return "high"
    if score >= 40:
        return "medium"
    return "low"


def compute_priority(node: Optional[Dict[str, Any]], source: Optional[str],
                     state_info: Optional[Dict[str, Any]] = None,
                     component: Optional[Dict[str, Any]] = None,
                     section: Optional[Dict[str, Any]] = None,
                     viewport_height: Optional[float] = None) -> Dict[str, Any]:
    """Score a target 0-100 and map it to low / medium / high."""
    node = node or {}
    score = 10
    name = (node.get("semanticName") or node.get("text") or "").lower()
    role = node.get("semanticRole") or node.get("role") or ""
    comp_type = (component or {}).get("type") or (node.get("component") or {}).get("type") or ""
    section_role = (section or {}).get("role") or ""

    if (node.get("state") or {}).get("hasInteractiveStates"):
        score += 30
    if len((state_info or {}).get("states") or {}) > 1:
        score += 10
    if source in (SOURCE_STATE_SELECTOR, SOURCE_MCP_COMMAND):
        score += 20

    if comp_type in _BUTTON_TYPES:
        score += 30
    if comp_type in _NAV_TYPES:
        score += 12
    if role in _PRIORITY_ROLES:
        score += 12

    score += _SECTION_BONUS.get(section_role, 0)

    if name:
        if any(k in name for k in CTA_KEYWORDS):
            score += 20
        elif any(k in name for k in NAV_KEYWORDS):
            score += 6

    rect = node.get("rect")
    if rect:
        area = rect.get("width", 0) * rect.get("height", 0)
        if area >= 50000:
            score += 20
        elif area >= 20000:
            score += 10
        if viewport_height and rect.get("y", 0) <= viewport_height * 0.8:
            score += 10

    score = max(0, min(100, score))
    return {"score": score, "level": priority_level(score)}


def is_interactive_node(node: Dict[str, Any]) -> bool:
    return (
        node.get("role") in INTERACTIVE_ROLES
        or node.get("semanticRole") in INTERACTIVE_ROLES
        or node.get("tag") in INTERACTIVE_TAGS
        or (node.get("component") or {}).get("type") in INTERACTIVE_COMPONENTS
    )


# ---------------------------------------------------------------------------
# Target registry
# ---------------------------------------------------------------------------


def _component_ref(component: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not component or not component.get("id"):
        return None
    return {"id": component["id"], "type": component.get("type"), "variant": component.get("variant")}


def _section_ref(section: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not section or not section.get("id"):
        return None
    return {"id": section["id"], "name": section.get("name"), "role": section.get("role")}


@dataclass
class TargetRegistry:
    """Deduplicating target map with a size budget."""

    limit: Optional[int] = None
    component_context: Dict[str, Any] = field(default_factory=dict)
    section_index: Optional[Dict[str, Any]] = None
    viewport_height: Optional[float] = None
    targets: List[Dict[str, Any]] = field(default_factory=list)
    by_key: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    limit_reached: bool = False

    def add(self, node: Optional[Dict[str, Any]], selector: Optional[str], source: Optional[str],
            state_info: Optional[Dict[str, Any]] = None) -> None:
        if self.limit is not None and len(self.targets) >= self.limit:
            if not self.limit_reached:
                logger.info("Interaction target limit reached (%d)", self.limit)
            self.limit_reached = True
            return
        key = (node or {}).get("uid") or selector
        if not key:
            return

        component = self.component_context.get(node["uid"]) if node else None
        section = resolve_section_for_node(node, component, self.section_index)
        priority = compute_priority(node, source, state_info, component, section, self.viewport_height)
        states = list((state_info or {}).get("states") or {})

        entry = self.by_key.get(key)
        if entry is None:
            self._create(key, node, selector, source, component, section, priority, states)
        else:
            self._merge(entry, node, selector, source, component, section, priority, states)

    def _create(self, key, node, selector, source, component, section, priority, states) -> None:
        node = node or {}
        entry: Dict[str, Any] = {
            "nodeId": node.get("uid"),
            "selector": selector or node.get("selector"),
            **{f: node.get(f) for f in _NODE_FIELDS},
            "keyChanges": list((node.get("state") or {}).get("keyChanges") or []),
            "source": source,
            "sources": [source] if source else [],
            "priority": priority,
        }
        if _component_ref(component):
            entry["component"] = _component_ref(component)
        if _section_ref(section):
            entry["section"] = _section_ref(section)
        if states:
            entry["availableStates"] = states
        self.targets.append(entry)
        self.by_key[key] = entry

    def _merge(self, entry, node, selector, source, component, section, priority, states) -> None:
        node = node or {}
        if source and source not in entry["sources"]:
            entry["sources"].append(source)
        if not entry.get("selector"):
            entry["selector"] = selector or node.get("selector")
        if not entry.get("nodeId") and node.get("uid"):
            entry["nodeId"] = node["uid"]
        for f in _NODE_FIELDS:
            if not entry.get(f) and node.get(f):
                entry[f] = node[f]
        if not entry.get("keyChanges"):
            entry["keyChanges"] = list((node.get("state") or {}).get("keyChanges") or [])
        if not entry.get("component") and _component_ref(component):
            entry["component"] = _component_ref(component)
        if not entry.get("section") and _section_ref(section):
            entry["section"] = _section_ref(section)
        if states:
            merged = list(entry.get("availableStates") or [])
            merged += [s for s in states if s not in merged]
            entry["availableStates"] = merged
        # Derived: keep the stronger evidence
        if priority["score"] > entry["priority"]["score"]:
            entry["priority"] = priority


# ---------------------------------------------------------------------------
# Plan sections
# ---------------------------------------------------------------------------


def collect_state_workflows(state_capture: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    workflows: Dict[str, Any] = {}
    if state_capture.get("batchWorkflow"):
        workflows["batch"] = state_capture["batchWorkflow"]
    if state_capture.get("mcpCommands"):
        workflows["elements"] = state_capture["mcpCommands"]
    return workflows or None


def build_state_matrix(state_capture: Dict[str, Any]) -> Optional[Dict[str, List[str]]]:
    """selector -> captured state names (captured matrix first, then fallback)."""
    matrix: Dict[str, List[str]] = {}
    sources = [(state_capture.get("captured") or {}).get("states") or {}, state_capture.get("fallback") or {}]
    for source in sources:
        for selector, data in source.items():
            names = list((data or {}).get("states") or {})
            if not names:
                continue
            current = matrix.setdefault(selector, [])
            current += [n for n in names if n not in current]
    return matrix or None


def _push_sample(samples: List[str], value: Optional[str], limit: int) -> None:
    if value and len(samples) < limit and value not in samples:
        samples.append(value)


def build_groups(targets: List[Dict[str, Any]], sample_limit: int) -> Dict[str, List[Dict[str, Any]]]:
    """Aggregate targets by component, section, component type and role."""
    by_component: Dict[str, Dict[str, Any]] = {}
    by_section: Dict[str, Dict[str, Any]] = {}
    by_type: Dict[str, Dict[str, Any]] = {}
    by_role: Dict[str, Dict[str, Any]] = {}

    for target in targets:
        component = target.get("component") or {}
        section = target.get("section") or {}
        role = target.get("semanticRole")
        selector = target.get("selector")

        if component.get("id"):
            entry = by_component.setdefault(component["id"], {
                "componentId": component["id"],
                "type": component.get("type"),
                "variant": component.get("variant"),
                "sectionId": section.get("id"),
                "targetCount": 0,
                "selectors": [],
            })
            entry["targetCount"] += 1
            _push_sample(entry["selectors"], selector, sample_limit)

        if section.get("id"):
            entry = by_section.setdefault(section["id"], {
                "sectionId": section["id"],
                "name": section.get("name"),
                "role": section.get("role"),
                "targetCount": 0,
                "componentIds": [],
                "selectors": [],
            })
            entry["targetCount"] += 1
            _push_sample(entry["componentIds"], component.get("id"), sample_limit)
            _push_sample(entry["selectors"], selector, sample_limit)

        for bucket, key, label in ((by_type, component.get("type"), "type"), (by_role, role, "role")):
            if not key:
                continue
            entry = bucket.setdefault(key, {
                label: key,
                "targetCount": 0,
                "componentIds": [],
                "sectionIds": [],
                "selectors": [],
            })
            entry["targetCount"] += 1
            _push_sample(entry["componentIds"], component.get("id"), sample_limit)
            _push_sample(entry["sectionIds"], section.get("id"), sample_limit)
            _push_sample(entry["selectors"], selector, sample_limit)

    def ranked(groups: Dict[str, Dict[str, Any]]) -> List[Dict[str, Any]]:
        return sorted(groups.values(), key=lambda g: g["targetCount"], reverse=True)

    return {
        "byComponent": ranked(by_component),
        "bySection": ranked(by_section),
        "byComponentType": ranked(by_type),
        "byRole": ranked(by_role),
    }


def build_recommendations(targets: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    """Top targets by priority with their capture checklists."""
    ranked = sorted(targets, key=lambda t: t["priority"]["score"], reverse=True)
    recommendations: List[Dict[str, Any]] = []
    for target in ranked:
        if len(recommendations) >= limit:
            break
        if not target.get("selector"):
            continue

        reasons = []
        if target["priority"]["level"] == "high":
            reasons.append("high priority")
        if {SOURCE_STATE_SELECTOR, SOURCE_MCP_COMMAND} & set(target.get("sources") or []):
            reasons.append("state evidence available")
        if len(target.get("availableStates") or []) > 1:
            reasons.append("multiple states")
        if (target.get("section") or {}).get("role") == "hero":
            reasons.append("hero section")
        if (target.get("component") or {}).get("type") == "button":
            reasons.append("cta/button")

        key_base = f"rec-{len(recommendations) + 1}"
        recommendations.append({
            "selector": target["selector"],
            "nodeId": target.get("nodeId"),
            "priority": target["priority"],
            "component": target.get("component"),
            "section": target.get("section"),
            "tag": target.get("tag"),
            "semanticRole": target.get("semanticRole"),
            "semanticName": target.get("semanticName"),
            "accessibleRole": target.get("accessibleRole"),
            "accessibleName": target.get("accessibleName"),
            "availableStates": target.get("availableStates"),
            "reasons": reasons,
            "actions": build_recommendation_actions(target, key_base),
        })
    return recommendations


def build_top_target_workflows(recommendations: List[Dict[str, Any]], limit: int) -> Optional[Dict[str, Any]]:
    """Flatten the top recommendations into one step-numbered batch.

    Click and screenshot steps are left out; each remaining step becomes
    either an ``mcp`` tool call or a ``script`` evaluation.
    """
    workflows = []
    step = 1
    for i, target in enumerate(recommendations[:limit]):
        key_base = f"wf-{i + 1}"
        actions = build_recommendation_actions(target, key_base, include_click=False, include_screenshot=False)
        if not actions:
            continue
        steps = []
        for action in actions:
            steps.append({"step": step, "selector": target["selector"], **action})
            step += 1
        workflows.append({
            "id": key_base,
            "selector": target["selector"],
            "priority": target.get("priority"),
            "component": target.get("component"),
            "section": target.get("section"),
            "steps": steps,
        })
    if not workflows:
        return None

    batch_steps: List[Dict[str, Any]] = []
    serialized: List[Dict[str, Any]] = []
    mcp_count = 0
    eval_count = 0
    for wf in workflows:
        for item in wf["steps"]:
            if item.get("mcpTool"):
                tool = item["mcpTool"]
                batch_steps.append({
                    "step": item["step"],
                    "type": "mcp",
                    "tool": tool["name"],
                    "params": tool.get("params") or {},
                    "selector": item.get("selector"),
                    "action": item.get("action"),
                    "instruction": item.get("instruction"),
                    "note": item.get("note"),
                })
                serialized.append({
                    "step": item["step"],
                    "tool": tool["name"],
                    "params": tool.get("params") or {},
                    "selector": item.get("selector"),
                    "action": item.get("action"),
                })
                mcp_count += 1
            if item.get("script"):
                batch_steps.append({
                    "step": item["step"],
                    "type": "script",
                    "code": item["script"],
                    "selector": item.get("selector"),
                    "action": item.get("action"),
                    "instruction": item.get("instruction"),
                })
                serialized.append({
                    "step": item["step"],
                    "tool": TOOL_EVALUATE,
                    "params": {"function": item["script"]},
                    "selector": item.get("selector"),
                    "action": item.get("action"),
                })
                eval_count += 1

    return {
        "total": len(workflows),
        "steps": [s for wf in workflows for s in wf["steps"]],
        "workflows": workflows,
        "batch": {
            "total": len(batch_steps),
            "steps": batch_steps,
            "note": (
                "Execute sequentially in ascending step order. Each step is either an MCP tool "
                "call (type=mcp) or a page script (type=script)."
            ),
            "runner": {
                "language": "javascript",
                "description": "Pseudo-runner that executes MCP tools and JS scripts sequentially.",
                "script": BATCH_RUNNER_SCRIPT,
            },
            "serialized": {
                "total": len(serialized),
                "mcp": mcp_count,
                "eval": eval_count,
                "steps": serialized,
                "note": "Tool call list ready for sequential execution by an agent (already in step order).",
            },
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_interaction_plan(tree: Optional[Dict[str, Any]], state_capture: Optional[Dict[str, Any]] = None,
                           options: Optional[BuildOptions] = None,
                           sections: Optional[List[Dict[str, Any]]] = None,
                           resolver: Optional[Resolver] = None) -> Dict[str, Any]:
    """Build the interaction plan for one blueprint.

    Args:
        tree: IR node tree (may be None)
        state_capture: Coerced state-capture evidence
        options: Build options (limits, viewport height)
        sections: Sections from ``build_sections``
        resolver: Optional resolver used to canonicalize explicit selectors

    Returns:
        Plan dict: summary, workflows, stateMatrix, targets, groups,
        recommendations, workflowsForTopTargets.
    """
    state_capture = state_capture or {}
    options = options or BuildOptions()
    plan: Dict[str, Any] = {
        "summary": {
            "selectors": len(state_capture.get("selectors") or []),
            "hasBatchWorkflow": bool(state_capture.get("batchWorkflow")),
            "hasElementWorkflows": bool(state_capture.get("mcpCommands")),
            "targetCount": 0,
            "targetLimitReached": False,
            "componentGroups": 0,
            "sectionGroups": 0,
            "componentTypeGroups": 0,
            "roleGroups": 0,
            "recommendationCount": 0,
            "workflowCount": 0,
            "priority": {"high": 0, "medium": 0, "low": 0},
        },
        "workflows": collect_state_workflows(state_capture),
        "stateMatrix": build_state_matrix(state_capture),
        "targets": [],
        "groups": None,
        "recommendations": None,
        "workflowsForTopTargets": None,
    }
    if not tree:
        return plan

    node_index = create_node_index(tree)
    registry = TargetRegistry(
        limit=options.interaction_target_limit,
        component_context=build_component_context(tree),
        section_index=build_section_index(sections),
        viewport_height=options.viewport_height,
    )

    def resolve_selector(selector: str) -> str:
        if selector in node_index["bySelector"] or resolver is None:
            return selector
        element = resolver.find_by_selector(selector)
        if element is not None:
            return resolver.selector_for(element) or selector
        return selector

    def state_info_for(selector: str) -> Optional[Dict[str, Any]]:
        captured = (state_capture.get("captured") or {}).get("states") or {}
        return captured.get(selector) or (state_capture.get("fallback") or {}).get(selector)

    def nominate(selector: str, source: str) -> None:
        resolved = resolve_selector(selector)
        candidates = node_index["bySelector"].get(resolved) or []
        node = candidates[0] if candidates else None
        registry.add(node, resolved, source, state_info_for(selector) or state_info_for(resolved))

    # Pass 1: tree
    for node in node_index["list"]:
        if registry.limit_reached:
            break
        if (node.get("state") or {}).get("hasInteractiveStates"):
            registry.add(node, node.get("selector"), SOURCE_STATE_SUMMARY)
        elif is_interactive_node(node):
            registry.add(node, node.get("selector"), SOURCE_HEURISTIC)

    # Pass 2: captured-state selectors
    for selector in state_capture.get("selectors") or []:
        if registry.limit_reached:
            break
        nominate(selector, SOURCE_STATE_SELECTOR)

    # Pass 3: external workflow commands
    for cmd in state_capture.get("mcpCommands") or []:
        if registry.limit_reached:
            break
        selector = (cmd.get("element") or {}).get("selector") or cmd.get("selector")
        if selector:
            nominate(selector, SOURCE_MCP_COMMAND)

    targets = registry.targets
    summary = plan["summary"]
    plan["targets"] = targets
    summary["targetCount"] = len(targets)
    summary["targetLimitReached"] = registry.limit_reached
    for target in targets:
        summary["priority"][target["priority"]["level"]] += 1
    if not targets:
        return plan

    groups = build_groups(targets, options.interaction_group_sample_limit)
    plan["groups"] = groups
    summary["componentGroups"] = len(groups["byComponent"])
    summary["sectionGroups"] = len(groups["bySection"])
    summary["componentTypeGroups"] = len(groups["byComponentType"])
    summary["roleGroups"] = len(groups["byRole"])

    recommendations = build_recommendations(targets, options.interaction_recommendation_limit)
    if recommendations:
        plan["recommendations"] = {"total": len(recommendations), "items": recommendations}
        summary["recommendationCount"] = len(recommendations)

    top = build_top_target_workflows(recommendations, options.interaction_workflow_limit)
    if top:
        plan["workflowsForTopTargets"] = top
        summary["workflowCount"] = top["total"]

    return plan
