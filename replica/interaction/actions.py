"""Capture action checklists for interaction targets.

Each recommended target gets a fixed, role-conditioned checklist:
snapshot -> scroll into view -> capture default -> [hover trio] ->
[focus trio] -> [click trio] -> screenshot. Steps are either an external
tool call (``mcpTool``) or a page-evaluable script (``script``).
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

TOOL_SNAPSHOT = "mcp__chrome-devtools__take_snapshot"
TOOL_HOVER = "mcp__chrome-devtools__hover"
TOOL_CLICK = "mcp__chrome-devtools__click"
TOOL_SCREENSHOT = "mcp__chrome-devtools__take_screenshot"
TOOL_EVALUATE = "mcp__chrome-devtools__evaluate_script"

HOVER_ROLES = {"button", "link", "menuitem", "tab", "switch", "option"}
HOVER_TYPES = {"button", "navItem", "card", "badge", "menu"}
FOCUS_ROLES = {"textbox", "combobox", "button", "link", "menuitem", "tab"}
FOCUS_TAGS = {"button", "a", "input", "select", "textarea"}
CLICK_ROLES = {"button", "link", "menuitem", "tab", "checkbox", "radio", "switch"}

BATCH_RUNNER_SCRIPT = (
    "async function runBatch(batch, mcp, evaluateScript) {\n"
    "  for (const step of batch.steps) {\n"
    "    if (step.type === 'mcp') {\n"
    "      await mcp(step.tool, step.params || {});\n"
    "    } else if (step.type === 'script') {\n"
    "      await evaluateScript(step.code);\n"
    "    }\n"
    "  }\n"
    "}"
)


# ---------------------------------------------------------------------------
# Page scripts
# ---------------------------------------------------------------------------


def scroll_script(selector_literal: str) -> str:
    return (
        "() => {\n"
        f"  const sel = {selector_literal};\n"
        "  const el = document.querySelector(sel);\n"
        "  if (!el) return { ok: false, error: 'Element not found', selector: sel };\n"
        "  el.scrollIntoView({ block: 'center', inline: 'center' });\n"
        "  return { ok: true, selector: sel };\n"
        "}"
    )


def capture_script(selector_literal: str, key: str) -> str:
    return (
        "() => {\n"
        f"  const sel = {selector_literal};\n"
        f"  const key = '{key}';\n"
        "  const state = window.__seStateCapture.captureCurrentState(sel);\n"
        "  window.__seStateCapture.storeState(key, state);\n"
        "  return { ok: !!state?.ok, key, selector: sel };\n"
        "}"
    )


def diff_script(key_base: str, state: str) -> str:
    return (
        "() => window.__seStateCapture.diffStates(\n"
        f"  window.__seStateCapture.getStoredState('{key_base}-default'),\n"
        f"  window.__seStateCapture.getStoredState('{key_base}-{state}')\n"
        ")"
    )


def focus_script(selector_literal: str) -> str:
    return (
        "() => {\n"
        f"  const sel = {selector_literal};\n"
        "  const el = document.querySelector(sel);\n"
        "  if (!el) return { ok: false, error: 'Element not found', selector: sel };\n"
        "  try {\n"
        "    if (!el.hasAttribute('tabindex') && el.tabIndex < 0) el.setAttribute('tabindex', '-1');\n"
        "    el.focus({ preventScroll: true });\n"
        "    return { ok: true, selector: sel };\n"
        "  } catch (e) {\n"
        "    return { ok: false, error: String(e), selector: sel };\n"
        "  }\n"
        "}"
    )


# ---------------------------------------------------------------------------
# Checklist
# ---------------------------------------------------------------------------


def _state_trio(selector_literal: str, key_base: str, state: str, trigger: Dict[str, Any],
                capture_instruction: str, diff_instruction: str) -> List[Dict[str, Any]]:
    return [
        trigger,
        {
            "action": f"capture_{state}",
            "state": state,
            "stateKey": f"{key_base}-{state}",
            "instruction": capture_instruction,
            "script": capture_script(selector_literal, f"{key_base}-{state}"),
        },
        {
            "action": f"diff_{state}",
            "instruction": diff_instruction,
            "script": diff_script(key_base, state),
        },
    ]


def build_recommendation_actions(target: Dict[str, Any], key_base: str,
                                 include_click: bool = True,
                                 include_screenshot: bool = True) -> List[Dict[str, Any]]:
    """Ordered capture actions for one target; empty when it has no selector."""
    selector = target.get("selector")
    if not selector:
        return []

    role = target.get("semanticRole") or ""
    a11y_role = target.get("accessibleRole") or role
    a11y_name = target.get("accessibleName") or target.get("semanticName") or ""
    if len(a11y_name) > 80:
        a11y_name = a11y_name[:77] + "..."
    selector_literal = json.dumps(selector)
    tag = target.get("tag") or ""
    comp_type = (target.get("component") or {}).get("type") or ""
    states = set(target.get("availableStates") or [])

    can_hover = (
        "hover" in states or role in HOVER_ROLES or comp_type in HOVER_TYPES or tag in ("a", "button")
    )
    can_focus = bool(states & {"focus", "focusVisible"}) or role in FOCUS_ROLES or tag in FOCUS_TAGS
    can_click = include_click and (
        "active" in states or role in CLICK_ROLES or comp_type == "button" or tag in ("a", "button")
    )

    actions: List[Dict[str, Any]] = [
        {
            "action": "snapshot",
            "instruction": "Take snapshot and locate element UID for MCP actions",
            "note": (
                f"UID hint: role={a11y_role or '?'} name~={a11y_name or '?'}"
                if (a11y_role or a11y_name) else None
            ),
            "mcpTool": {"name": TOOL_SNAPSHOT, "params": {}},
        },
        {
            "action": "scroll_into_view",
            "instruction": "Ensure target is visible in the viewport (helps hover + screenshots)",
            "script": scroll_script(selector_literal),
        },
        {
            "action": "capture_default",
            "state": "default",
            "stateKey": f"{key_base}-default",
            "instruction": "Capture default state styles",
            "script": capture_script(selector_literal, f"{key_base}-default"),
        },
    ]

    if can_hover:
        actions += _state_trio(
            selector_literal, key_base, "hover",
            {
                "action": "hover",
                "instruction": "Trigger hover state",
                "mcpTool": {"name": TOOL_HOVER, "params": {"uid": "<element_uid>", "includeSnapshot": False}},
            },
            "Capture hover state styles",
            "Diff default vs hover",
        )

    if can_focus:
        actions += _state_trio(
            selector_literal, key_base, "focus",
            {
                "action": "focus",
                "instruction": "Trigger focus state via script (avoids click side-effects)",
                "note": "If focus fails, the script will temporarily add tabindex=-1.",
                "script": focus_script(selector_literal),
            },
            "Capture focus state styles",
            "Diff default vs focus",
        )

    if can_click:
        actions += _state_trio(
            selector_literal, key_base, "active",
            {
                "action": "click",
                "instruction": "Trigger active/click state (may navigate)",
                "note": "Use with caution on links; consider preventDefault or new tab.",
                "mcpTool": {"name": TOOL_CLICK, "params": {"uid": "<element_uid>", "includeSnapshot": False}},
            },
            "Capture active/click state styles",
            "Diff default vs active",
        )

    if include_screenshot:
        actions.append({
            "action": "screenshot",
            "instruction": "Capture a viewport screenshot after state interactions",
            "note": "Optional: take_screenshot can be flaky on some setups. Skip this step if it times out.",
            "mcpTool": {"name": TOOL_SCREENSHOT, "params": {}},
        })

    return actions
