"""Interactive component selection for runs without --component/--preset.

Everything that talks to the terminal goes through an ``ask`` callable
``(question, default) -> bool`` so the flow can be scripted in tests.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .lib.registry import ComponentRegistry
from .lib.resolver import ResolvedSet, resolve

logger = logging.getLogger(__name__)

AskFn = Callable[[str, bool], bool]
OutFn = Callable[[str], None]

# Opt-in preferences offered after component selection: token -> question.
PREFERENCE_QUESTIONS = (
    ("gaming", "Install gaming packages (Steam, gamemode, MangoHud)?"),
)

CATEGORY_WARNINGS = {
    "wm": "Window manager installation may require logout/reboot to take effect",
    "dev-tools": "Development tools may require additional configuration after installation",
}


def prompt_user(
    question: str,
    default: bool = False,
    *,
    input_fn: Callable[[str], str] = input,
    output: OutFn = print,
) -> bool:
    """Yes/no question on the terminal. Empty input or EOF takes ``default``."""

    suffix = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            answer = input_fn(f"{question} {suffix}: ").strip().lower()
        except EOFError:
            logger.info("No input available, answering %s to: %s", "yes" if default else "no", question)
            return default
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        output("Please answer yes or no.")


def _label(registry: ComponentRegistry, name: str) -> str:
    comp = registry.lookup(name)
    text = comp.description or comp.display_name
    return f"{name} - {text}" if text else name


def select_components(registry: ComponentRegistry, ask: AskFn) -> Tuple[Optional[str], List[str]]:
    """Offer presets first, then individual components.

    Returns ``(preset, components)``. Components already covered by the
    chosen preset are not asked about again.
    """

    preset: Optional[str] = None
    for name, members in sorted(registry.presets.items()):
        if ask(f"Use preset '{name}' ({', '.join(members)})?", False):
            preset = name
            break

    covered = set(registry.preset(preset)) if preset else set()
    ordered = sorted(registry.components.values(), key=lambda c: (c.category or "", c.name))
    picked: List[str] = []
    for comp in ordered:
        if comp.name in covered:
            continue
        if ask(f"Install {_label(registry, comp.name)}?", False):
            picked.append(comp.name)
    return preset, picked


def gather_preferences(ask: AskFn) -> List[str]:
    return [token for token, question in PREFERENCE_QUESTIONS if ask(question, False)]


def selection_summary(resolved: ResolvedSet, registry: ComponentRegistry) -> List[str]:
    lines = ["Selected by you:"]
    for name in resolved.names:
        if name not in resolved.added:
            lines.append(f"  * {_label(registry, name)}")
    if resolved.added:
        lines.append("Added as dependencies:")
        for name in resolved.added:
            lines.append(f"  + {_label(registry, name)} (dependency)")
    lines.append(f"Total components: {len(resolved.order)}")
    return lines


def installation_warnings(resolved: ResolvedSet) -> List[str]:
    seen: List[str] = []
    for comp in resolved.order:
        warning = CATEGORY_WARNINGS.get(comp.category or "")
        if warning and warning not in seen:
            seen.append(warning)
    return seen


def run_interactive(
    registry: ComponentRegistry,
    *,
    ask: AskFn = prompt_user,
    output: OutFn = print,
    preferences: Optional[List[str]] = None,
) -> Optional[Dict[str, Any]]:
    """Ask for a selection, show what it resolves to and confirm.

    Returns config overrides (``preset``, ``components``, ``preferences``),
    or None when nothing was chosen or the user declined. Resolution errors
    propagate so a conflicting choice fails like it would on the CLI.
    """

    preset, components = select_components(registry, ask)
    if not preset and not components:
        output("No components selected.")
        return None

    prefs = list(preferences or [])
    for token in gather_preferences(ask):
        if token not in prefs:
            prefs.append(token)

    selection = list(registry.preset(preset)) if preset else []
    resolved = resolve(selection + components, registry)

    for line in selection_summary(resolved, registry):
        output(line)
    warnings = installation_warnings(resolved)
    if warnings:
        output("Warnings:")
        for w in warnings:
            output(f"  ! {w}")

    if not ask("Proceed with installation?", True):
        logger.info("Installation cancelled by user")
        return None

    return {"preset": preset, "components": components, "preferences": prefs}
