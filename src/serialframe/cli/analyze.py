"""Message definition analysis CLI command."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from typing import List

from ..codec import MessageRegistry
from ..messages import Computed, Fragment, MessageTemplate


def load_templates(file_path: Path) -> List[MessageTemplate]:
    """Load every MessageTemplate defined in a Python file.

    Templates are collected from module-level MessageTemplate objects and
    from every module-level MessageRegistry, in definition order, without
    duplicates.

    Args:
        file_path: Path to Python file containing message definitions

    Raises:
        ValueError: If the file cannot be loaded as a module
    """
    spec = importlib.util.spec_from_file_location("user_messages", file_path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Could not load module from {file_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules["user_messages"] = module
    spec.loader.exec_module(module)

    templates: List[MessageTemplate] = []
    for obj in vars(module).values():
        if isinstance(obj, MessageTemplate):
            candidates = [obj]
        elif isinstance(obj, MessageRegistry):
            candidates = list(obj)
        else:
            continue
        for template in candidates:
            if template not in templates:
                templates.append(template)

    return templates


def analyze_file(file_path: Path) -> None:
    """Print a breakdown of every template defined in a Python file."""
    templates = load_templates(file_path)

    if not templates:
        print(f"No message templates found in {file_path}")
        return

    print("|" * 7, "serialframe: message templates", "|" * 7)
    print(f"{len(templates)} message{'s' if len(templates) != 1 else ''} loaded.")
    print()

    for template in templates:
        analyze_template(template)


def _describe_fragment(fragment: Fragment) -> str:
    if fragment.pattern is None:
        pattern = "(no pattern)"
    else:
        pattern = " ".join(repr(e) for e in fragment.pattern)

    if isinstance(fragment.default, Computed):
        default = f"computed {getattr(fragment.default.func, '__name__', 'function')}"
    elif fragment.default is not None:
        default = f"default {fragment.default.hex(' ').upper()}"
    elif fragment.literal_bytes is not None:
        default = "from pattern"
    else:
        default = "required"

    return f"{pattern} [{default}]"


def analyze_template(template: MessageTemplate) -> None:
    """Print the pattern and generation rule of each fragment of a template."""
    direction = "inbound/outbound" if template.inbound else "outbound only"
    print(f"{'=' * 19} {template.name} ({direction}) {'=' * 19}")

    if template.inbound:
        print(f"Pattern length: {template.length} bytes")
    if template.description:
        print(template.description)

    for i, fragment in enumerate(template.fragments, 1):
        size = "-" if fragment.length is None else str(fragment.length)
        field_desc = f"{i}. {fragment.name} ({size})"
        dots = "." * max(1, 30 - len(field_desc))
        print(f"        {field_desc}{dots}{_describe_fragment(fragment)}")

    print()
