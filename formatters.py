"""
Abidecode Output Formatters v1.0

Registry of output formatters for decoded message bodies.
Formatters turn a DecodedMessageBody into printable text.

Built-in formatters:
- json: Indented JSON object
- compact: One-line JSON object
- tree: Hierarchical tree of the decoded value
"""

import json
from typing import Callable

from treelib import Tree

from body_decoder import DecodedMessageBody

# Type for formatter functions: (decoded body) -> formatted string
FormatterFunc = Callable[[DecodedMessageBody], str]

# Registry of formatters
_formatters: dict[str, FormatterFunc] = {}


def register(name: str):
    """Decorator to register a formatter."""
    def decorator(func: FormatterFunc) -> FormatterFunc:
        _formatters[name] = func
        return func
    return decorator


def get_formatter(name: str) -> FormatterFunc | None:
    """Get a formatter by name."""
    return _formatters.get(name)


def format_body(name: str, decoded: DecodedMessageBody) -> str | None:
    """Format a decoded body using a named formatter.

    Args:
        name: Formatter name (e.g., "json", "tree")
        decoded: Result of a decode call

    Returns:
        Formatted string, or None if formatter not found
    """
    formatter = get_formatter(name)
    if formatter is None:
        return None
    return formatter(decoded)


def list_formatters() -> list[str]:
    """List all registered formatter names."""
    return list(_formatters.keys())


# === Built-in Formatters ===

@register("json")
def format_json(decoded: DecodedMessageBody) -> str:
    return json.dumps(decoded.to_dict(), indent=2)


@register("compact")
def format_compact(decoded: DecodedMessageBody) -> str:
    return json.dumps(decoded.to_dict(), separators=(",", ":"))


@register("tree")
def format_tree(decoded: DecodedMessageBody) -> str:
    """Format as a tree: body type and name at the root, header and value below."""
    tree = Tree()
    node_counter = [0]

    def add_value(label: str, value, parent_id: str):
        node_counter[0] += 1
        node_id = f"n{node_counter[0]}"
        if isinstance(value, dict):
            tree.create_node(label, node_id, parent=parent_id)
            for key, child in value.items():
                add_value(key, child, node_id)
        else:
            tree.create_node(f"{label}: {json.dumps(value)}", node_id, parent=parent_id)

    tree.create_node(f"{decoded.body_type.value} {decoded.name}", "root")
    if decoded.header is not None:
        add_value("header", decoded.header.to_dict(), "root")
    add_value("value", decoded.value or {}, "root")
    return tree.show(stdout=False).rstrip("\n")
