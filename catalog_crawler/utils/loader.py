from __future__ import annotations

import importlib
from typing import Any

from ..exceptions import ConfigurationError


def load_symbol(dotted: str) -> Any:
    """
    Load an engine or exporter class from "package.module:Name" or "package.module.Name".
    Unresolvable paths raise ConfigurationError.
    """
    if ":" in dotted:
        module_name, _, symbol_name = dotted.partition(":")
    elif "." in dotted:
        module_name, symbol_name = dotted.rsplit(".", 1)
    else:
        raise ConfigurationError(f"{dotted!r} is not a dotted path")

    try:
        module = importlib.import_module(module_name)
        return getattr(module, symbol_name)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(f"cannot load {dotted!r}: {exc}") from exc
