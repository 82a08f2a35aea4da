"""Minimal flow runtime delivering messages along persistent value node wires."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Deque, Dict, List, Mapping, Optional, Tuple

from persistent_values.interfaces import ContextProvider, JsonObject
from persistent_values.models import FlowConfig, ValuesConfig, load_flow_config
from persistent_values.node import ConfigurationError, ValueNode
from persistent_values.settings import build_context_store, load_context_settings

logger = logging.getLogger(__name__)

MAX_DELIVERIES = 1000


class FlowExecutionError(RuntimeError):
    """Raised when a message cannot be delivered through the flow."""


@dataclass
class FlowResult:
    """Messages received by non persistent value nodes, keyed by target id."""

    delivered: Dict[str, List[JsonObject]] = field(default_factory=dict)
    blocked: List[str] = field(default_factory=list)

    def messages_for(self, target: str) -> List[JsonObject]:
        return self.delivered.get(target, [])


class Flow:
    """A deployed set of values configs and value nodes sharing one context store."""

    def __init__(self, config: FlowConfig, store: ContextProvider) -> None:
        self.config = config
        self.store = store
        self.values_configs: Dict[str, ValuesConfig] = {values_config.id: values_config for values_config in config.configs}
        self.nodes: Dict[str, ValueNode] = {}
        for node_config in config.nodes:
            values_config = self.values_configs.get(node_config.values_config)
            self.nodes[node_config.id] = ValueNode(node_config, values_config, store)
        logger.debug("flow deployed with %d configs and %d value nodes", len(self.values_configs), len(self.nodes))

    def inject(self, node_id: str, message: Mapping[str, Any], *, max_deliveries: int = MAX_DELIVERIES) -> FlowResult:
        """Deliver a message to a value node and follow its wires until the flow settles."""
        if node_id not in self.nodes:
            raise FlowExecutionError(f"Cannot inject into unknown value node '{node_id}'.")

        result = FlowResult()
        pending: Deque[Tuple[str, Mapping[str, Any]]] = deque([(node_id, message)])
        deliveries = 0
        while pending:
            deliveries += 1
            if deliveries > max_deliveries:
                raise FlowExecutionError(
                    f"Message injected at '{node_id}' exceeded {max_deliveries} deliveries; check the wires for a cycle."
                )
            target, inbound = pending.popleft()
            node = self.nodes.get(target)
            if node is None:
                result.delivered.setdefault(target, []).append(dict(inbound))
                continue

            output = node.handle(inbound)
            if output.blocked:
                result.blocked.append(target)
                continue

            for port, outbound in enumerate(output.as_list()):
                if outbound is None or port >= len(node.config.wires):
                    continue
                for wired in node.config.wires[port]:
                    pending.append((wired, outbound))

        return result


def load_flow(config_path: Path | str, store: ContextProvider) -> Flow:
    """Load a flow definition from disk and deploy it against a context store."""
    return Flow(load_flow_config(config_path), store)


def run(
    config_path: Path | str,
    node_id: str,
    message: Mapping[str, Any],
    *,
    env_file: Optional[Path | str] = None,
) -> FlowResult:
    """Synchronous entry point for CLI usage."""
    store = build_context_store(load_context_settings(env_file))
    return load_flow(config_path, store).inject(node_id, message)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send one message through a persistent value flow.")
    parser.add_argument("flow", type=Path, help="Path to the flow JSON definition.")
    parser.add_argument("node", help="Id of the persistent value node receiving the message.")
    parser.add_argument("--message", default='{"payload": null}', help="Inbound message as a JSON object.")
    parser.add_argument("--env-file", type=Path, default=None, help="Optional .env file with context settings.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        message = json.loads(args.message)
        if not isinstance(message, dict):
            raise ValueError("--message must be a JSON object.")
        result = run(args.flow, args.node, message, env_file=args.env_file)
    except (ConfigurationError, FlowExecutionError, OSError, ValueError) as exc:
        print(f"[persistent-values] Error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps({"delivered": result.delivered, "blocked": result.blocked}, indent=2))
    return 0


__all__ = ["Flow", "FlowResult", "FlowExecutionError", "load_flow", "run", "main"]


if __name__ == "__main__":  # pragma: no cover - CLI
    sys.exit(main())
