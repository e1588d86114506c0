"""Baseline diagnostics collected on the first question of a session.

A fixed set of read-only commands that captures high-signal cluster state
(API server health, workload inventory, events, storage) before the LLM has
suggested anything. Each level extends the previous one.
"""

from typing import List

from kubelens.config import Config
from kubelens.enums import BaselineLevel

MINIMAL_COMMANDS = [
    "get --raw='/readyz?verbose'",
    "get --raw='/livez?verbose'",
    "get nodes -o wide",
    "get pods -A -o wide",
    "get deployments -A",
    "get services -A",
    "get ingress -A",
    "get endpoints -A",
    "get endpointslices -A",
    "get events -A --field-selector type=Warning",
    "get hpa -A",
    "get pvc -A",
    "get pv",
]

STANDARD_COMMANDS = [
    "get statefulsets -A",
    "get daemonsets -A",
    "get jobs -A",
    "get cronjobs -A",
]

METRICS_COMMANDS = [
    "get --raw '/apis/metrics.k8s.io/v1beta1/nodes'",
    "get --raw '/apis/metrics.k8s.io/v1beta1/pods'",
]

COMPREHENSIVE_COMMANDS = [
    "get networkpolicies -A",
]


def baseline_commands(config: Config) -> List[str]:
    """Build the baseline batch for the configured level.

    Args:
        config: Loaded configuration

    Returns:
        Full command lines starting with the diagnostic verb; empty when
        the baseline is disabled
    """
    if not config.enable_baseline:
        return []

    level = config.baseline_level
    subcommands = list(MINIMAL_COMMANDS)
    if level in (BaselineLevel.STANDARD, BaselineLevel.COMPREHENSIVE):
        subcommands.extend(STANDARD_COMMANDS)
    if level is BaselineLevel.COMPREHENSIVE:
        if config.baseline_include_metrics:
            subcommands.extend(METRICS_COMMANDS)
        subcommands.extend(COMPREHENSIVE_COMMANDS)

    commands: List[str] = []
    for subcommand in subcommands:
        command = f"{config.diagnostic_verb} {subcommand}"
        if command not in commands:
            commands.append(command)
    return commands
