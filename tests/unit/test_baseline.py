"""Unit tests for the first-turn baseline command set."""

import pytest

from kubelens.baseline import (
    COMPREHENSIVE_COMMANDS,
    METRICS_COMMANDS,
    MINIMAL_COMMANDS,
    STANDARD_COMMANDS,
    baseline_commands,
)
from kubelens.execution.base import Command
from kubelens.execution.policy import CommandPolicy


class TestBaselineCommands:
    """Tests for baseline_commands."""

    def test_disabled(self, make_config):
        assert baseline_commands(make_config(enable_baseline=False)) == []

    def test_minimal(self, make_config):
        commands = baseline_commands(make_config(enable_baseline=True))

        assert commands == [f"kubectl {c}" for c in MINIMAL_COMMANDS]
        assert "kubectl get nodes -o wide" in commands
        assert "kubectl get statefulsets -A" not in commands

    def test_standard_adds_workloads(self, make_config):
        commands = baseline_commands(make_config(enable_baseline=True, baseline_level="standard"))

        assert len(commands) == len(MINIMAL_COMMANDS) + len(STANDARD_COMMANDS)
        assert commands[-len(STANDARD_COMMANDS):] == [f"kubectl {c}" for c in STANDARD_COMMANDS]

    def test_comprehensive(self, make_config):
        commands = baseline_commands(make_config(enable_baseline=True, baseline_level="comprehensive"))

        for subcommand in STANDARD_COMMANDS + METRICS_COMMANDS + COMPREHENSIVE_COMMANDS:
            assert f"kubectl {subcommand}" in commands

    def test_comprehensive_without_metrics(self, make_config):
        config = make_config(enable_baseline=True, baseline_level="comprehensive", baseline_include_metrics=False)
        commands = baseline_commands(config)

        assert not any("metrics.k8s.io" in c for c in commands)
        assert "kubectl get networkpolicies -A" in commands

    def test_custom_verb(self, make_config):
        commands = baseline_commands(make_config(enable_baseline=True, diagnostic_verb="oc"))
        assert all(c.startswith("oc get ") for c in commands)

    def test_no_duplicates(self, make_config):
        commands = baseline_commands(make_config(enable_baseline=True, baseline_level="comprehensive"))
        assert len(commands) == len(set(commands))

    @pytest.mark.parametrize("level", ["minimal", "standard", "comprehensive"])
    def test_passes_command_policy(self, make_config, level):
        """Every baseline command is a valid diagnostic command that the default deny-list allows."""
        config = make_config(enable_baseline=True, baseline_level=level)
        policy = CommandPolicy.from_config(config)

        for raw in baseline_commands(config):
            assert policy.check(Command.parse(raw)) is None, raw
