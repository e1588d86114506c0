"""
kubelens - conversational Kubernetes diagnostics for SREs.

Asks an LLM for read-only kubectl commands, runs them against the live
cluster, redacts sensitive output and grounds the LLM's answer in it.
"""

__version__ = "0.1.0"
__author__ = "kubelens Contributors"
