"""Orchestrator runtime: settings, logging, CLI and the workflow engine."""
