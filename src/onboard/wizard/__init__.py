"""Wizard state machine: step handlers, orchestration and the run entrypoint."""
