"""Value types shared across the wizard runner."""
