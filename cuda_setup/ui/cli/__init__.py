"""CLI sub-command groups registered by ``cuda_setup.main``."""
