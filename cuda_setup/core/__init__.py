"""Core — domain models, configuration, and provisioning services."""
