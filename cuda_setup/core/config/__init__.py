"""Configuration — process inputs and the download link catalog."""
