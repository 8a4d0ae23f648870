"""Host command execution."""
