"""Host command execution and file helpers."""
