"""
End-to-end tests for relaylog.

These tests spawn real child processes and exercise the relay across a
process boundary. Run them with ``pytest -m e2e``.
"""
