"""
Integration tests for promptstream.

End-to-end runs of the CLI with scripted providers and mock transports:
    - test_cli: chat, providers, models and config commands
"""
