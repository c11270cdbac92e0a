"""
Service package for llm-relay.

This package contains:
- settings: configuration loaded from env / .env
- logging_config: shared logging setup
- errors: standard HTTP error payloads
- models: conversation, registry and session data types
- provider: model registry, startup discovery and vendor SDK drivers
- llm: directive parsing, turn normalisation, generation driver,
  continuation session and the switchable output stream
- routes: FastAPI app factory and HTTP endpoints
"""
