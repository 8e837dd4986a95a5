"""Unit tests for SiteProof web route modules.

Each route module has a corresponding test file.

Testing pattern:
    - Mount the module's router on a bare FastAPI app and use TestClient
    - Patch the module's ``get_session`` and the action it calls
    - Override ``require_user`` unless the test is about authentication
"""
