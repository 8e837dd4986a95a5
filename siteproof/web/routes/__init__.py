"""SiteProof Web Route Modules.

Each module exports a ``router`` (APIRouter) that siteproof.web.app includes.
API handlers share one shape: read the body with ``read_payload``, run one
action inside ``get_session()``, return ``action_response(result)``.

Usage:
    from siteproof.web.routes import projects
    app.include_router(projects.router)
"""

from siteproof.web.routes import (
    auth,
    compliance,
    conformance,
    dashboard,
    diagnostics,
    dockets,
    health,
    itp_templates,
    itps,
    lots,
    pages,
    projects,
)

__all__ = [
    "auth",
    "compliance",
    "conformance",
    "dashboard",
    "diagnostics",
    "dockets",
    "health",
    "itp_templates",
    "itps",
    "lots",
    "pages",
    "projects",
]
