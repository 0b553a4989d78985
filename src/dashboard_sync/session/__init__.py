"""Session management subpackage.

Public surface
--------------
- SessionManager  — login / logout / invalidate / restore, owner of the token
- LOGIN_ROUTE     — route requested after teardown
"""
from __future__ import annotations

from dashboard_sync.session.manager import LOGIN_ROUTE, SessionManager

__all__ = ["LOGIN_ROUTE", "SessionManager"]
