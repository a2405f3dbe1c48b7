"""Pipeline services.

The secure search pipeline and the components it composes: the
authorization gateway, the batched orchestrator, local security rules, the
sanitizer and audit emission.
"""

from warden.services.audit import AuditEmitter, AuditSink, LoggingAuditSink
from warden.services.authorization import AuthorizationGateway, normalize_decision
from warden.services.batch_authorization import AuthorizedResult, filter_authorized
from warden.services.sanitize import sanitize
from warden.services.secure_search import SecureSearchService
from warden.services.security_rules import apply_security_rules, first_violation

__all__ = [
    "AuthorizationGateway",
    "normalize_decision",
    "AuthorizedResult",
    "filter_authorized",
    "apply_security_rules",
    "first_violation",
    "sanitize",
    "AuditEmitter",
    "AuditSink",
    "LoggingAuditSink",
    "SecureSearchService",
]
