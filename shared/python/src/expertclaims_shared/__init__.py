"""
expertclaims_shared: shared configuration, models and helpers for the ExpertClaims portal.

Usage:
    from expertclaims_shared.config import settings
    from expertclaims_shared.db import get_supabase_client
    from expertclaims_shared.models.cases import Case, CaseComment
    from expertclaims_shared.constants import Role, TaskStatus
    from expertclaims_shared.security import hash_password, verify_password
"""

__version__ = "0.1.0"
