"""
Audit event buffering for Furfolio analytics.
"""
from furfolio_analytics.audit.event_log import AuditEvent, AuditLog

__all__ = ['AuditEvent', 'AuditLog']
