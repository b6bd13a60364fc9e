"""
nestaudit Integration Module
============================

High-level entry points that tie a directory source, a resolver and the
report writers together. The CLI is a thin layer over run_audit().
"""

from .bridge import run_audit, AuditResult, build_directory
