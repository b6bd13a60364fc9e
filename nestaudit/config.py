"""
nestaudit Configuration Module
==============================

Centralized configuration management for the nestaudit framework.
Supports environment variables for sensitive data (directory credentials).

Design Decision:
- Configuration is a dataclass tree that can be passed through the pipeline
- Traversal limits are optional; None means unbounded
- Output paths are configurable for flexibility in different environments
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path


@dataclass
class TraversalConfig:
    """Configuration for the closure resolvers.

    Attributes:
        inactive_days: Users whose last activity is older than this are inactive
        include_inactive: Keep inactive users in descendant results (flagged)
        expand_nested: Recurse into nested groups during descendant closure
        max_depth: Maximum nesting depth / hop count (None for unlimited)
        max_nodes: Maximum distinct objects per traversal (None for unlimited)
    """
    inactive_days: int = 90
    include_inactive: bool = False
    expand_nested: bool = True
    max_depth: Optional[int] = None
    max_nodes: Optional[int] = None

    def __post_init__(self):
        if self.inactive_days < 0:
            raise ValueError("inactive_days must be >= 0")
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.max_nodes is not None and self.max_nodes < 1:
            raise ValueError("max_nodes must be >= 1")


@dataclass
class LDAPConfig:
    """Configuration for LDAP directory access.

    Attributes:
        use_ssl: Whether to use LDAPS (port 636) vs LDAP (port 389)
        page_size: Page size for LDAP queries
        timeout: Connection timeout in seconds
    """
    use_ssl: bool = False
    port: Optional[int] = None  # Auto-detect based on use_ssl
    page_size: int = 1000
    timeout: int = 30

    def __post_init__(self):
        if self.port is None:
            self.port = 636 if self.use_ssl else 389


@dataclass
class OutputConfig:
    """Configuration for output and reporting.

    Attributes:
        output_dir: Directory for output files
        generate_html: Whether to generate HTML reports
        generate_json: Whether to generate JSON reports
        generate_csv: Whether to export the result table as CSV
    """
    output_dir: str = "output"
    generate_html: bool = True
    generate_json: bool = True
    generate_csv: bool = True

    def __post_init__(self):
        """Ensure output directory exists."""
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)


@dataclass
class NestAuditConfig:
    """Main configuration container for nestaudit.

    Usage:
        config = NestAuditConfig()  # Uses all defaults
        config = NestAuditConfig(traversal=TraversalConfig(include_inactive=True))
    """
    traversal: TraversalConfig = field(default_factory=TraversalConfig)
    ldap: LDAPConfig = field(default_factory=LDAPConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    verbose: bool = True

    @classmethod
    def from_dict(cls, config_dict: dict) -> "NestAuditConfig":
        """Create configuration from a dictionary.

        Useful for loading from JSON files or CLI arguments.
        """
        return cls(
            traversal=TraversalConfig(**config_dict.get("traversal", {})),
            ldap=LDAPConfig(**config_dict.get("ldap", {})),
            output=OutputConfig(**config_dict.get("output", {})),
            verbose=config_dict.get("verbose", True)
        )


def ldap_password_from_env() -> Optional[str]:
    """Read the directory bind password from the environment, if set."""
    return os.environ.get("NESTAUDIT_LDAP_PASSWORD")
