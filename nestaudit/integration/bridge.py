"""
Audit Bridge Module
===================

High-level interface for running one membership audit.

It orchestrates the pipeline:
1. Directory selection (snapshot files or a live LDAP connection)
2. Root resolution and closure computation
3. Report generation (text, JSON, CSV, HTML)

Design Decisions:
-----------------
1. Single entry point (run_audit) for the CLI and for library callers
2. Returns AuditResult which carries the closure and every report path
3. Snapshot files take precedence over LDAP parameters when both are given
4. Progress updates via callback, in the same "[*]/[+]/[!]" style as the
   rest of the package
"""

from dataclasses import dataclass
from typing import Optional, Callable, Union

from ..config import NestAuditConfig, ldap_password_from_env
from ..directory.base import DirectoryQuery
from ..directory.ldap_directory import LDAPDirectory
from ..directory.snapshot import SnapshotDirectory
from ..analysis.ancestor import AncestorClosureResolver
from ..analysis.descendant import DescendantClosureResolver
from ..model.schemas import AncestorClosure, DescendantClosure
from ..reporting.report_builder import ReportBuilder, generate_text_report
from ..reporting.export_html import HTMLExporter

DIRECTIONS = ("memberof", "members")


@dataclass
class AuditResult:
    """Everything produced by one run_audit() call."""
    closure: Union[AncestorClosure, DescendantClosure]
    text: str
    json_path: Optional[str] = None
    csv_path: Optional[str] = None
    html_path: Optional[str] = None

    @property
    def truncated(self) -> bool:
        return self.closure.truncated

    @property
    def report_paths(self) -> list[str]:
        return [p for p in (self.json_path, self.csv_path, self.html_path) if p]


def build_directory(
    input_files: Optional[list[str]] = None,
    server_ip: Optional[str] = None,
    domain: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    config: Optional[NestAuditConfig] = None,
    progress_callback: Optional[Callable[[str], None]] = None
) -> DirectoryQuery:
    """Create the directory collaborator for the given inputs.

    An LDAPDirectory is returned unconnected; use it as a context manager.

    Raises:
        ValueError: neither snapshot files nor a server and domain were given
    """
    config = config or NestAuditConfig()

    if input_files:
        return SnapshotDirectory(
            verbose=False,
            progress_callback=progress_callback
        ).load_files(input_files)

    if server_ip and domain:
        return LDAPDirectory(
            server_ip=server_ip,
            domain=domain,
            username=username,
            password=password or ldap_password_from_env(),
            config=config.ldap,
            verbose=False,
            progress_callback=progress_callback
        )

    raise ValueError("Must provide either snapshot files or an LDAP server and domain")


def run_audit(
    direction: str,
    identity: str,
    input_files: Optional[list[str]] = None,
    server_ip: Optional[str] = None,
    domain: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    config: Optional[Union[NestAuditConfig, dict]] = None,
    view: str = "summary",
    progress_callback: Optional[Callable[[str], None]] = None
) -> AuditResult:
    """Main entry point for running a membership audit.

    Args:
        direction: "memberof" (groups identity belongs to) or "members"
            (objects a group contains)
        identity: Name, id or DN of the root object
        input_files: BloodHound/SharpHound JSON or zip files
        server_ip: Domain controller address for live queries
        domain: Domain name (e.g., "corp.local")
        username: Bind user
        password: Bind password (falls back to NESTAUDIT_LDAP_PASSWORD)
        config: NestAuditConfig or a dictionary accepted by NestAuditConfig.from_dict
        view: Text view ("summary", "tree" or "detailed")
        progress_callback: Optional callback for progress updates

    Returns:
        AuditResult with the closure, rendered text and report paths

    Raises:
        ValueError: unknown direction or view, or no directory source
        ObjectNotFoundError: identity does not resolve to a usable root
        ConnectionError: the LDAP server could not be reached

    Example:
        result = run_audit("members", "Domain Admins", input_files=["groups.json", "users.json"])
        print(result.text)
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown direction '{direction}', expected one of {', '.join(DIRECTIONS)}")

    if isinstance(config, dict):
        config = NestAuditConfig.from_dict(config)
    config = config or NestAuditConfig()

    def log(message: str):
        if progress_callback:
            progress_callback(message)
        if config.verbose:
            print(message)

    directory = build_directory(
        input_files=input_files,
        server_ip=server_ip,
        domain=domain,
        username=username,
        password=password,
        config=config,
        progress_callback=log
    )

    if isinstance(directory, LDAPDirectory):
        with directory:
            closure = _resolve(direction, identity, directory, config, log)
    else:
        closure = _resolve(direction, identity, directory, config, log)

    text = generate_text_report(closure, view)
    result = AuditResult(closure=closure, text=text)

    output = config.output
    if output.generate_json or output.generate_csv:
        builder = ReportBuilder(output.output_dir)
        if output.generate_json:
            result.json_path = builder.save_json(closure)
            log(f"[+] JSON report saved to {result.json_path}")
        if output.generate_csv:
            result.csv_path = builder.save_csv(closure)
            log(f"[+] CSV report saved to {result.csv_path}")

    if output.generate_html:
        result.html_path = HTMLExporter(output.output_dir).export(closure)
        log(f"[+] HTML report saved to {result.html_path}")

    if closure.truncated:
        log("[!] Traversal was truncated by a configured limit; results are partial")

    return result


def _resolve(direction, identity, directory, config, log):
    if direction == "memberof":
        resolver = AncestorClosureResolver(
            directory, config.traversal, verbose=False, progress_callback=log
        )
    else:
        resolver = DescendantClosureResolver(
            directory, config.traversal, verbose=False, progress_callback=log
        )
    return resolver.resolve(identity)
